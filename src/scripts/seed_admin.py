"""
Seed the initial administrator account.

Admins cannot self-register, and only an admin can create another admin,
so the first one is inserted directly. Reads ADMIN_EMAIL, ADMIN_PASSWORD
and the other admin_* settings from the environment or `.env`.

Run from project root:
  landsecure-seed-admin
  python -m src.scripts.seed_admin

Re-running is safe: an existing admin with the email is left unchanged.
"""

import logging
import sys
import uuid

from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUserRepository, run_migrations
from src.config.settings import Settings, get_settings
from src.domain.exceptions import EmailAlreadyRegistered, RegistryError, ValidationFailure
from src.domain.models import Role, User, normalize_email
from src.domain.passwords import hash_secret
from src.domain.ports import Clock, UserRepository, system_clock

logger = logging.getLogger(__name__)


def seed_admin(users: UserRepository, settings: Settings, clock: Clock = system_clock) -> User:
    """
    Insert an active admin unless one already holds the email.

    Raises:
        ValidationFailure: ADMIN_PASSWORD missing or too short
        EmailAlreadyRegistered: The email belongs to a non-admin user
        DependencyFailure: Database unavailable
    """
    email = normalize_email(settings.admin_email)
    if len(settings.admin_password) < settings.min_password_length:
        raise ValidationFailure(
            f"ADMIN_PASSWORD must be set to at least {settings.min_password_length} characters"
        )

    existing = users.get_by_email(email)
    if existing is not None:
        if existing.role is not Role.ADMIN:
            raise EmailAlreadyRegistered(f"{email} belongs to a {existing.role.value} account")
        logger.info("Admin %s already exists (id=%s)", email, existing.id)
        return existing

    now = clock()
    admin = users.insert(
        User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_secret(settings.admin_password, settings.bcrypt_cost),
            first_name=settings.admin_first_name,
            last_name=settings.admin_last_name,
            phone=settings.admin_phone,
            role=Role.ADMIN,
            is_active=True,
            pending_verification=False,
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("Seeded admin user %s with id %s", email, admin.id)
    return admin


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = get_settings()

    with ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=1, open=True) as pool:
        run_migrations(pool)
        try:
            seed_admin(PostgresUserRepository(pool), settings)
        except RegistryError as exc:
            logger.error("Seeding admin failed: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
