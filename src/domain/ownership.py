"""
Ownership resolution - first step of transfer approval.

Resolves the proposed new owner of a property to a user id. When no
account exists for the email, a minimal seller account is provisioned
without a password. That account cannot log in until its holder sets a
password through the reset flow and an admin activates it; the outcome
is reported as PROVISIONED_WITHOUT_CREDENTIALS so callers can surface it.
"""

import logging
import uuid
from dataclasses import dataclass

from .exceptions import EmailAlreadyRegistered, RecordNotFound, ValidationFailure
from .models import OwnerResolution, OwnerResolutionOutcome, Role, User, normalize_email
from .ports import Clock, UserRepository, system_clock

logger = logging.getLogger(__name__)


@dataclass
class OwnershipResolver:
    """Resolve-or-provision the identity a property is transferred to."""

    users: UserRepository
    clock: Clock = system_clock

    def resolve(self, email: str, name: str | None, contact: str | None) -> OwnerResolution:
        """
        Find the user owning `email`, provisioning one if none exists.

        Raises:
            ValidationFailure: Email is blank
            DependencyFailure: Store lookup or insert failed
        """
        if not email or not email.strip():
            raise ValidationFailure("New owner email is required")
        email = normalize_email(email)

        existing = self.users.get_by_email(email)
        if existing is not None:
            return OwnerResolution(existing.id, OwnerResolutionOutcome.EXISTING)
        return self.provision(email, name, contact)

    def provision(self, email: str, name: str | None, contact: str | None) -> OwnerResolution:
        """Insert a credential-less seller account for `email`."""
        first_name, _, last_name = (name or "").strip().partition(" ")
        now = self.clock()
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=None,
            first_name=first_name or None,
            last_name=last_name.strip() or None,
            phone=contact,
            role=Role.SELLER,
            is_active=False,
            pending_verification=False,
            created_at=now,
            updated_at=now,
        )
        try:
            created = self.users.insert(user)
        except EmailAlreadyRegistered:
            # Another approval provisioned the same email first
            winner = self.users.get_by_email(email)
            if winner is None:
                raise RecordNotFound(email) from None
            return OwnerResolution(winner.id, OwnerResolutionOutcome.EXISTING)

        logger.warning("Provisioned credential-less seller account %s for %s", created.id, email)
        return OwnerResolution(created.id, OwnerResolutionOutcome.PROVISIONED_WITHOUT_CREDENTIALS)
