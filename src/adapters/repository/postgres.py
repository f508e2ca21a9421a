"""
PostgreSQL repository adapters - Implement UserRepository and PropertyRepository.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Atomicity Design:
-----------------
Every state transition is a single UPDATE ... WHERE <guard> RETURNING *.
When a concurrent request already moved the row, the guard no longer
matches, no row is returned and the domain reports InvalidTransition.
There is no SELECT ... FOR UPDATE round trip.

1. **Property guards**: UpdateGuard values map onto WHERE fragments
   (status = 'pending', transfer_status = 'pending', ...).

2. **Document append**: `documents = documents || %s::jsonb` appends in
   the same statement, so two concurrent edits never drop each other's
   documents.

3. **Reset tokens**: the password update matches on the token itself,
   making the token single-use under concurrent resets.

4. **Email uniqueness**: a partial unique index on live users turns the
   registration commit race into a UniqueViolation, reported as
   EmailAlreadyRegistered.
"""

import dataclasses
import logging
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DependencyFailure, EmailAlreadyRegistered
from src.domain.models import (
    Document,
    Page,
    Property,
    PropertyQuery,
    PropertyStats,
    PropertyStatus,
    PropertyType,
    Role,
    TransferStatus,
    User,
    UserQuery,
)
from src.domain.ports import UpdateGuard

logger = logging.getLogger(__name__)

_USER_COLUMNS = tuple(f.name for f in dataclasses.fields(User))
_PROPERTY_COLUMNS = tuple(f.name for f in dataclasses.fields(Property))
_DOCUMENT_COLUMNS = ("documents", "transfer_documents")
_UUID_COLUMNS = (
    "id",
    "owner_id",
    "previous_owner_id",
    "verified_by",
    "rejected_by",
    "transfer_verified_by",
    "transfer_rejected_by",
)

_GUARD_CLAUSES = {
    UpdateGuard.ANY: sql.SQL("TRUE"),
    UpdateGuard.EDITABLE: sql.SQL("status <> 'verified'"),
    UpdateGuard.PENDING_REVIEW: sql.SQL("status = 'pending'"),
    UpdateGuard.TRANSFERABLE: sql.SQL(
        "status = 'verified' AND transfer_status IS DISTINCT FROM 'pending'"
    ),
    UpdateGuard.TRANSFER_PENDING: sql.SQL("transfer_status = 'pending'"),
}


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """
    Report driver failures as DependencyFailure.

    psycopg_pool.PoolTimeout subclasses psycopg.OperationalError, so an
    exhausted pool is covered too.
    """
    try:
        yield
    except psycopg.Error as exc:
        logger.error("Database %s failed: %s", operation, exc)
        raise DependencyFailure(f"Database {operation} failed") from exc


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError, AttributeError):
        return False
    return True


def _to_db(column: str, value: Any) -> Any:
    """Adapt a domain value for a query parameter."""
    if column in _DOCUMENT_COLUMNS:
        return Jsonb([dataclasses.asdict(document) for document in value or ()])
    if isinstance(value, Enum):
        return value.value
    return value


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _user_from_row(row: Mapping[str, Any]) -> User:
    values = {name: row[name] for name in _USER_COLUMNS}
    values["id"] = str(row["id"])
    values["role"] = Role(row["role"])
    return User(**values)


def _property_from_row(row: Mapping[str, Any]) -> Property:
    values = {name: row[name] for name in _PROPERTY_COLUMNS}
    for column in _UUID_COLUMNS:
        values[column] = _text(row[column])
    values["type"] = PropertyType(row["type"])
    values["status"] = PropertyStatus(row["status"])
    values["transfer_status"] = (
        TransferStatus(row["transfer_status"]) if row["transfer_status"] is not None else None
    )
    for column in _DOCUMENT_COLUMNS:
        values[column] = tuple(Document(**item) for item in row[column] or ())
    return Property(**values)


def _set_clause(changes: Mapping[str, Any], allowed: Sequence[str]) -> tuple[sql.Composed, list[Any]]:
    unknown = set(changes) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown columns: {sorted(unknown)}")
    assignments = [sql.SQL("{} = %s").format(sql.Identifier(column)) for column in changes]
    params = [_to_db(column, value) for column, value in changes.items()]
    return sql.SQL(", ").join(assignments), params


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_by_id(self, user_id: str) -> User | None:
        if not _is_uuid(user_id):
            return None
        return self._fetch_one(
            "SELECT * FROM users WHERE id = %s AND deleted_at IS NULL", (user_id,), "user lookup"
        )

    def get_by_email(self, email: str) -> User | None:
        return self._fetch_one(
            "SELECT * FROM users WHERE email = %s AND deleted_at IS NULL", (email,), "user lookup"
        )

    def get_by_reset_token(self, token: str) -> User | None:
        return self._fetch_one(
            "SELECT * FROM users WHERE reset_token = %s AND deleted_at IS NULL",
            (token,),
            "user lookup",
        )

    def insert(self, user: User) -> User:
        """
        Insert a new user row.

        Raises:
            EmailAlreadyRegistered: Live user with the same email exists
            DependencyFailure: Database unavailable
        """
        query = sql.SQL("INSERT INTO users ({columns}) VALUES ({values}) RETURNING *").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, _USER_COLUMNS)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(_USER_COLUMNS)),
        )
        params = [_to_db(column, getattr(user, column)) for column in _USER_COLUMNS]
        try:
            with _translate_errors("user insert"):
                with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                    cursor.execute(query, params)
                    row = cursor.fetchone()
                    conn.commit()
        except DependencyFailure as exc:
            if isinstance(exc.__cause__, psycopg.errors.UniqueViolation):
                raise EmailAlreadyRegistered(user.email) from exc.__cause__
            raise
        return _user_from_row(row)

    def update(self, user_id: str, changes: Mapping[str, Any]) -> User | None:
        if not _is_uuid(user_id):
            return None
        assignments, params = _set_clause(changes, _USER_COLUMNS)
        query = sql.SQL(
            "UPDATE users SET {assignments} WHERE id = %s AND deleted_at IS NULL RETURNING *"
        ).format(assignments=assignments)
        try:
            with _translate_errors("user update"):
                with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                    cursor.execute(query, [*params, user_id])
                    row = cursor.fetchone()
                    conn.commit()
        except DependencyFailure as exc:
            if isinstance(exc.__cause__, psycopg.errors.UniqueViolation):
                raise EmailAlreadyRegistered(str(changes.get("email"))) from exc.__cause__
            raise
        return _user_from_row(row) if row is not None else None

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> bool:
        query = """
            UPDATE users
            SET password_hash = %s, reset_token = NULL, reset_expires_at = NULL, updated_at = %s
            WHERE reset_token = %s AND reset_expires_at > %s AND deleted_at IS NULL
        """
        with _translate_errors("password reset"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (password_hash, now, token, now))
                conn.commit()
                return cursor.rowcount == 1

    def soft_delete(self, user_id: str, now: datetime) -> bool:
        if not _is_uuid(user_id):
            return False
        query = "UPDATE users SET deleted_at = %s, updated_at = %s WHERE id = %s AND deleted_at IS NULL"
        with _translate_errors("user delete"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (now, now, user_id))
                conn.commit()
                return cursor.rowcount == 1

    def search(self, query: UserQuery) -> Page[User]:
        conditions = [sql.SQL("deleted_at IS NULL")]
        params: list[Any] = []
        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(sql.SQL("(email ILIKE %s OR first_name ILIKE %s OR last_name ILIKE %s)"))
            params.extend([pattern, pattern, pattern])
        if query.role is not None:
            conditions.append(sql.SQL("role = %s"))
            params.append(query.role.value)
        if query.is_active is not None:
            conditions.append(sql.SQL("is_active = %s"))
            params.append(query.is_active)
        where = sql.SQL(" AND ").join(conditions)

        with _translate_errors("user search"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql.SQL("SELECT count(*) AS total FROM users WHERE {}").format(where), params)
                total = cursor.fetchone()["total"]
                cursor.execute(
                    sql.SQL(
                        "SELECT * FROM users WHERE {} ORDER BY created_at DESC LIMIT %s OFFSET %s"
                    ).format(where),
                    [*params, query.limit, (query.page - 1) * query.limit],
                )
                rows = cursor.fetchall()
        return Page([_user_from_row(row) for row in rows], total, query.page, query.limit)

    def _fetch_one(self, query: str, params: Sequence[Any], operation: str) -> User | None:
        with _translate_errors(operation):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
        return _user_from_row(row) if row is not None else None


class PostgresPropertyRepository:
    """
    Implements PropertyRepository protocol via psycopg3.

    Soft-deleted rows are invisible to every method.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def insert(self, record: Property) -> Property:
        query = sql.SQL("INSERT INTO properties ({columns}) VALUES ({values}) RETURNING *").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, _PROPERTY_COLUMNS)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(_PROPERTY_COLUMNS)),
        )
        params = [_to_db(column, getattr(record, column)) for column in _PROPERTY_COLUMNS]
        with _translate_errors("property insert"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        return _property_from_row(row)

    def get(self, property_id: str) -> Property | None:
        if not _is_uuid(property_id):
            return None
        with _translate_errors("property lookup"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(
                    "SELECT * FROM properties WHERE id = %s AND deleted_at IS NULL", (property_id,)
                )
                row = cursor.fetchone()
        return _property_from_row(row) if row is not None else None

    def update(
        self,
        property_id: str,
        changes: Mapping[str, Any],
        guard: UpdateGuard = UpdateGuard.ANY,
        append_documents: Sequence[Document] = (),
    ) -> Property | None:
        """
        Apply column changes when `guard` holds, in one statement.

        Returns:
            Updated property, or None if no live row satisfied the guard
        """
        if not _is_uuid(property_id):
            return None
        assignments, params = _set_clause(changes, _PROPERTY_COLUMNS)
        if append_documents:
            assignments = sql.SQL(", ").join(
                [assignments, sql.SQL("documents = documents || %s::jsonb")]
            )
            params.append(_to_db("documents", append_documents))

        query = sql.SQL(
            "UPDATE properties SET {assignments} "
            "WHERE id = %s AND deleted_at IS NULL AND {guard} RETURNING *"
        ).format(assignments=assignments, guard=_GUARD_CLAUSES[guard])

        with _translate_errors("property update"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, [*params, property_id])
                row = cursor.fetchone()
                conn.commit()
        if row is None:
            logger.info("Update of property %s skipped: guard %s not satisfied", property_id, guard.value)
            return None
        return _property_from_row(row)

    def soft_delete(self, property_id: str, now: datetime) -> bool:
        if not _is_uuid(property_id):
            return False
        query = """
            UPDATE properties SET deleted_at = %s, last_updated = %s
            WHERE id = %s AND deleted_at IS NULL
        """
        with _translate_errors("property delete"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (now, now, property_id))
                conn.commit()
                return cursor.rowcount == 1

    def search(self, query: PropertyQuery) -> Page[Property]:
        conditions = [sql.SQL("deleted_at IS NULL")]
        params: list[Any] = []
        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(sql.SQL("(title ILIKE %s OR owner_name ILIKE %s OR id::text ILIKE %s)"))
            params.extend([pattern, pattern, pattern])
        if query.type is not None:
            conditions.append(sql.SQL("type = %s"))
            params.append(query.type.value)
        if query.status is not None:
            conditions.append(sql.SQL("status = %s"))
            params.append(query.status.value)
        where = sql.SQL(" AND ").join(conditions)

        with _translate_errors("property search"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(
                    sql.SQL("SELECT count(*) AS total FROM properties WHERE {}").format(where), params
                )
                total = cursor.fetchone()["total"]
                cursor.execute(
                    sql.SQL(
                        "SELECT * FROM properties WHERE {} ORDER BY submitted_date DESC LIMIT %s OFFSET %s"
                    ).format(where),
                    [*params, query.limit, (query.page - 1) * query.limit],
                )
                rows = cursor.fetchall()
        return Page([_property_from_row(row) for row in rows], total, query.page, query.limit)

    def stats(self) -> PropertyStats:
        query = """
            SELECT
                count(*) AS total_properties,
                count(*) FILTER (WHERE status = 'pending') AS pending_verification,
                count(*) FILTER (WHERE status = 'verified') AS verified_properties,
                count(*) FILTER (WHERE status = 'rejected') AS rejected_properties,
                count(*) FILTER (WHERE transfer_status = 'pending') AS pending_transfers
            FROM properties
            WHERE deleted_at IS NULL
        """
        with _translate_errors("property stats"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query)
                row = cursor.fetchone()
        return PropertyStats(**row)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info("Migration complete: %s", sql_file.name)
        except psycopg.Error as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
