"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

Adapters translate their library errors into DependencyFailure so the
workflows can compensate without knowing which backend failed.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from .models import (
    AuthTokens,
    Document,
    Page,
    Property,
    PropertyQuery,
    PropertyStats,
    Role,
    User,
    UserQuery,
)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UpdateGuard(Enum):
    """
    Row condition a property update must satisfy to apply.

    Each guard is evaluated in the same statement as the update, so a
    concurrent transition makes the update miss instead of overwrite.
    """

    ANY = "any"
    EDITABLE = "editable"  # status <> verified
    PENDING_REVIEW = "pending_review"  # status = pending
    TRANSFERABLE = "transferable"  # status = verified, no pending transfer
    TRANSFER_PENDING = "transfer_pending"  # transfer_status = pending


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    role: Role


class StagingStore(Protocol):
    """Port interface for the ephemeral key-value cache."""

    def claim(self, key: str, value: str, ttl_seconds: int) -> bool:
        """
        Write the key only if it does not exist.

        Returns:
            True if written, False if the key is already held
        """
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write (overwrite) the key with a fresh TTL."""
        ...

    def get(self, key: str) -> str | None:
        """Read the key; None when missing or evicted."""
        ...

    def delete(self, key: str) -> None:
        """Remove the key; missing keys are not an error."""
        ...


class UserRepository(Protocol):
    """Port interface for committed user persistence."""

    def get_by_id(self, user_id: str) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...

    def get_by_reset_token(self, token: str) -> User | None: ...

    def insert(self, user: User) -> User:
        """
        Insert a new user row.

        Raises:
            EmailAlreadyRegistered: If a live user already has the email
        """
        ...

    def update(self, user_id: str, changes: Mapping[str, Any]) -> User | None:
        """
        Apply column changes in one statement.

        Returns:
            Updated user, or None if no live row matched

        Raises:
            EmailAlreadyRegistered: If the new email belongs to another user
        """
        ...

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> bool:
        """
        Set the password and clear the reset token in one statement.

        Only applies while the row still carries `token`, making the
        token single-use under concurrent resets.
        """
        ...

    def soft_delete(self, user_id: str, now: datetime) -> bool: ...

    def search(self, query: UserQuery) -> Page[User]: ...


class PropertyRepository(Protocol):
    """Port interface for property persistence."""

    def insert(self, record: Property) -> Property: ...

    def get(self, property_id: str) -> Property | None:
        """Fetch a property that is not soft-deleted."""
        ...

    def update(
        self,
        property_id: str,
        changes: Mapping[str, Any],
        guard: UpdateGuard = UpdateGuard.ANY,
        append_documents: Sequence[Document] = (),
    ) -> Property | None:
        """
        Apply column changes atomically when `guard` holds.

        `append_documents` are appended to the existing document list in
        the same statement.

        Returns:
            Updated property, or None if no live row satisfied the guard
        """
        ...

    def soft_delete(self, property_id: str, now: datetime) -> bool: ...

    def search(self, query: PropertyQuery) -> Page[Property]: ...

    def stats(self) -> PropertyStats: ...


class BlobStore(Protocol):
    """Port interface for object storage (one bucket per instance)."""

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """
        Store bytes at `path`.

        Returns:
            Public URL of the stored object
        """
        ...

    def remove(self, paths: Sequence[str]) -> None:
        """Delete objects at `paths`."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, html: str) -> None:
        """
        Deliver an HTML email.

        Raises:
            DependencyFailure: If delivery failed
        """
        ...


class TokenIssuer(Protocol):
    """Port interface for access/refresh token minting."""

    def issue(self, user_id: str, email: str, role: Role) -> AuthTokens: ...

    def issue_access(self, user_id: str, email: str, role: Role) -> str: ...

    def decode_access(self, token: str) -> TokenClaims:
        """Raises InvalidCredentials for malformed or expired tokens."""
        ...

    def decode_refresh(self, token: str) -> TokenClaims:
        """Raises InvalidCredentials for malformed or expired tokens."""
        ...
