"""
Domain exceptions - Semantic error types for onboarding and property workflows.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Error kinds map onto caller-facing categories:
- Conflict: EmailAlreadyRegistered, RegistrationPending
- NotFound: RecordNotFound (Expired variants subclass it, both mean "start over")
- Unauthorized: InvalidCredentials, AccountInactive, Forbidden
- ValidationFailure: malformed input caught at workflow entry
- InvalidTransition: a state machine refused the requested move
- DependencyFailure: store, cache, blob or email call failed
"""


class RegistryError(Exception):
    """Base class for registry domain errors."""

    pass


class EmailAlreadyRegistered(RegistryError):
    """Email already belongs to a committed user."""

    pass


class RegistrationPending(RegistryError):
    """A live staged registration already holds this email."""

    pass


class RecordNotFound(RegistryError):
    """No staged or durable record exists for the key."""

    pass


class RegistrationExpired(RecordNotFound):
    """Staged registration passed its absolute expiry."""

    pass


class TokenExpired(RecordNotFound):
    """Password reset token passed its absolute expiry."""

    pass


class Unauthorized(RegistryError):
    """Caller is not allowed to perform the operation."""

    pass


class InvalidCredentials(Unauthorized):
    """Password or token mismatch."""

    pass


class AccountInactive(Unauthorized):
    """Account exists but is not active yet."""

    pass


class Forbidden(Unauthorized):
    """Role or ownership mismatch."""

    pass


class ValidationFailure(RegistryError):
    """Input rejected before any side effect."""

    pass


class InvalidTransition(RegistryError):
    """Requested state change is not allowed from the current state."""

    pass


class TransferAlreadyPending(InvalidTransition):
    """A transfer is already awaiting adjudication."""

    pass


class DependencyFailure(RegistryError):
    """An external collaborator (store, cache, blob, email) failed."""

    pass
