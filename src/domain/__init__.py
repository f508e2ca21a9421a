"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the land registry:
staged identity onboarding and the property lifecycle with its ownership
transfer sub-workflow. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture
decoupling.
"""

from .accounts import AccountService
from .exceptions import (
    AccountInactive,
    DependencyFailure,
    EmailAlreadyRegistered,
    Forbidden,
    InvalidCredentials,
    InvalidTransition,
    RecordNotFound,
    RegistrationExpired,
    RegistrationPending,
    RegistryError,
    TokenExpired,
    TransferAlreadyPending,
    Unauthorized,
    ValidationFailure,
)
from .onboarding import OnboardingService
from .ownership import OwnershipResolver
from .ports import BlobStore, EmailSender, PropertyRepository, StagingStore, TokenIssuer, UserRepository
from .properties import PropertyService

__all__ = [
    "AccountInactive",
    "AccountService",
    "BlobStore",
    "DependencyFailure",
    "EmailAlreadyRegistered",
    "EmailSender",
    "Forbidden",
    "InvalidCredentials",
    "InvalidTransition",
    "OnboardingService",
    "OwnershipResolver",
    "PropertyRepository",
    "PropertyService",
    "RecordNotFound",
    "RegistrationExpired",
    "RegistrationPending",
    "RegistryError",
    "StagingStore",
    "TokenExpired",
    "TokenIssuer",
    "TransferAlreadyPending",
    "Unauthorized",
    "UserRepository",
    "ValidationFailure",
]
