"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory implementations of every domain port (see tests/fakes.py)
- A controllable clock
- Domain services wired to the in-memory ports
- Factories for seeding users and properties
"""

import uuid
from collections.abc import Callable
from typing import Any

import pytest

from src.domain.accounts import AccountService
from src.domain.models import Property, PropertyStatus, PropertyType, Role, User
from src.domain.onboarding import OnboardingService
from src.domain.ownership import OwnershipResolver
from src.domain.passwords import hash_secret
from src.domain.properties import PropertyService
from tests.fakes import (
    TEST_BCRYPT_COST,
    TEST_PASSWORD,
    FakeClock,
    FakeTokenIssuer,
    InMemoryBlobStore,
    InMemoryPropertyRepository,
    InMemoryStagingStore,
    InMemoryUserRepository,
    RecordingEmailSender,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def staging(clock: FakeClock) -> InMemoryStagingStore:
    return InMemoryStagingStore(clock)


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def property_repo() -> InMemoryPropertyRepository:
    return InMemoryPropertyRepository()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def tokens() -> FakeTokenIssuer:
    return FakeTokenIssuer()


@pytest.fixture
def onboarding(
    users: InMemoryUserRepository,
    staging: InMemoryStagingStore,
    blobs: InMemoryBlobStore,
    email_sender: RecordingEmailSender,
    tokens: FakeTokenIssuer,
    clock: FakeClock,
) -> OnboardingService:
    return OnboardingService(
        users=users,
        staging=staging,
        blobs=blobs,
        email_sender=email_sender,
        tokens=tokens,
        clock=clock,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture
def resolver(users: InMemoryUserRepository, clock: FakeClock) -> OwnershipResolver:
    return OwnershipResolver(users=users, clock=clock)


@pytest.fixture
def property_service(
    property_repo: InMemoryPropertyRepository,
    users: InMemoryUserRepository,
    blobs: InMemoryBlobStore,
    resolver: OwnershipResolver,
    clock: FakeClock,
) -> PropertyService:
    return PropertyService(
        properties=property_repo, users=users, blobs=blobs, resolver=resolver, clock=clock
    )


@pytest.fixture
def account_service(
    users: InMemoryUserRepository,
    blobs: InMemoryBlobStore,
    email_sender: RecordingEmailSender,
    clock: FakeClock,
) -> AccountService:
    return AccountService(
        users=users,
        blobs=blobs,
        email_sender=email_sender,
        clock=clock,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture
def make_user(users: InMemoryUserRepository, clock: FakeClock) -> Callable[..., User]:
    """Insert a committed user directly into the repository."""

    def factory(
        role: Role = Role.BUYER,
        email: str | None = None,
        password: str | None = TEST_PASSWORD,
        is_active: bool = True,
        pending_verification: bool = False,
        **fields: Any,
    ) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=hash_secret(password, TEST_BCRYPT_COST) if password else None,
            first_name="Test",
            last_name=role.value.title(),
            phone="+233200000000",
            role=role,
            is_active=is_active,
            pending_verification=pending_verification,
            created_at=clock(),
            updated_at=clock(),
            **fields,
        )
        return users.insert(user)

    return factory


@pytest.fixture
def make_property(property_repo: InMemoryPropertyRepository, clock: FakeClock) -> Callable[..., Property]:
    """Insert a property row directly, bypassing the workflow."""

    def factory(owner: User, status: PropertyStatus = PropertyStatus.PENDING, **fields: Any) -> Property:
        record = Property(
            id=str(uuid.uuid4()),
            title=fields.pop("title", "Plot 12, East Legon"),
            type=PropertyType.LAND,
            price="250000",
            size="2 acres",
            address="East Legon, Accra",
            coordinates="5.6350,-0.1570",
            owner_id=owner.id,
            owner_name="Test Seller",
            owner_contact="+233200000000",
            owner_email=owner.email,
            status=status,
            submitted_date=clock(),
            last_updated=clock(),
            **fields,
        )
        return property_repo.insert(record)

    return factory
