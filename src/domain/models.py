"""
Domain models - Plain dataclasses for users, staged registrations and properties.

Enums use the str mixin so values serialize directly to JSON and compare
equal to their stored database representation.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


class Role(str, Enum):
    """Account roles."""

    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class PropertyStatus(str, Enum):
    """
    Property verification states.

    Valid Transitions:
        pending  -> verified   (adjudicate approve)
        pending  -> rejected   (adjudicate reject)
        rejected -> pending    (owner edit)
        pending  -> pending    (owner edit)

    Edits to a verified property are refused.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TransferStatus(str, Enum):
    """
    Ownership transfer states. Absent transfer is represented by None.

    Valid Transitions:
        None/verified/rejected -> pending   (request_transfer)
        pending -> verified                 (approve, owner reassigned)
        pending -> rejected                 (reject, owner unchanged)
    """

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class AdjudicationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class PropertyType(str, Enum):
    LAND = "land"
    HOUSE = "house"
    APARTMENT = "apartment"
    COMMERCIAL = "commercial"


class SizeUnit(str, Enum):
    SQFT = "sqft"
    SQM = "sqm"
    ACRES = "acres"
    HECTARES = "hectares"


class OwnerResolutionOutcome(str, Enum):
    """How the new owner of a transferred property was resolved."""

    EXISTING = "existing"
    PROVISIONED_WITHOUT_CREDENTIALS = "provisioned_without_credentials"


@dataclass(frozen=True)
class Document:
    """Stored document reference: display name plus public URL."""

    name: str
    url: str


@dataclass(frozen=True)
class Upload:
    """Raw bytes handed to a workflow for blob storage."""

    content: bytes
    filename: str = "upload.jpg"
    content_type: str = "image/jpeg"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, as carried by an access token."""

    user_id: str
    role: Role


@dataclass
class StagedRegistration:
    """
    Registration data held in the staging store until email verification.

    `expires_at` is the absolute expiry checked at read time; the cache
    TTL only bounds how long the key survives.
    """

    email: str
    verification_token: str
    hashed_otp: str
    hashed_password: str
    first_name: str
    last_name: str
    phone: str
    role: Role
    expires_at: datetime
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None
    selfie_image_url: str | None = None
    id_front_image_url: str | None = None
    id_back_image_url: str | None = None
    document_paths: list[str] = field(default_factory=list)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def to_json(self) -> str:
        payload = asdict(self)
        payload["role"] = self.role.value
        payload["expires_at"] = self.expires_at.isoformat()
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "StagedRegistration":
        payload = json.loads(raw)
        payload["role"] = Role(payload["role"])
        payload["expires_at"] = datetime.fromisoformat(payload["expires_at"])
        return cls(**payload)


@dataclass
class User:
    """Committed account row."""

    id: str
    email: str
    password_hash: str | None
    first_name: str | None
    last_name: str | None
    phone: str | None
    role: Role
    is_active: bool
    pending_verification: bool
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None
    selfie_image_url: str | None = None
    id_front_image_url: str | None = None
    id_back_image_url: str | None = None
    reset_token: str | None = None
    reset_expires_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def has_credentials(self) -> bool:
        """Provisioned owners are created without a password."""
        return self.password_hash is not None


@dataclass
class Property:
    """Property record with its verification and transfer sub-records."""

    id: str
    title: str
    type: PropertyType
    price: str
    size: str
    address: str
    coordinates: str
    owner_id: str
    owner_name: str
    owner_contact: str
    owner_email: str
    status: PropertyStatus
    submitted_date: datetime
    last_updated: datetime
    description: str | None = None
    features: str | None = None
    sector: str | None = None
    block: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    documents: tuple[Document, ...] = ()
    verification_notes: str | None = None
    verified_date: datetime | None = None
    verified_by: str | None = None
    rejected_date: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    deleted_at: datetime | None = None
    transfer_status: TransferStatus | None = None
    transfer_request_date: datetime | None = None
    transfer_verified_date: datetime | None = None
    transfer_verified_by: str | None = None
    transfer_rejected_date: datetime | None = None
    transfer_rejected_by: str | None = None
    transfer_rejection_reason: str | None = None
    transfer_notes: str | None = None
    transfer_reason: str | None = None
    new_owner_name: str | None = None
    new_owner_contact: str | None = None
    new_owner_email: str | None = None
    transfer_documents: tuple[Document, ...] = ()
    previous_owner_id: str | None = None


@dataclass
class RegistrationInput:
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str
    role: Role
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None
    selfie_image: Upload | None = None
    id_front_image: Upload | None = None
    id_back_image: Upload | None = None


@dataclass
class PropertyDraft:
    """Seller submission of a new property."""

    title: str
    type: PropertyType
    price: str
    size_number: str
    size_unit: SizeUnit
    address: str
    coordinates: str
    owner_name: str
    owner_contact: str
    owner_email: str
    description: str | None = None
    features: str | None = None
    sector: str | None = None
    block: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    government_id: Upload | None = None
    survey_documents: Upload | None = None


@dataclass
class PropertyPatch:
    """Partial edit; None fields keep their current value."""

    title: str | None = None
    type: PropertyType | None = None
    price: str | None = None
    size_number: str | None = None
    size_unit: SizeUnit | None = None
    description: str | None = None
    features: str | None = None
    address: str | None = None
    coordinates: str | None = None
    sector: str | None = None
    block: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    owner_name: str | None = None
    owner_contact: str | None = None
    owner_email: str | None = None
    government_id: Upload | None = None
    survey_documents: Upload | None = None


@dataclass
class TransferRequest:
    new_owner_name: str
    new_owner_contact: str
    new_owner_email: str
    transfer_reason: str | None = None
    transfer_documents: Upload | None = None


@dataclass
class Adjudication:
    action: AdjudicationAction
    notes: str
    rejection_reason: str | None = None


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str
    expires_in_access: str = "1h"
    expires_in_refresh: str = "7d"


@dataclass(frozen=True)
class PublicProfile:
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    phone: str | None
    role: Role
    is_active: bool
    pending_verification: bool

    @classmethod
    def from_user(cls, user: User) -> "PublicProfile":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            pending_verification=user.pending_verification,
        )


@dataclass(frozen=True)
class VerifiedAccount:
    profile: PublicProfile
    tokens: AuthTokens


@dataclass(frozen=True)
class OwnerResolution:
    """Result of resolving a transfer's proposed owner to a user id."""

    user_id: str
    outcome: OwnerResolutionOutcome

    @property
    def degraded(self) -> bool:
        return self.outcome is OwnerResolutionOutcome.PROVISIONED_WITHOUT_CREDENTIALS


@dataclass(frozen=True)
class TransferOutcome:
    property: Property
    resolution: OwnerResolution | None = None


@dataclass(frozen=True)
class PropertyStats:
    total_properties: int
    pending_verification: int
    verified_properties: int
    rejected_properties: int
    pending_transfers: int


@dataclass
class PropertyQuery:
    page: int = 1
    limit: int = 10
    search: str | None = None
    type: PropertyType | None = None
    status: PropertyStatus | None = None


@dataclass
class UserQuery:
    page: int = 1
    limit: int = 10
    search: str | None = None
    role: Role | None = None
    is_active: bool | None = None


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int


@dataclass
class ProfileUpdate:
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    email: str | None = None
    selfie_image: Upload | None = None
    id_front_image: Upload | None = None
    id_back_image: Upload | None = None

    @property
    def has_documents(self) -> bool:
        return any((self.selfie_image, self.id_front_image, self.id_back_image))


@dataclass
class NewAccount:
    """Admin-created account; the user sets a password through the reset link."""

    email: str
    first_name: str
    last_name: str
    phone: str
    role: Role
    password: str | None = None
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None


@dataclass
class AccountPatch:
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: Role | None = None
    is_active: bool | None = None
