"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.

Uploaded documents travel as base64 strings inside the JSON body and are
decoded into bytes by `Base64Bytes`.
"""

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import Base64Bytes, BaseModel, ConfigDict, EmailStr, Field

from src.domain.models import (
    AccountPatch,
    Adjudication,
    AdjudicationAction,
    NewAccount,
    ProfileUpdate,
    PropertyDraft,
    PropertyPatch,
    PropertyStatus,
    PropertyType,
    RegistrationInput,
    Role,
    SizeUnit,
    TransferRequest,
    TransferStatus,
    Upload,
)

T = TypeVar("T")


class RegistrationRole(str, Enum):
    """Roles open to self-registration; admins are seeded."""

    BUYER = "buyer"
    SELLER = "seller"


def _upload(content: bytes | None) -> Upload | None:
    return Upload(content=content) if content else None


class Envelope(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    status_code: int
    message: str
    data: T | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str


# ----------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    role: RegistrationRole = RegistrationRole.BUYER
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None
    selfie_image: Base64Bytes | None = Field(None, description="Base64 encoded image (sellers)")
    id_front_image: Base64Bytes | None = Field(None, description="Base64 encoded image (sellers)")
    id_back_image: Base64Bytes | None = Field(None, description="Base64 encoded image (sellers)")

    def to_domain(self) -> RegistrationInput:
        return RegistrationInput(
            email=self.email,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
            role=Role(self.role.value),
            surname=self.surname,
            other_names=self.other_names,
            nationality=self.nationality,
            date_of_birth=self.date_of_birth,
            national_id_number=self.national_id_number,
            selfie_image=_upload(self.selfie_image),
            id_front_image=_upload(self.id_front_image),
            id_back_image=_upload(self.id_back_image),
        )


class EmailRequest(BaseModel):
    """Request model carrying only an email (resend, forgot password)."""

    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class RegisteredEmail(BaseModel):
    email: str


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    phone: str | None
    role: Role
    is_active: bool
    pending_verification: bool


class TokensResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    access_token: str
    refresh_token: str
    expires_in_access: str
    expires_in_refresh: str


class AuthResponse(BaseModel):
    """Profile plus freshly issued tokens (verify-email, login)."""

    user: ProfileResponse
    tokens: TokensResponse


# ----------------------------------------------------------------------
# Properties
# ----------------------------------------------------------------------


class PropertyCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    type: PropertyType
    price: str = Field(..., min_length=1)
    size_number: str = Field(..., min_length=1)
    size_unit: SizeUnit
    address: str = Field(..., min_length=1)
    coordinates: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    owner_contact: str = Field(..., min_length=1)
    owner_email: EmailStr
    description: str | None = None
    features: str | None = None
    sector: str | None = None
    block: str | None = None
    bedrooms: int | None = Field(None, ge=0)
    bathrooms: int | None = Field(None, ge=0)
    government_id: Base64Bytes | None = None
    survey_documents: Base64Bytes | None = None

    def to_domain(self) -> PropertyDraft:
        values = self.model_dump(exclude={"government_id", "survey_documents"})
        return PropertyDraft(
            **values,
            government_id=_upload(self.government_id),
            survey_documents=_upload(self.survey_documents),
        )


class PropertyUpdateRequest(BaseModel):
    """Partial edit; omitted fields keep their current value."""

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
    bedrooms: int | None = Field(None, ge=0)
    bathrooms: int | None = Field(None, ge=0)
    owner_name: str | None = None
    owner_contact: str | None = None
    owner_email: EmailStr | None = None
    government_id: Base64Bytes | None = None
    survey_documents: Base64Bytes | None = None

    def to_domain(self) -> PropertyPatch:
        values = self.model_dump(exclude={"government_id", "survey_documents"})
        return PropertyPatch(
            **values,
            government_id=_upload(self.government_id),
            survey_documents=_upload(self.survey_documents),
        )


class TransferRequestBody(BaseModel):
    new_owner_name: str = Field(..., min_length=1)
    new_owner_contact: str = Field(..., min_length=1)
    new_owner_email: EmailStr
    transfer_reason: str | None = None
    transfer_documents: Base64Bytes | None = None

    def to_domain(self) -> TransferRequest:
        return TransferRequest(
            new_owner_name=self.new_owner_name,
            new_owner_contact=self.new_owner_contact,
            new_owner_email=self.new_owner_email,
            transfer_reason=self.transfer_reason,
            transfer_documents=_upload(self.transfer_documents),
        )


class AdjudicationRequest(BaseModel):
    """Admin decision on a property or a transfer."""

    action: AdjudicationAction
    notes: str
    rejection_reason: str | None = None

    def to_domain(self) -> Adjudication:
        return Adjudication(self.action, self.notes, self.rejection_reason)


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    url: str


class PropertyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    documents: list[DocumentResponse] = []
    verification_notes: str | None = None
    verified_date: datetime | None = None
    verified_by: str | None = None
    rejected_date: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
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
    transfer_documents: list[DocumentResponse] = []
    previous_owner_id: str | None = None


class TransferDecisionResponse(BaseModel):
    """Adjudicated transfer plus how the new owner was resolved."""

    property: PropertyResponse
    owner_resolution: str | None = None


class PageResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_properties: int
    pending_verification: int
    verified_properties: int
    rejected_properties: int
    pending_transfers: int


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------


class UserResponse(BaseModel):
    """Admin view of an account; credentials and reset tokens are never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
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
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    selfie_image: Base64Bytes | None = None
    id_front_image: Base64Bytes | None = None
    id_back_image: Base64Bytes | None = None

    def to_domain(self) -> ProfileUpdate:
        return ProfileUpdate(
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
            email=self.email,
            selfie_image=_upload(self.selfie_image),
            id_front_image=_upload(self.id_front_image),
            id_back_image=_upload(self.id_back_image),
        )


class CreateUserRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    role: Role
    password: str | None = Field(None, min_length=8)
    surname: str | None = None
    other_names: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    national_id_number: str | None = None

    def to_domain(self) -> NewAccount:
        return NewAccount(**self.model_dump())


class UpdateUserRequest(BaseModel):
    email: EmailStr | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: Role | None = None
    is_active: bool | None = None

    def to_domain(self) -> AccountPatch:
        return AccountPatch(**self.model_dump())
