"""
Unit tests for API request/response models.

Tests Pydantic validation and the mapping of request bodies onto domain
inputs.
"""

import base64
import uuid
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.api.models import (
    AdjudicationRequest,
    PropertyCreateRequest,
    PropertyResponse,
    PropertyUpdateRequest,
    RegisterRequest,
    UpdateUserRequest,
    UserResponse,
)
from src.domain.models import (
    AdjudicationAction,
    Document,
    Property,
    PropertyStatus,
    PropertyType,
    Role,
    SizeUnit,
    User,
)


class TestRegisterRequest:
    """Tests for RegisterRequest model."""

    def test_defaults_to_buyer(self) -> None:
        request = RegisterRequest(
            email="ama@example.com", password="secure123", first_name="Ama", last_name="Mensah", phone="1"
        )
        assert request.to_domain().role is Role.BUYER
        assert request.to_domain().selfie_image is None

    def test_admin_role_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(
                email="ama@example.com", password="secure123", first_name="A", last_name="M", phone="1", role="admin"
            )
        assert "role" in str(exc_info.value)

    def test_seller_maps_to_domain_role(self) -> None:
        request = RegisterRequest(
            email="ama@example.com", password="secure123", first_name="A", last_name="M", phone="1", role="seller"
        )
        assert request.to_domain().role is Role.SELLER

    def test_invalid_email_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(email="not-an-email", password="secure123", first_name="A", last_name="M", phone="1")
        assert "email" in str(exc_info.value)

    def test_password_minimum_length(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(email="ama@example.com", password="short", first_name="A", last_name="M", phone="1")
        assert "password" in str(exc_info.value)

    def test_base64_documents_are_decoded(self) -> None:
        request = RegisterRequest(
            email="ama@example.com",
            password="secure123",
            first_name="Ama",
            last_name="Mensah",
            phone="1",
            role="seller",
            selfie_image=base64.b64encode(b"jpeg").decode(),
        )

        registration = request.to_domain()

        assert registration.selfie_image.content == b"jpeg"
        assert registration.id_front_image is None

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                email="ama@example.com", password="secure123", first_name="A", last_name="M", phone="1", role="root"
            )


class TestPropertyRequests:
    """Tests for property request bodies."""

    def test_create_maps_to_draft(self) -> None:
        request = PropertyCreateRequest(
            title="Plot 12",
            type="land",
            price="250000",
            size_number="2",
            size_unit="acres",
            address="East Legon",
            coordinates="5.6,-0.1",
            owner_name="Kofi",
            owner_contact="+233",
            owner_email="kofi@example.com",
        )

        draft = request.to_domain()

        assert draft.type is PropertyType.LAND
        assert draft.size_unit is SizeUnit.ACRES
        assert draft.government_id is None

    def test_negative_bedrooms_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PropertyUpdateRequest(bedrooms=-1)

    def test_empty_update_is_all_none(self) -> None:
        patch = PropertyUpdateRequest().to_domain()

        assert patch.title is None
        assert patch.survey_documents is None

    def test_adjudication_action_values(self) -> None:
        decision = AdjudicationRequest(action="reject", notes="n", rejection_reason="r").to_domain()
        assert decision.action is AdjudicationAction.REJECT

        with pytest.raises(ValidationError):
            AdjudicationRequest(action="maybe", notes="n")


class TestResponses:
    """Tests for response serialization from domain objects."""

    def test_property_response_from_domain(self) -> None:
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record = Property(
            id=str(uuid.uuid4()),
            title="Plot 12",
            type=PropertyType.LAND,
            price="250000",
            size="2 acres",
            address="East Legon",
            coordinates="5.6,-0.1",
            owner_id="owner",
            owner_name="Kofi",
            owner_contact="+233",
            owner_email="kofi@example.com",
            status=PropertyStatus.PENDING,
            submitted_date=now,
            last_updated=now,
            documents=(Document("governmentId.jpg", "https://cdn/a.jpg"),),
        )

        response = PropertyResponse.model_validate(record)

        assert response.documents[0].name == "governmentId.jpg"
        assert response.model_dump(mode="json")["status"] == "pending"

    def test_user_response_hides_secrets(self) -> None:
        user = User(
            id="u1",
            email="a@example.com",
            password_hash="$2b$04$hash",
            first_name="A",
            last_name="B",
            phone=None,
            role=Role.BUYER,
            is_active=True,
            pending_verification=False,
            reset_token="secret-token",
        )

        dumped = UserResponse.model_validate(user).model_dump()

        assert "password_hash" not in dumped
        assert "reset_token" not in dumped

    def test_update_user_request_partial(self) -> None:
        patch = UpdateUserRequest(is_active=False).to_domain()

        assert patch.is_active is False
        assert patch.role is None
