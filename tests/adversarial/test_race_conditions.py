"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent requests against the same email, token or
property are decided exactly once, preventing attackers from exploiting
races to:
- Stage or commit duplicate accounts
- Reuse single-use verification or reset tokens
- Double-adjudicate a property or transfer
"""

import pytest

from src.domain.exceptions import (
    EmailAlreadyRegistered,
    InvalidTransition,
    RecordNotFound,
    RegistrationPending,
)
from src.domain.models import (
    Adjudication,
    AdjudicationAction,
    Principal,
    PropertyStatus,
    RegistrationInput,
    Role,
    TransferRequest,
    TransferStatus,
)
from tests.fakes import TEST_PASSWORD, token_from_email

pytestmark = pytest.mark.adversarial

ATTACKERS = 8


def registration(email: str = "attack@example.com") -> RegistrationInput:
    return RegistrationInput(
        email=email,
        password=TEST_PASSWORD,
        first_name="Eve",
        last_name="Attacker",
        phone="+233200000009",
        role=Role.BUYER,
    )


def principal(user) -> Principal:
    return Principal(user_id=user.id, role=user.role)


class TestOnboardingRaces:
    """Concurrent onboarding requests for one email."""

    def test_concurrent_registration_exactly_one_staged(
        self, onboarding, staging, email_sender, concurrently
    ) -> None:
        results = concurrently(lambda _: onboarding.register(registration()), ATTACKERS)

        winners = [result for result in results if result == "attack@example.com"]
        assert len(winners) == 1
        assert all(isinstance(result, RegistrationPending) for result in results if result not in winners)
        assert len(email_sender.sent) == 1
        assert {key for key in staging.keys() if key.startswith("token:")} == {
            f"token:{token_from_email(email_sender.last[2])}"
        }

    def test_concurrent_verification_creates_one_user(
        self, onboarding, users, email_sender, concurrently
    ) -> None:
        onboarding.register(registration())
        token = token_from_email(email_sender.last[2])

        results = concurrently(lambda _: onboarding.verify_email(token), ATTACKERS)

        accounts = [result for result in results if not isinstance(result, Exception)]
        assert len(accounts) == 1
        assert all(
            isinstance(result, (RecordNotFound, EmailAlreadyRegistered))
            for result in results
            if isinstance(result, Exception)
        )
        assert [user.email for user in users.rows.values()] == ["attack@example.com"]

    def test_concurrent_password_resets_use_token_once(
        self, onboarding, make_user, email_sender, concurrently
    ) -> None:
        make_user(email="victim@example.com")
        onboarding.forgot_password("victim@example.com")
        token = token_from_email(email_sender.last[2])

        results = concurrently(
            lambda index: onboarding.reset_password(token, f"attacker-password-{index}"), ATTACKERS
        )

        assert results.count(None) == 1
        assert all(isinstance(result, RecordNotFound) for result in results if result is not None)


class TestPropertyRaces:
    """Concurrent state transitions on one property."""

    def test_concurrent_adjudication_one_decision(
        self, property_service, property_repo, make_user, make_property, concurrently
    ) -> None:
        seller = make_user(role=Role.SELLER)
        admins = [make_user(role=Role.ADMIN) for _ in range(ATTACKERS)]
        record = make_property(seller)
        decisions = [
            Adjudication(AdjudicationAction.APPROVE, "ok"),
            Adjudication(AdjudicationAction.REJECT, "no", "Forged deed"),
        ]

        results = concurrently(
            lambda index: property_service.adjudicate(
                record.id, decisions[index % 2], principal(admins[index])
            ),
            ATTACKERS,
        )

        applied = [result for result in results if not isinstance(result, Exception)]
        assert len(applied) == 1
        assert all(isinstance(result, InvalidTransition) for result in results if result not in applied)
        final = property_repo.get(record.id)
        assert final.status is applied[0].status
        assert final.status is not PropertyStatus.PENDING

    def test_concurrent_transfer_requests_one_pending(
        self, property_service, property_repo, make_user, make_property, concurrently
    ) -> None:
        seller = make_user(role=Role.SELLER)
        record = make_property(seller, status=PropertyStatus.VERIFIED)

        results = concurrently(
            lambda index: property_service.request_transfer(
                record.id,
                TransferRequest("Buyer", "+233", f"buyer{index}@example.com"),
                principal(seller),
            ),
            ATTACKERS,
        )

        applied = [result for result in results if not isinstance(result, Exception)]
        assert len(applied) == 1
        assert all(isinstance(result, InvalidTransition) for result in results if result not in applied)
        assert property_repo.get(record.id).new_owner_email == applied[0].new_owner_email

    def test_concurrent_transfer_approvals_reassign_once(
        self, property_service, property_repo, users, make_user, make_property, concurrently
    ) -> None:
        seller = make_user(role=Role.SELLER)
        admins = [make_user(role=Role.ADMIN) for _ in range(ATTACKERS)]
        record = make_property(seller, status=PropertyStatus.VERIFIED)
        property_service.request_transfer(
            record.id, TransferRequest("Efua Owusu", "+233", "efua@example.com"), principal(seller)
        )

        results = concurrently(
            lambda index: property_service.adjudicate_transfer(
                record.id, Adjudication(AdjudicationAction.APPROVE, "ok"), principal(admins[index])
            ),
            ATTACKERS,
        )

        applied = [result for result in results if not isinstance(result, Exception)]
        assert len(applied) == 1
        assert all(isinstance(result, InvalidTransition) for result in results if result not in applied)
        final = property_repo.get(record.id)
        assert final.transfer_status is TransferStatus.VERIFIED
        assert final.previous_owner_id == seller.id
        provisioned = [user for user in users.rows.values() if user.email == "efua@example.com"]
        assert len(provisioned) == 1
        assert final.owner_id == provisioned[0].id
