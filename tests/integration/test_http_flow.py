"""
Integration tests for the full HTTP flow.

Registration, verification, property submission, adjudication and
transfer run against real PostgreSQL and Redis. Blob storage and email
are replaced by in-memory doubles.
"""

from collections.abc import Iterator

import pytest
import redis
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUserRepository
from src.api.dependencies import get_document_blob_store, get_email_sender, get_identity_blob_store
from src.api.main import app
from src.config.settings import Settings
from src.scripts.seed_admin import seed_admin
from tests.fakes import InMemoryBlobStore, RecordingEmailSender, token_from_email

pytestmark = pytest.mark.integration


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def client(
    pool: ConnectionPool, clean_redis: redis.Redis, email_sender: RecordingEmailSender
) -> Iterator[TestClient]:
    """Client bound to the live stores; lifespan is not run."""
    blobs = InMemoryBlobStore()
    app.state.pool = pool
    app.state.redis = clean_redis
    app.dependency_overrides[get_identity_blob_store] = lambda: blobs
    app.dependency_overrides[get_document_blob_store] = lambda: blobs
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield TestClient(app)
    app.dependency_overrides.clear()


def register_and_verify(client: TestClient, email_sender: RecordingEmailSender, email: str, role: str) -> dict:
    response = client.post(
        "/v1/auth/register",
        json={
            "email": email,
            "password": "password123",
            "first_name": "Test",
            "last_name": role.title(),
            "phone": "+233200000000",
            "role": role,
        },
    )
    assert response.status_code == 201
    verified = client.get("/v1/auth/verify-email", params={"token": token_from_email(email_sender.last[2])})
    assert verified.status_code == 200
    return verified.json()["data"]


def bearer(account: dict) -> dict:
    return {"Authorization": f"Bearer {account['tokens']['access_token']}"}


class TestHealth:
    """Tests for /health against live stores."""

    def test_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "ok", "redis": "ok"}


class TestOnboardingFlow:
    """Tests for registration through login."""

    def test_buyer_registers_verifies_and_logs_in(self, client: TestClient, email_sender) -> None:
        account = register_and_verify(client, email_sender, "buyer@example.com", "buyer")
        assert account["user"]["is_active"] is True

        login = client.post("/v1/auth/login", json={"email": "buyer@example.com", "password": "password123"})
        assert login.status_code == 200

        me = client.get("/v1/users/me", headers=bearer(login.json()["data"]))
        assert me.json()["data"]["email"] == "buyer@example.com"

    def test_verification_link_is_single_use(self, client: TestClient, email_sender) -> None:
        client.post(
            "/v1/auth/register",
            json={
                "email": "once@example.com",
                "password": "password123",
                "first_name": "Once",
                "last_name": "Only",
                "phone": "1",
            },
        )
        token = token_from_email(email_sender.last[2])

        assert client.get("/v1/auth/verify-email", params={"token": token}).status_code == 200
        assert client.get("/v1/auth/verify-email", params={"token": token}).status_code == 404

    def test_seller_waits_for_approval(self, client: TestClient, email_sender) -> None:
        account = register_and_verify(client, email_sender, "seller@example.com", "seller")

        assert account["user"]["pending_verification"] is True
        login = client.post("/v1/auth/login", json={"email": "seller@example.com", "password": "password123"})
        assert login.status_code == 401


class TestPropertyFlow:
    """Tests for submission, verification and transfer."""

    def test_submit_verify_transfer(self, client: TestClient, email_sender, pool: ConnectionPool) -> None:
        register_and_verify(client, email_sender, "seller@example.com", "seller")
        seed_admin(
            PostgresUserRepository(pool),
            Settings(_env_file=None, admin_email="admin@example.com", admin_password="password123"),
        )
        with pool.connection() as conn:
            conn.execute("UPDATE users SET is_active = TRUE WHERE email = 'seller@example.com'")
            conn.commit()
        seller = client.post("/v1/auth/login", json={"email": "seller@example.com", "password": "password123"})
        admin = client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "password123"})
        seller_headers = bearer(seller.json()["data"])
        admin_headers = bearer(admin.json()["data"])

        created = client.post(
            "/v1/properties",
            json={
                "title": "Plot 12, East Legon",
                "type": "land",
                "price": "250000",
                "size_number": "2",
                "size_unit": "acres",
                "address": "East Legon, Accra",
                "coordinates": "5.6350,-0.1570",
                "owner_name": "Test Seller",
                "owner_contact": "+233200000000",
                "owner_email": "seller@example.com",
            },
            headers=seller_headers,
        )
        assert created.status_code == 201
        property_id = created.json()["data"]["id"]

        approved = client.post(f"/v1/properties/{property_id}/quick-approve", headers=admin_headers)
        assert approved.json()["data"]["status"] == "verified"

        requested = client.post(
            f"/v1/properties/{property_id}/transfer",
            json={
                "new_owner_name": "Efua Owusu",
                "new_owner_contact": "+233200000003",
                "new_owner_email": "efua@example.com",
            },
            headers=seller_headers,
        )
        assert requested.status_code == 200

        decided = client.post(
            f"/v1/properties/{property_id}/transfer/verify",
            json={"action": "approve", "notes": "Sale agreement checked"},
            headers=admin_headers,
        )
        assert decided.status_code == 200
        assert decided.json()["data"]["owner_resolution"] == "provisioned_without_credentials"

        stats = client.get("/v1/properties/stats", headers=admin_headers)
        assert stats.json()["data"]["verified_properties"] == 1
