"""
Integration tests for OpenAPI documentation.

Verifies the OpenAPI schema is generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_title_and_version(self, schema: dict) -> None:
        assert schema["info"]["title"] == "landsecure"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        "path,method",
        [
            ("/v1/auth/register", "post"),
            ("/v1/auth/verify-email", "get"),
            ("/v1/auth/resend-verification", "post"),
            ("/v1/auth/login", "post"),
            ("/v1/auth/refresh", "post"),
            ("/v1/auth/forgot-password", "post"),
            ("/v1/auth/reset-password", "post"),
            ("/v1/auth/logout", "post"),
            ("/v1/properties", "post"),
            ("/v1/properties", "get"),
            ("/v1/properties/stats", "get"),
            ("/v1/properties/verification", "get"),
            ("/v1/properties/{property_id}", "patch"),
            ("/v1/properties/{property_id}/verify", "post"),
            ("/v1/properties/{property_id}/quick-approve", "post"),
            ("/v1/properties/{property_id}/quick-reject", "post"),
            ("/v1/properties/{property_id}/transfer", "post"),
            ("/v1/properties/{property_id}/transfer/verify", "post"),
            ("/v1/users/me", "get"),
            ("/v1/users/{user_id}/approve", "post"),
        ],
    )
    def test_endpoint_documented(self, schema: dict, path: str, method: str) -> None:
        assert method in schema["paths"][path]

    def test_register_summary(self, schema: dict) -> None:
        assert schema["paths"]["/v1/auth/register"]["post"]["summary"] == "Register a new user"

    def test_conflict_documented_for_register(self, schema: dict) -> None:
        assert "409" in schema["paths"]["/v1/auth/register"]["post"]["responses"]

    def test_bearer_security_scheme(self, schema: dict) -> None:
        assert schema["components"]["securitySchemes"]["HTTPBearer"]["type"] == "http"

    def test_register_request_fields(self, schema: dict) -> None:
        properties = schema["components"]["schemas"]["RegisterRequest"]["properties"]
        for field in ("email", "password", "first_name", "last_name", "phone", "role", "selfie_image"):
            assert field in properties
