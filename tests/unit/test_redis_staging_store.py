"""
Unit tests for RedisStagingStore adapter.

The redis client is mocked; tests verify the commands issued and that
redis errors surface as DependencyFailure.
"""

from unittest.mock import MagicMock

import pytest
import redis

from src.adapters.staging.redis_store import RedisStagingStore
from src.domain.exceptions import DependencyFailure


@pytest.fixture
def client() -> MagicMock:
    return MagicMock(spec=redis.Redis)


class TestCommands:
    """Tests for the issued redis commands."""

    def test_claim_uses_set_nx(self, client: MagicMock) -> None:
        client.set.return_value = True

        assert RedisStagingStore(client).claim("verify:a@example.com", "{}", 600) is True
        client.set.assert_called_once_with("verify:a@example.com", "{}", nx=True, ex=600)

    def test_claim_reports_held_key(self, client: MagicMock) -> None:
        """SET NX returns None when the key exists."""
        client.set.return_value = None

        assert RedisStagingStore(client).claim("verify:a@example.com", "{}", 600) is False

    def test_set_overwrites_with_ttl(self, client: MagicMock) -> None:
        RedisStagingStore(client).set("token:abc", "a@example.com", 600)

        client.set.assert_called_once_with("token:abc", "a@example.com", ex=600)

    def test_get_returns_value(self, client: MagicMock) -> None:
        client.get.return_value = "a@example.com"

        assert RedisStagingStore(client).get("token:abc") == "a@example.com"

    def test_get_missing_key(self, client: MagicMock) -> None:
        client.get.return_value = None

        assert RedisStagingStore(client).get("token:missing") is None

    def test_delete(self, client: MagicMock) -> None:
        RedisStagingStore(client).delete("token:abc")

        client.delete.assert_called_once_with("token:abc")


class TestFailures:
    """Tests for error translation."""

    @pytest.mark.parametrize(
        "method,args",
        [
            ("claim", ("k", "v", 60)),
            ("set", ("k", "v", 60)),
            ("get", ("k",)),
            ("delete", ("k",)),
        ],
    )
    def test_redis_errors_become_dependency_failure(self, client: MagicMock, method: str, args: tuple) -> None:
        client.set.side_effect = redis.ConnectionError("down")
        client.get.side_effect = redis.ConnectionError("down")
        client.delete.side_effect = redis.ConnectionError("down")

        with pytest.raises(DependencyFailure, match="Staging store unavailable"):
            getattr(RedisStagingStore(client), method)(*args)

    def test_ping_reports_down_without_raising(self, client: MagicMock) -> None:
        client.ping.side_effect = redis.TimeoutError("slow")

        assert RedisStagingStore(client).ping() is False

    def test_ping_healthy(self, client: MagicMock) -> None:
        client.ping.return_value = True

        assert RedisStagingStore(client).ping() is True
