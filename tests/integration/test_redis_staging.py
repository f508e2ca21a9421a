"""
Integration tests for RedisStagingStore.

Requires Redis to be running (via docker-compose).
"""

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
import redis

from src.adapters.staging.redis_store import RedisStagingStore

pytestmark = pytest.mark.integration


@pytest.fixture
def store(clean_redis: redis.Redis) -> RedisStagingStore:
    return RedisStagingStore(clean_redis)


class TestRedisStagingStore:
    """Tests against a live Redis."""

    def test_set_get_delete(self, store: RedisStagingStore) -> None:
        store.set("token:abc", "ama@example.com", 60)

        assert store.get("token:abc") == "ama@example.com"
        store.delete("token:abc")
        assert store.get("token:abc") is None

    def test_claim_is_exclusive(self, store: RedisStagingStore) -> None:
        assert store.claim("verify:ama@example.com", "first", 60) is True
        assert store.claim("verify:ama@example.com", "second", 60) is False
        assert store.get("verify:ama@example.com") == "first"

    def test_concurrent_claims_one_wins(self, store: RedisStagingStore) -> None:
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda i: store.claim("verify:race@example.com", str(i), 60), range(8)))

        assert results.count(True) == 1

    def test_ttl_evicts(self, store: RedisStagingStore) -> None:
        store.set("token:short", "ama@example.com", 1)

        time.sleep(1.5)

        assert store.get("token:short") is None

    def test_ping(self, store: RedisStagingStore) -> None:
        assert store.ping() is True
