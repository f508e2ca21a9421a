"""
Redis staging store adapter - Implements StagingStore protocol.

Holds staged registrations and token mappings until verification. Every
key carries a TTL; `claim` uses SET NX so only one registration per
email can be staged at a time.
"""

import logging

import redis

from src.domain.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


class RedisStagingStore:
    """
    Implements StagingStore protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The client must be created with decode_responses=True.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def claim(self, key: str, value: str, ttl_seconds: int) -> bool:
        """
        Write the key only if it does not exist (SET NX EX).

        Returns:
            True if written, False if the key is already held
        """
        try:
            return bool(self._client.set(key, value, nx=True, ex=ttl_seconds))
        except redis.RedisError as exc:
            logger.error("Redis claim of %s failed: %s", key, exc)
            raise DependencyFailure("Staging store unavailable") from exc

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            logger.error("Redis write of %s failed: %s", key, exc)
            raise DependencyFailure("Staging store unavailable") from exc

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            logger.error("Redis read of %s failed: %s", key, exc)
            raise DependencyFailure("Staging store unavailable") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            logger.error("Redis delete of %s failed: %s", key, exc)
            raise DependencyFailure("Staging store unavailable") from exc

    def ping(self) -> bool:
        """Health probe; False instead of raising when Redis is down."""
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False


def create_redis_client(url: str) -> redis.Redis:
    return redis.Redis.from_url(url, decode_responses=True)
