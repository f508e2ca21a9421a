"""
Shared fixtures for integration tests.

Requires PostgreSQL and Redis to be running (via docker-compose). Tests
that need a store are skipped when it cannot be reached.
"""

from collections.abc import Generator

import psycopg
import pytest
import redis
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.adapters.staging.redis_store import create_redis_client
from src.config.settings import get_settings


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create a migrated connection pool, or skip without PostgreSQL."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as exc:
        pytest.skip(f"PostgreSQL not reachable: {exc}")

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Empty the tables before each test that uses the database."""
    if "pool" in request.fixturenames:
        pool: ConnectionPool = request.getfixturevalue("pool")
        with pool.connection() as conn:
            conn.execute("DELETE FROM properties")
            conn.execute("DELETE FROM users")
            conn.commit()
    yield


@pytest.fixture(scope="module")
def redis_client() -> Generator[redis.Redis, None, None]:
    """Redis client on the configured database, or skip without Redis."""
    client = create_redis_client(get_settings().redis_url)
    try:
        client.ping()
    except redis.RedisError as exc:
        pytest.skip(f"Redis not reachable: {exc}")
    yield client
    client.close()


@pytest.fixture
def clean_redis(redis_client: redis.Redis) -> redis.Redis:
    """Remove staging keys left by earlier tests."""
    for pattern in ("verify:*", "token:*"):
        for key in redis_client.scan_iter(pattern):
            redis_client.delete(key)
    return redis_client
