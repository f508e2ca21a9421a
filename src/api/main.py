"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.adapters.staging.redis_store import RedisStagingStore, create_redis_client
from src.adapters.storage.supabase_store import create_supabase_client
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "auth", "description": "Staged registration, email verification, sessions and password reset"},
    {"name": "properties", "description": "Property submission, verification and ownership transfer"},
    {"name": "users", "description": "Profile self-service and admin user management"},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool, Redis client and Supabase client
    - Runs migrations on startup
    - Closes pool and Redis client on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    if not settings.supabase_service_role_key:
        pool.close()
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY must be set for document storage")

    # Store clients in app state for dependency injection
    app.state.pool = pool
    app.state.redis = create_redis_client(settings.redis_url)
    app.state.supabase = create_supabase_client(settings.supabase_url, settings.supabase_service_role_key)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.redis.close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="landsecure",
    description="Land registry API - staged identity onboarding and property lifecycle with ownership transfer",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint with database and Redis validation.

    Returns 200 OK if the application and both stores are reachable,
    503 with per-store status otherwise.
    """
    checks = {"database": "ok", "redis": "ok"}

    try:
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1")
    except psycopg.Error as exc:
        logger.error("Health check: database unreachable: %s", exc)
        checks["database"] = "unavailable"

    if not RedisStagingStore(request.app.state.redis).ping():
        logger.error("Health check: redis unreachable")
        checks["redis"] = "unavailable"

    healthy = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "healthy" if healthy else "unhealthy", **checks},
    )
