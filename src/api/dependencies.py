"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Long-lived clients (database pool, Redis, Supabase) are created in the
application lifespan and stored in app.state; adapters and services are
cheap wrappers built per request.
"""

from datetime import timedelta

import redis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool
from supabase import Client

from src.adapters.repository.postgres import PostgresPropertyRepository, PostgresUserRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailer import SmtpEmailSender
from src.adapters.staging.redis_store import RedisStagingStore
from src.adapters.storage.supabase_store import SupabaseBlobStore
from src.adapters.tokens.jwt_issuer import JwtTokenIssuer
from src.config.settings import Settings, get_settings
from src.domain.accounts import AccountService
from src.domain.exceptions import Forbidden, InvalidCredentials
from src.domain.models import Principal, Role
from src.domain.onboarding import OnboardingService
from src.domain.ownership import OwnershipResolver
from src.domain.ports import EmailSender, TokenIssuer
from src.domain.properties import PropertyService

# Module-level singleton - ConsoleEmailSender is stateless
_console_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_redis(request: Request) -> redis.Redis:
    return request.app.state.redis


def get_supabase(request: Request) -> Client:
    return request.app.state.supabase


def get_user_repository(pool: ConnectionPool = Depends(get_pool)) -> PostgresUserRepository:
    return PostgresUserRepository(pool)


def get_property_repository(pool: ConnectionPool = Depends(get_pool)) -> PostgresPropertyRepository:
    return PostgresPropertyRepository(pool)


def get_staging_store(client: redis.Redis = Depends(get_redis)) -> RedisStagingStore:
    return RedisStagingStore(client)


def get_identity_blob_store(
    client: Client = Depends(get_supabase), settings: Settings = Depends(get_settings)
) -> SupabaseBlobStore:
    return SupabaseBlobStore(client, settings.identity_bucket)


def get_document_blob_store(
    client: Client = Depends(get_supabase), settings: Settings = Depends(get_settings)
) -> SupabaseBlobStore:
    return SupabaseBlobStore(client, settings.document_bucket)


def get_email_sender(settings: Settings = Depends(get_settings)) -> EmailSender:
    """Console sender for development, SMTP when configured."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
        )
    return _console_sender


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return JwtTokenIssuer(
        access_secret=settings.jwt_secret,
        refresh_secret=settings.refresh_token_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl=timedelta(minutes=settings.access_token_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_days),
    )


def get_onboarding_service(
    settings: Settings = Depends(get_settings),
    users: PostgresUserRepository = Depends(get_user_repository),
    staging: RedisStagingStore = Depends(get_staging_store),
    blobs: SupabaseBlobStore = Depends(get_identity_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> OnboardingService:
    """
    Create onboarding service with injected dependencies.

    Wires together the user store, staging cache, identity bucket, email
    sender and token issuer for the domain service.
    """
    return OnboardingService(
        users=users,
        staging=staging,
        blobs=blobs,
        email_sender=email_sender,
        tokens=tokens,
        staging_ttl_seconds=settings.staging_ttl_seconds,
        reset_ttl_seconds=settings.reset_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
        min_password_length=settings.min_password_length,
        frontend_base_url=settings.frontend_base_url,
    )


def get_property_service(
    properties: PostgresPropertyRepository = Depends(get_property_repository),
    users: PostgresUserRepository = Depends(get_user_repository),
    blobs: SupabaseBlobStore = Depends(get_document_blob_store),
) -> PropertyService:
    return PropertyService(
        properties=properties,
        users=users,
        blobs=blobs,
        resolver=OwnershipResolver(users=users),
    )


def get_account_service(
    settings: Settings = Depends(get_settings),
    users: PostgresUserRepository = Depends(get_user_repository),
    blobs: SupabaseBlobStore = Depends(get_identity_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AccountService:
    return AccountService(
        users=users,
        blobs=blobs,
        email_sender=email_sender,
        reset_ttl_seconds=settings.reset_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
        frontend_base_url=settings.frontend_base_url,
    )


# HTTP Bearer security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> Principal:
    """
    Decode the bearer access token into the calling principal.

    Raises:
        InvalidCredentials: Header missing, token malformed or expired
    """
    if credentials is None or not credentials.credentials.strip():
        raise InvalidCredentials("Not authenticated")
    claims = tokens.decode_access(credentials.credentials)
    return Principal(user_id=claims.subject, role=claims.role)


def require_role(*roles: Role):
    """
    Build a dependency admitting only the given roles.

    The workflows re-check the role against the store; this gate only
    rejects obviously wrong callers early.
    """

    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            raise Forbidden(f"{' or '.join(role.value for role in roles).capitalize()} role required")
        return principal

    return dependency


require_admin = require_role(Role.ADMIN)
require_seller = require_role(Role.SELLER)
