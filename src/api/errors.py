"""
Domain exception to HTTP response mapping.

Messages of dependency failures are already generic; internal detail is
logged by the adapters and never echoed to the caller.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.exceptions import (
    DependencyFailure,
    EmailAlreadyRegistered,
    Forbidden,
    InvalidTransition,
    RecordNotFound,
    RegistrationExpired,
    RegistrationPending,
    RegistryError,
    Unauthorized,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

# Most specific first: Forbidden subclasses Unauthorized
_STATUS_BY_ERROR: tuple[tuple[type[RegistryError], int], ...] = (
    (EmailAlreadyRegistered, status.HTTP_409_CONFLICT),
    (RegistrationPending, status.HTTP_409_CONFLICT),
    (RecordNotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (DependencyFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)

_STABLE_MESSAGES: dict[type[RegistryError], str] = {
    EmailAlreadyRegistered: "Email already registered",
    RegistrationPending: "A registration for this email is awaiting verification",
    RegistrationExpired: "Verification link has expired. Please register again",
}


def status_for(exc: RegistryError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def message_for(exc: RegistryError) -> str:
    return _STABLE_MESSAGES.get(type(exc)) or str(exc) or "Request failed"


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=code, content={"detail": message_for(exc)}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistryError, registry_error_handler)
