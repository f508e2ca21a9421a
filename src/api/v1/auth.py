"""
API v1 auth routes.

Defines REST endpoints for staged registration, email verification,
sessions and password reset.
"""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_onboarding_service
from src.api.models import (
    AuthResponse,
    EmailRequest,
    Envelope,
    ErrorResponse,
    LoginRequest,
    ProfileResponse,
    RefreshRequest,
    RegisteredEmail,
    RegisterRequest,
    ResetPasswordRequest,
    TokensResponse,
)
from src.domain.models import VerifiedAccount
from src.domain.onboarding import OnboardingService

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(account: VerifiedAccount) -> AuthResponse:
    return AuthResponse(
        user=ProfileResponse.model_validate(account.profile),
        tokens=TokensResponse.model_validate(account.tokens),
    )


@router.post(
    "/register",
    response_model=Envelope[RegisteredEmail],
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered or awaiting verification"},
        503: {"model": ErrorResponse, "description": "Upload, cache or email step failed"},
    },
    summary="Register a new user",
    description="Stage a registration and email a verification link. "
    "Sellers may attach base64 encoded identity documents.",
)
def register(
    request_data: RegisterRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[RegisteredEmail]:
    """
    Register a new user and send the verification email.

    Nothing is committed until the emailed link is followed.
    """
    email = service.register(request_data.to_domain())
    return Envelope(
        status_code=status.HTTP_201_CREATED,
        message="Registration initiated. Please check your email to verify your account.",
        data=RegisteredEmail(email=email),
    )


@router.get(
    "/verify-email",
    response_model=Envelope[AuthResponse],
    responses={
        404: {"model": ErrorResponse, "description": "Unknown, used or expired token"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    summary="Verify email and create the account",
)
def verify_email(
    token: str = Query(..., description="Token from the verification link"),
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[AuthResponse]:
    account = service.verify_email(token)
    message = "Email verified successfully"
    if account.profile.pending_verification:
        message += ". Your seller account is awaiting document review."
    return Envelope(status_code=status.HTTP_200_OK, message=message, data=_auth_response(account))


@router.post(
    "/resend-verification",
    response_model=Envelope[RegisteredEmail],
    responses={404: {"model": ErrorResponse, "description": "No pending registration"}},
    summary="Resend the verification email with a new token",
)
def resend_verification(
    request_data: EmailRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[RegisteredEmail]:
    email = service.resend_verification(request_data.email)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Verification email resent successfully",
        data=RegisteredEmail(email=email),
    )


@router.post(
    "/login",
    response_model=Envelope[AuthResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or inactive account"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[AuthResponse]:
    account = service.login(request_data.email, request_data.password)
    return Envelope(status_code=status.HTTP_200_OK, message="Login successful", data=_auth_response(account))


@router.post(
    "/refresh",
    response_model=Envelope[TokensResponse],
    responses={401: {"model": ErrorResponse, "description": "Invalid refresh token"}},
    summary="Exchange a refresh token for a new access token",
)
def refresh(
    request_data: RefreshRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[TokensResponse]:
    tokens = service.refresh(request_data.refresh_token)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Token refreshed successfully",
        data=TokensResponse.model_validate(tokens),
    )


@router.post(
    "/forgot-password",
    response_model=Envelope[RegisteredEmail],
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Email a password reset link",
)
def forgot_password(
    request_data: EmailRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[RegisteredEmail]:
    email = service.forgot_password(request_data.email)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Password reset email sent",
        data=RegisteredEmail(email=email),
    )


@router.post(
    "/reset-password",
    response_model=Envelope[None],
    responses={
        400: {"model": ErrorResponse, "description": "Password too short"},
        404: {"model": ErrorResponse, "description": "Unknown, used or expired token"},
    },
    summary="Set a new password with a reset token",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[None]:
    service.reset_password(request_data.token, request_data.new_password)
    return Envelope(status_code=status.HTTP_200_OK, message="Password reset successfully")


@router.post(
    "/logout",
    response_model=Envelope[None],
    responses={401: {"model": ErrorResponse, "description": "Refresh token missing"}},
    summary="Log out (client discards its tokens)",
)
def logout(
    request_data: RefreshRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> Envelope[None]:
    service.logout(request_data.refresh_token)
    return Envelope(status_code=status.HTTP_200_OK, message="Logged out successfully")
