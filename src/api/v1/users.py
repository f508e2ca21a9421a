"""
API v1 user routes.

Profile self-service for any authenticated user, plus admin user
management and seller approval.
"""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_account_service, get_principal, require_admin
from src.api.models import (
    CreateUserRequest,
    Envelope,
    ErrorResponse,
    PageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    UpdateUserRequest,
    UserResponse,
)
from src.domain.accounts import AccountService
from src.domain.exceptions import ValidationFailure
from src.domain.models import Principal, Role, UserQuery

router = APIRouter(prefix="/users", tags=["users"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not found"}}


def _active_filter(value: str | None) -> bool | None:
    """Map the `status` filter ("active" / "inactive" / "all") to is_active."""
    if value is None or value == "" or value.lower() == "all":
        return None
    if value.lower() not in ("active", "inactive"):
        raise ValidationFailure("Invalid status")
    return value.lower() == "active"


def _role_filter(value: str | None) -> Role | None:
    if value is None or value == "" or value.lower() == "all":
        return None
    try:
        return Role(value.lower())
    except ValueError:
        raise ValidationFailure("Invalid role") from None


@router.get("/me", response_model=Envelope[ProfileResponse], summary="Get my profile")
def my_profile(
    principal: Principal = Depends(get_principal),
    service: AccountService = Depends(get_account_service),
) -> Envelope[ProfileResponse]:
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Profile retrieved successfully",
        data=ProfileResponse.model_validate(service.profile(principal.user_id)),
    )


@router.patch(
    "/me",
    response_model=Envelope[UserResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Only sellers can upload documents"},
        409: {"model": ErrorResponse, "description": "Documents can no longer be replaced"},
    },
    summary="Update my profile",
)
def update_my_profile(
    request_data: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    service: AccountService = Depends(get_account_service),
) -> Envelope[UserResponse]:
    update = request_data.to_domain()
    updated = service.update_profile(principal.user_id, update)
    message = "Profile updated successfully"
    if update.has_documents:
        message = "Profile and documents updated for verification"
    return Envelope(status_code=status.HTTP_200_OK, message=message, data=UserResponse.model_validate(updated))


@router.get("", response_model=Envelope[PageResponse[UserResponse]], summary="List users")
def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    search: str | None = Query(None, description="Matches email, first or last name"),
    role: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status", description="active, inactive or all"),
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[PageResponse[UserResponse]]:
    query = UserQuery(
        page=page,
        limit=limit,
        search=search or None,
        role=_role_filter(role),
        is_active=_active_filter(status_filter),
    )
    result = service.list_users(query, admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Users retrieved successfully",
        data=PageResponse[UserResponse](
            items=[UserResponse.model_validate(user) for user in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
        ),
    )


@router.post(
    "",
    response_model=Envelope[UserResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
    summary="Create a user (admin)",
)
def create_user(
    request_data: CreateUserRequest,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[UserResponse]:
    created = service.create_user(request_data.to_domain(), admin)
    return Envelope(
        status_code=status.HTTP_201_CREATED,
        message="User created successfully",
        data=UserResponse.model_validate(created),
    )


@router.get("/{user_id}", response_model=Envelope[UserResponse], responses=_NOT_FOUND, summary="Get a user")
def get_user(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[UserResponse]:
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="User retrieved successfully",
        data=UserResponse.model_validate(service.get_user(user_id, admin)),
    )


@router.patch("/{user_id}", response_model=Envelope[UserResponse], responses=_NOT_FOUND, summary="Update a user")
def update_user(
    user_id: str,
    request_data: UpdateUserRequest,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[UserResponse]:
    updated = service.update_user(user_id, request_data.to_domain(), admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="User updated successfully",
        data=UserResponse.model_validate(updated),
    )


@router.post(
    "/{user_id}/approve",
    response_model=Envelope[UserResponse],
    responses={**_NOT_FOUND, 409: {"model": ErrorResponse, "description": "Not a seller awaiting review"}},
    summary="Activate a seller after document review",
)
def approve_seller(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[UserResponse]:
    approved = service.approve_seller(user_id, admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Seller approved successfully",
        data=UserResponse.model_validate(approved),
    )


@router.delete("/{user_id}", response_model=Envelope[None], responses=_NOT_FOUND, summary="Delete a user")
def delete_user(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> Envelope[None]:
    service.delete_user(user_id, admin)
    return Envelope(status_code=status.HTTP_200_OK, message="User soft deleted successfully")
