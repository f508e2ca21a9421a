"""
API v1 property routes.

Defines REST endpoints for property submission, listing, admin
verification and ownership transfer.
"""

from enum import Enum
from typing import TypeVar

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_principal, get_property_service, require_admin, require_seller
from src.api.models import (
    AdjudicationRequest,
    DocumentResponse,
    Envelope,
    ErrorResponse,
    PageResponse,
    PropertyCreateRequest,
    PropertyResponse,
    PropertyUpdateRequest,
    StatsResponse,
    TransferDecisionResponse,
    TransferRequestBody,
)
from src.domain.exceptions import ValidationFailure
from src.domain.models import Page, Principal, Property, PropertyQuery, PropertyStatus, PropertyType
from src.domain.properties import PropertyService

router = APIRouter(prefix="/properties", tags=["properties"])

E = TypeVar("E", bound=Enum)

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Property not found"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Transition not allowed from the current state"}}


def _enum_filter(enum: type[E], value: str | None, label: str) -> E | None:
    """Parse an optional filter; blank or "all" means no filter."""
    if value is None or value == "" or value.lower() == "all":
        return None
    try:
        return enum(value.lower())
    except ValueError:
        raise ValidationFailure(f"Invalid {label}") from None


def _page(result: Page[Property]) -> PageResponse[PropertyResponse]:
    return PageResponse[PropertyResponse](
        items=[PropertyResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.post(
    "",
    response_model=Envelope[PropertyResponse],
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Caller is not a seller"}},
    summary="Submit a property for verification",
)
def create_property(
    request_data: PropertyCreateRequest,
    seller: Principal = Depends(require_seller),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    created = service.submit(request_data.to_domain(), seller)
    return Envelope(
        status_code=status.HTTP_201_CREATED,
        message="Property created successfully",
        data=PropertyResponse.model_validate(created),
    )


@router.get(
    "",
    response_model=Envelope[PageResponse[PropertyResponse]],
    summary="List properties",
)
def list_properties(
    page: int = Query(1),
    limit: int = Query(10),
    search: str | None = Query(None, description="Matches title, owner name or id"),
    type: str | None = Query(None, description="Property type or 'all'"),
    status_filter: str | None = Query(None, alias="status", description="Status or 'all'"),
    _: Principal = Depends(get_principal),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PageResponse[PropertyResponse]]:
    query = PropertyQuery(
        page=page,
        limit=limit,
        search=search or None,
        type=_enum_filter(PropertyType, type, "property type"),
        status=_enum_filter(PropertyStatus, status_filter, "status"),
    )
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Properties retrieved successfully",
        data=_page(service.search(query)),
    )


@router.get(
    "/stats",
    response_model=Envelope[StatsResponse],
    summary="Property counts by status",
)
def property_stats(
    _: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[StatsResponse]:
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Statistics retrieved successfully",
        data=StatsResponse.model_validate(service.stats()),
    )


@router.get(
    "/verification",
    response_model=Envelope[PageResponse[PropertyResponse]],
    responses={400: {"model": ErrorResponse, "description": "Invalid status"}},
    summary="List properties in one verification status",
)
def properties_for_verification(
    status_filter: str = Query(..., alias="status"),
    page: int = Query(1),
    limit: int = Query(10),
    search: str | None = Query(None),
    _: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PageResponse[PropertyResponse]]:
    query = PropertyQuery(
        page=page,
        limit=limit,
        search=search or None,
        status=_enum_filter(PropertyStatus, status_filter, "status"),
    )
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Properties retrieved successfully",
        data=_page(service.list_for_verification(query)),
    )


@router.get(
    "/{property_id}",
    response_model=Envelope[PropertyResponse],
    responses=_NOT_FOUND,
    summary="Get a property",
)
def get_property(
    property_id: str,
    _: Principal = Depends(get_principal),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Property retrieved successfully",
        data=PropertyResponse.model_validate(service.get(property_id)),
    )


@router.patch(
    "/{property_id}",
    response_model=Envelope[PropertyResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Edit a property (returns it to pending)",
)
def update_property(
    property_id: str,
    request_data: PropertyUpdateRequest,
    seller: Principal = Depends(require_seller),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    updated = service.update(property_id, request_data.to_domain(), seller)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Property updated successfully",
        data=PropertyResponse.model_validate(updated),
    )


@router.delete(
    "/{property_id}",
    response_model=Envelope[None],
    responses=_NOT_FOUND,
    summary="Delete a property",
)
def delete_property(
    property_id: str,
    seller: Principal = Depends(require_seller),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[None]:
    service.delete(property_id, seller)
    return Envelope(status_code=status.HTTP_200_OK, message="Property deleted successfully")


@router.get(
    "/{property_id}/documents",
    response_model=Envelope[list[DocumentResponse]],
    responses=_NOT_FOUND,
    summary="List a property's documents",
)
def property_documents(
    property_id: str,
    _: Principal = Depends(get_principal),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[list[DocumentResponse]]:
    documents = service.documents(property_id)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Documents retrieved successfully",
        data=[DocumentResponse.model_validate(document) for document in documents],
    )


@router.post(
    "/{property_id}/verify",
    response_model=Envelope[PropertyResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Approve or reject a pending property",
)
def verify_property(
    property_id: str,
    request_data: AdjudicationRequest,
    admin: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    updated = service.adjudicate(property_id, request_data.to_domain(), admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message=f"Property {updated.status.value} successfully",
        data=PropertyResponse.model_validate(updated),
    )


@router.post(
    "/{property_id}/quick-approve",
    response_model=Envelope[PropertyResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Approve a pending property with a fixed note",
)
def quick_approve(
    property_id: str,
    admin: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    updated = service.quick_approve(property_id, admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Property approved successfully",
        data=PropertyResponse.model_validate(updated),
    )


@router.post(
    "/{property_id}/quick-reject",
    response_model=Envelope[PropertyResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Reject a pending property with a fixed reason",
)
def quick_reject(
    property_id: str,
    admin: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    updated = service.quick_reject(property_id, admin)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Property rejected successfully",
        data=PropertyResponse.model_validate(updated),
    )


@router.post(
    "/{property_id}/transfer",
    response_model=Envelope[PropertyResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Request an ownership transfer of a verified property",
)
def request_transfer(
    property_id: str,
    request_data: TransferRequestBody,
    seller: Principal = Depends(require_seller),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[PropertyResponse]:
    updated = service.request_transfer(property_id, request_data.to_domain(), seller)
    return Envelope(
        status_code=status.HTTP_200_OK,
        message="Transfer request submitted successfully",
        data=PropertyResponse.model_validate(updated),
    )


@router.post(
    "/{property_id}/transfer/verify",
    response_model=Envelope[TransferDecisionResponse],
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Approve or reject a pending transfer",
)
def verify_transfer(
    property_id: str,
    request_data: AdjudicationRequest,
    admin: Principal = Depends(require_admin),
    service: PropertyService = Depends(get_property_service),
) -> Envelope[TransferDecisionResponse]:
    outcome = service.adjudicate_transfer(property_id, request_data.to_domain(), admin)
    resolution = outcome.resolution
    return Envelope(
        status_code=status.HTTP_200_OK,
        message=f"Transfer {outcome.property.transfer_status.value} successfully",
        data=TransferDecisionResponse(
            property=PropertyResponse.model_validate(outcome.property),
            owner_resolution=resolution.outcome.value if resolution is not None else None,
        ),
    )
