"""HTTP routes for repair service requests."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.common import ServiceSettings

from ..dependencies import (
    get_event_publisher,
    get_profile_repository,
    get_service_repository,
    get_session,
    get_settings,
    invalidate_dashboard,
    require_user,
)
from ..events import StorefrontEventPublisher
from ..formatting import render_service_request_message, resolve_customer_name, whatsapp_link
from ..identity import CurrentUser
from ..repository import ProfileRepository, ServiceRepository
from ..schemas import (
    ServiceRequestCreate,
    ServiceRequestCreated,
    ServiceRequestListResponse,
    ServiceRequestResponse,
    ServiceRequestStatus,
    ServiceRequestStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/service-requests", tags=["service-requests"])

PHONE_NOT_PROVIDED = "Not provided"


def _serialize_request(service_request) -> dict[str, object]:
    return {
        "id": service_request.id,
        "userId": service_request.user_id,
        "serviceId": service_request.service_id,
        "serviceName": service_request.service.name if service_request.service is not None else None,
        "customerName": service_request.customer_name,
        "customerEmail": service_request.customer_email,
        "customerPhone": service_request.customer_phone,
        "message": service_request.message,
        "status": service_request.status,
        "createdAt": service_request.created_at,
        "updatedAt": service_request.updated_at,
    }


@router.post("", response_model=ServiceRequestCreated, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    payload: ServiceRequestCreate,
    request: Request,
    user: CurrentUser = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    repository: ServiceRepository = Depends(get_service_repository),
    profiles: ProfileRepository = Depends(get_profile_repository),
    settings: ServiceSettings = Depends(get_settings),
    event_publisher: StorefrontEventPublisher | None = Depends(get_event_publisher),
) -> ServiceRequestCreated:
    """Record a service request and return the WhatsApp deep link that follows it up."""

    service = await repository.get_service(payload.service_id)
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")

    profile = await profiles.get_profile(user_id=user.id)
    customer_name = resolve_customer_name(
        profile_full_name=profile.full_name if profile else None,
        user_full_name=user.full_name,
        email=user.email,
    )
    customer_email = user.email or ""
    customer_phone = (profile.phone if profile else None) or PHONE_NOT_PROVIDED

    try:
        service_request = await repository.create_request(
            user_id=user.id,
            service_id=service.id,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            message=payload.message,
        )
        await session.commit()
    except SQLAlchemyError as exc:
        logger.exception("Error requesting service %s", service.id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to submit request. Please try again.",
        ) from exc

    logger.info("Service request %s recorded for service %s", service_request.id, service.id)
    if event_publisher is not None:
        await event_publisher.service_request_created(service_request)
    await invalidate_dashboard(request)

    message = render_service_request_message(
        settings.business_name,
        service_name=service.name,
        customer_name=customer_name,
        email=customer_email,
        phone=customer_phone,
    )
    return ServiceRequestCreated.model_validate(
        {
            "request": _serialize_request(service_request),
            "message": message,
            "whatsappUrl": whatsapp_link(settings.whatsapp_number, message),
            "notices": [
                {"title": "Request submitted!", "description": "Redirecting you to WhatsApp...", "variant": "default"}
            ],
        }
    )


@router.get("", response_model=ServiceRequestListResponse)
async def list_service_requests(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str | None = Query(default=None, alias="userId"),
    status_filter: ServiceRequestStatus | None = Query(default=None, alias="status"),
    repository: ServiceRepository = Depends(get_service_repository),
) -> ServiceRequestListResponse:
    requests, total = await repository.list_requests(
        user_id=user_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    items = [ServiceRequestResponse.model_validate(_serialize_request(item)) for item in requests]
    return ServiceRequestListResponse(items=items, total=total)


@router.patch("/{request_id}/status", response_model=ServiceRequestResponse)
async def update_service_request_status(
    request_id: int,
    payload: ServiceRequestStatusUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: ServiceRepository = Depends(get_service_repository),
) -> ServiceRequestResponse:
    service_request = await repository.get_request(request_id)
    if service_request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service request not found")
    if service_request.status != payload.status:
        service_request = await repository.update_request_status(service_request, status=payload.status)
        await session.commit()
        await invalidate_dashboard(request)
    return ServiceRequestResponse.model_validate(_serialize_request(service_request))


@router.delete("/{request_id}")
async def delete_service_request(
    request_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: ServiceRepository = Depends(get_service_repository),
) -> Response:
    service_request = await repository.get_request(request_id)
    if service_request is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await repository.delete_request(service_request)
    await session.commit()
    await invalidate_dashboard(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
