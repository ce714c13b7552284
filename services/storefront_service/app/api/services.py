"""HTTP routes for the repair services catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..dependencies import get_service_repository
from ..repository import ServiceRepository
from ..schemas import ServiceCreate, ServiceResponse

router = APIRouter(prefix="/services", tags=["services"])


def _serialize_service(service) -> dict[str, object]:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "icon": service.icon,
        "createdAt": service.created_at,
    }


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    repository: ServiceRepository = Depends(get_service_repository),
) -> ServiceResponse:
    service = await repository.create_service(**payload.model_dump())
    return ServiceResponse.model_validate(_serialize_service(service))


@router.get("", response_model=list[ServiceResponse])
async def list_services(repository: ServiceRepository = Depends(get_service_repository)) -> list[ServiceResponse]:
    return [ServiceResponse.model_validate(_serialize_service(service)) for service in await repository.list_services()]
