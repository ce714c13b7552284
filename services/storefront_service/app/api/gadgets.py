"""HTTP routes for the gadget catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from services.common import ServiceSettings

from ..dependencies import get_catalog_repository, get_settings
from ..formatting import format_price, render_gadget_request_message, whatsapp_link
from ..repository import CatalogRepository
from ..schemas import (
    GadgetCreate,
    GadgetListResponse,
    GadgetResponse,
    GadgetUpdate,
    WhatsAppLinkResponse,
)

router = APIRouter(prefix="/gadgets", tags=["gadgets"])


def _serialize_gadget(gadget) -> dict[str, object]:
    return {
        "id": gadget.id,
        "name": gadget.name,
        "category": gadget.category,
        "description": gadget.description,
        "imageUrl": gadget.image_url,
        "price": gadget.price,
        "formattedPrice": format_price(gadget.price),
        "inStock": gadget.in_stock,
        "swapAvailable": gadget.swap_available,
        "createdAt": gadget.created_at,
    }


@router.post("", response_model=GadgetResponse, status_code=status.HTTP_201_CREATED)
async def create_gadget(
    payload: GadgetCreate,
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> GadgetResponse:
    gadget = await repository.create_gadget(**payload.model_dump())
    return GadgetResponse.model_validate(_serialize_gadget(gadget))


@router.get("", response_model=GadgetListResponse)
async def list_gadgets(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    category: str | None = Query(default=None),
    in_stock: bool | None = Query(default=None, alias="inStock"),
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> GadgetListResponse:
    gadgets, total = await repository.list_gadgets(
        limit=limit,
        offset=offset,
        category=category,
        in_stock=in_stock,
    )
    items = [GadgetResponse.model_validate(_serialize_gadget(gadget)) for gadget in gadgets]
    return GadgetListResponse(items=items, total=total)


@router.get("/{gadget_id}", response_model=GadgetResponse)
async def get_gadget(
    gadget_id: int,
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> GadgetResponse:
    gadget = await repository.get_gadget(gadget_id)
    if gadget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gadget not found")
    return GadgetResponse.model_validate(_serialize_gadget(gadget))


@router.patch("/{gadget_id}", response_model=GadgetResponse)
async def update_gadget(
    gadget_id: int,
    payload: GadgetUpdate,
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> GadgetResponse:
    gadget = await repository.get_gadget(gadget_id)
    if gadget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gadget not found")

    updates = payload.model_dump(exclude_unset=True)
    for required in ("name", "category", "price", "in_stock", "swap_available"):
        if required in updates and updates[required] is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{required} cannot be null",
            )
    gadget = await repository.update_gadget(gadget, updates)
    return GadgetResponse.model_validate(_serialize_gadget(gadget))


@router.delete("/{gadget_id}")
async def delete_gadget(
    gadget_id: int,
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> Response:
    gadget = await repository.get_gadget(gadget_id)
    if gadget is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await repository.delete_gadget(gadget)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{gadget_id}/whatsapp", response_model=WhatsAppLinkResponse)
async def gadget_whatsapp_link(
    gadget_id: int,
    repository: CatalogRepository = Depends(get_catalog_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> WhatsAppLinkResponse:
    gadget = await repository.get_gadget(gadget_id)
    if gadget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gadget not found")

    message = render_gadget_request_message(
        settings.business_name,
        name=gadget.name,
        price=gadget.price,
        swap_available=gadget.swap_available,
    )
    return WhatsAppLinkResponse(message=message, url=whatsapp_link(settings.whatsapp_number, message))
