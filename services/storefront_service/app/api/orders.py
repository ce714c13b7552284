"""HTTP routes for the orders back office."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_event_publisher, get_order_repository, get_session, invalidate_dashboard
from ..events import StorefrontEventPublisher
from ..formatting import format_price
from ..repository import OrderRepository
from ..schemas import OrderListResponse, OrderResponse, OrderStatus, OrderStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _serialize_order(order) -> dict[str, object]:
    return {
        "id": order.id,
        "userId": order.user_id,
        "gadgetId": order.gadget_id,
        "customerName": order.customer_name,
        "customerEmail": order.customer_email,
        "customerPhone": order.customer_phone,
        "deliveryAddress": order.delivery_address,
        "totalPrice": order.total_price,
        "formattedTotal": format_price(order.total_price),
        "status": order.status,
        "items": [
            {
                "id": item.id,
                "gadgetId": item.gadget_id,
                "gadgetName": item.gadget_name,
                "gadgetPrice": item.gadget_price,
                "quantity": item.quantity,
                "createdAt": item.created_at,
            }
            for item in order.items
        ],
        "createdAt": order.created_at,
        "updatedAt": order.updated_at,
    }


@router.get("", response_model=OrderListResponse)
async def list_orders(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str | None = Query(default=None, alias="userId"),
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    repository: OrderRepository = Depends(get_order_repository),
) -> OrderListResponse:
    orders, total = await repository.list_orders(
        user_id=user_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    items = [OrderResponse.model_validate(_serialize_order(order)) for order in orders]
    return OrderListResponse(items=items, total=total)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, repository: OrderRepository = Depends(get_order_repository)) -> OrderResponse:
    order = await repository.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderResponse.model_validate(_serialize_order(order))


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: OrderRepository = Depends(get_order_repository),
    event_publisher: StorefrontEventPublisher | None = Depends(get_event_publisher),
) -> OrderResponse:
    order = await repository.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    previous_status = order.status
    if previous_status == payload.status:
        return OrderResponse.model_validate(_serialize_order(order))

    updated = await repository.update_status(order, status=payload.status)
    await session.commit()
    logger.info("Order %s moved from %s to %s", order_id, previous_status, payload.status)
    if event_publisher is not None:
        await event_publisher.order_status_changed(updated, previous_status=previous_status)
    await invalidate_dashboard(request)
    return OrderResponse.model_validate(_serialize_order(updated))


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: OrderRepository = Depends(get_order_repository),
) -> Response:
    order = await repository.get_order(order_id)
    if order is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await repository.delete_order(order)
    await session.commit()
    await invalidate_dashboard(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
