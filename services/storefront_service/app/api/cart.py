"""API routes for the signed-in user's cart."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..cart import CartLine, CartStore
from ..checkout import OrderIntentFormatter
from ..dependencies import get_cart_store, get_catalog_repository, get_checkout, get_notices
from ..formatting import format_price
from ..notices import Notice, NoticeCollector
from ..repository import CatalogRepository
from ..schemas import CartItemAdd, CartItemQuantity, CartResponse, OrderIntentResponse

router = APIRouter(prefix="/cart", tags=["cart"])


def _serialize_line(line: CartLine) -> dict[str, object]:
    return {
        "id": line.id,
        "gadgetId": line.gadget_id,
        "quantity": line.quantity,
        "gadget": {
            "id": line.gadget.id,
            "name": line.gadget.name,
            "price": line.gadget.price,
            "imageUrl": line.gadget.image_url,
            "swapAvailable": line.gadget.swap_available,
            "inStock": line.gadget.in_stock,
        },
        "subtotal": line.subtotal,
        "formattedSubtotal": format_price(line.subtotal),
    }


def serialize_notices(notices: list[Notice]) -> list[dict[str, object]]:
    return [
        {"title": notice.title, "description": notice.description, "variant": notice.variant}
        for notice in notices
    ]


def _serialize_cart(store: CartStore, notices: NoticeCollector) -> dict[str, object]:
    return {
        "userId": store.user.id if store.user else None,
        "items": [_serialize_line(line) for line in store.lines],
        "itemCount": store.item_count,
        "totalPrice": store.total_price,
        "formattedTotal": format_price(store.total_price),
        "notices": serialize_notices(notices.notices),
    }


@router.get("", response_model=CartResponse)
async def get_cart(
    store: CartStore = Depends(get_cart_store),
    notices: NoticeCollector = Depends(get_notices),
) -> CartResponse:
    return CartResponse.model_validate(_serialize_cart(store, notices))


@router.post("/items", response_model=CartResponse)
async def add_item(
    payload: CartItemAdd,
    store: CartStore = Depends(get_cart_store),
    catalog: CatalogRepository = Depends(get_catalog_repository),
    notices: NoticeCollector = Depends(get_notices),
) -> CartResponse:
    if store.user is not None and store.line_for(payload.gadget_id) is None:
        gadget = await catalog.get_gadget(payload.gadget_id)
        if gadget is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gadget not found")
        if not gadget.in_stock:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Gadget is out of stock")

    await store.add(payload.gadget_id)
    return CartResponse.model_validate(_serialize_cart(store, notices))


@router.patch("/items/{gadget_id}", response_model=CartResponse)
async def update_item_quantity(
    gadget_id: int,
    payload: CartItemQuantity,
    store: CartStore = Depends(get_cart_store),
    notices: NoticeCollector = Depends(get_notices),
) -> CartResponse:
    await store.set_quantity(gadget_id, payload.quantity)
    return CartResponse.model_validate(_serialize_cart(store, notices))


@router.delete("/items/{gadget_id}", response_model=CartResponse)
async def remove_item(
    gadget_id: int,
    store: CartStore = Depends(get_cart_store),
    notices: NoticeCollector = Depends(get_notices),
) -> CartResponse:
    await store.remove(gadget_id)
    return CartResponse.model_validate(_serialize_cart(store, notices))


@router.delete("", response_model=CartResponse)
async def clear_cart(
    store: CartStore = Depends(get_cart_store),
    notices: NoticeCollector = Depends(get_notices),
) -> CartResponse:
    await store.clear()
    return CartResponse.model_validate(_serialize_cart(store, notices))


@router.get("/intent", response_model=OrderIntentResponse)
async def get_order_intent(
    checkout: OrderIntentFormatter = Depends(get_checkout),
) -> OrderIntentResponse:
    """Preview the WhatsApp message and link for the current cart without placing an order."""

    intent = checkout.intent()
    return OrderIntentResponse.model_validate(
        {
            "itemCount": intent.item_count,
            "totalPrice": intent.total_price,
            "formattedTotal": format_price(intent.total_price),
            "message": checkout.preview_message(),
            "whatsappUrl": checkout.preview_link(),
        }
    )
