"""WhatsApp checkout route."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from ..checkout import CheckoutResult, OrderIntentFormatter
from ..dependencies import (
    get_checkout,
    get_current_user,
    get_notices,
    get_profile_repository,
    invalidate_dashboard,
)
from ..identity import CurrentUser
from ..notices import NoticeCollector
from ..repository import ProfileRepository
from ..schemas import CheckoutResponse
from .cart import serialize_notices

router = APIRouter(prefix="/checkout", tags=["checkout"])

_STATUS_CODES = {
    "completed": status.HTTP_201_CREATED,
    "sign_in_required": status.HTTP_401_UNAUTHORIZED,
    "empty_cart": status.HTTP_400_BAD_REQUEST,
    "failed": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _serialize_result(result: CheckoutResult, notices: NoticeCollector) -> dict[str, object]:
    return {
        "status": result.status,
        "orderId": result.order_id,
        "message": result.message,
        "whatsappUrl": result.whatsapp_url,
        "redirect": result.redirect,
        "notices": serialize_notices(notices.notices),
    }


@router.post("", response_model=CheckoutResponse)
async def checkout(
    request: Request,
    response: Response,
    formatter: OrderIntentFormatter = Depends(get_checkout),
    profiles: ProfileRepository = Depends(get_profile_repository),
    notices: NoticeCollector = Depends(get_notices),
    user: CurrentUser | None = Depends(get_current_user),
) -> CheckoutResponse:
    """Record the cart as an order and return the WhatsApp deep link to open."""

    profile = await profiles.get_profile(user_id=user.id) if user is not None else None
    result = await formatter.checkout(profile)

    if result.status == "completed":
        await invalidate_dashboard(request)

    response.status_code = _STATUS_CODES[result.status]
    return CheckoutResponse.model_validate(_serialize_result(result, notices))
