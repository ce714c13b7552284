"""Price formatting and WhatsApp deep-link message templates."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Protocol, Sequence
from urllib.parse import quote

CURRENCY_SYMBOL = "₦"
WHATSAPP_BASE_URL = "https://wa.me"
DEFAULT_CUSTOMER_NAME = "Customer"

# Characters left untouched by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class MessageLine(Protocol):
    name: str
    price: int
    quantity: int
    swap_available: bool


def format_price(amount: int | Decimal) -> str:
    """Format a Naira amount with grouping and no fractional digits, e.g. ``₦205,000``."""

    value = Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(value):,}"


def encode_message(message: str) -> str:
    return quote(message, safe=_URI_COMPONENT_SAFE)


def whatsapp_link(recipient: str, message: str) -> str:
    """Return a ``wa.me`` deep link pre-filled with ``message``."""

    return f"{WHATSAPP_BASE_URL}/{recipient}?text={encode_message(message)}"


def resolve_customer_name(
    *,
    profile_full_name: str | None,
    user_full_name: str | None,
    email: str | None,
) -> str:
    for candidate in (profile_full_name, user_full_name):
        if candidate and candidate.strip():
            return candidate.strip()
    if email:
        local_part = email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return DEFAULT_CUSTOMER_NAME


def render_order_message(business_name: str, lines: Sequence[MessageLine], total: int) -> str:
    """Render the cart request message, one numbered block per line in cart order."""

    parts = [f"Hello {business_name} \U0001f44b\n\nI would like to request the following gadgets:\n\n"]
    for index, line in enumerate(lines, start=1):
        parts.append(f"{index}. {line.name}\n")
        parts.append(f"   Price: {format_price(line.price)}\n")
        parts.append(f"   Quantity: {line.quantity}\n")
        if line.swap_available:
            parts.append("   (Swap Available)\n")
        parts.append("\n")
    parts.append(f"Total: {format_price(total)}\n\n")
    parts.append("Please let me know how to proceed with the order.")
    return "".join(parts)


def render_gadget_request_message(
    business_name: str,
    *,
    name: str,
    price: int,
    swap_available: bool,
) -> str:
    """Render the single-gadget "request on WhatsApp" message."""

    swap_line = "(Swap option available)" if swap_available else ""
    return (
        f"Hello {business_name} \U0001f44b\n\n"
        "I'm interested in purchasing:\n\n"
        f"Product: {name}\n"
        f"Price: {format_price(price)}\n"
        f"{swap_line}\n\n"
        "Please let me know how to proceed with the order."
    )


def render_service_request_message(
    business_name: str,
    *,
    service_name: str,
    customer_name: str,
    email: str,
    phone: str,
) -> str:
    return (
        f"Hello {business_name} \U0001f44b\n\n"
        "I would like to request the following service:\n\n"
        f"Service: {service_name}\n"
        f"Name: {customer_name}\n"
        f"Email: {email}\n"
        f"Phone: {phone}\n\n"
        "Please let me know how to proceed."
    )
