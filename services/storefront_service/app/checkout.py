"""WhatsApp checkout: turns the current cart into an order and a deep link."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Literal, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .cart import CartLine, CartStore, PersistenceError
from .events import StorefrontEventPublisher
from .formatting import format_price, render_order_message, resolve_customer_name, whatsapp_link
from .metrics import CHECKOUT_ORDER_VALUE_NAIRA, CHECKOUT_TOTAL
from .models import Order
from .notices import Notice, Notifier
from .repository import OrderRepository

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/auth"
WHATSAPP_DELIVERY_ADDRESS = "Via WhatsApp"
REQUESTED_STATUS = "requested_whatsapp"

CheckoutStatus = Literal["completed", "sign_in_required", "empty_cart", "failed"]


class ProfileDetails(Protocol):
    full_name: str | None
    phone: str | None


@dataclass(slots=True, frozen=True)
class OrderIntent:
    """What the user is about to order, derived from the cart on demand."""

    lines: tuple[CartLine, ...]

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_price(self) -> int:
        return sum(line.subtotal for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def message(self, business_name: str) -> str:
        return render_order_message(business_name, self.lines, self.total_price)


@dataclass(slots=True, frozen=True)
class OrderDraft:
    user_id: str
    gadget_id: int | None
    customer_name: str
    customer_email: str
    customer_phone: str
    total_price: int
    delivery_address: str = WHATSAPP_DELIVERY_ADDRESS
    status: str = REQUESTED_STATUS


@dataclass(slots=True, frozen=True)
class OrderItemDraft:
    gadget_id: int | None
    gadget_name: str
    gadget_price: int
    quantity: int


@dataclass(slots=True)
class CheckoutResult:
    status: CheckoutStatus
    order_id: int | None = None
    message: str | None = None
    whatsapp_url: str | None = None
    redirect: str | None = None


class OrderWriter(Protocol):
    async def write(self, order: OrderDraft, items: Sequence[OrderItemDraft]) -> Order: ...

    async def commit(self) -> None: ...


class SqlOrderWriter:
    """Writes an order and its item snapshots inside a single transaction boundary."""

    def __init__(self, repository: OrderRepository) -> None:
        self._repository = repository

    async def write(self, order: OrderDraft, items: Sequence[OrderItemDraft]) -> Order:
        try:
            return await self._repository.create_order(
                order=asdict(order),
                items=[asdict(item) for item in items],
            )
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to record order") from exc

    async def commit(self) -> None:
        try:
            await self._repository.session.commit()
        except SQLAlchemyError as exc:
            await self._repository.session.rollback()
            raise PersistenceError("failed to commit order") from exc


class OrderIntentFormatter:
    """Runs the checkout flow for the user the cart store was loaded for.

    The order and its items are persisted before anything else happens. If
    that write fails the cart is left untouched and an error notice is raised;
    the whole flow must be invoked again. The order event is published only
    after the order and the cleared cart are committed.
    """

    def __init__(
        self,
        store: CartStore,
        writer: OrderWriter,
        *,
        business_name: str,
        whatsapp_number: str,
        notifier: Notifier | None = None,
        event_publisher: StorefrontEventPublisher | None = None,
    ) -> None:
        self._store = store
        self._writer = writer
        self._business_name = business_name
        self._whatsapp_number = whatsapp_number
        self._notifier = notifier
        self._event_publisher = event_publisher

    def intent(self) -> OrderIntent:
        return OrderIntent(lines=self._store.lines)

    def preview_message(self) -> str | None:
        intent = self.intent()
        if intent.is_empty:
            return None
        return intent.message(self._business_name)

    def preview_link(self) -> str | None:
        message = self.preview_message()
        if message is None:
            return None
        return whatsapp_link(self._whatsapp_number, message)

    async def checkout(self, profile: ProfileDetails | None = None) -> CheckoutResult:
        user = self._store.user
        if user is None:
            self._notify(Notice(title="Sign in required", description="Please sign in to complete your request"))
            CHECKOUT_TOTAL.labels(outcome="sign_in_required").inc()
            return CheckoutResult(status="sign_in_required", redirect=SIGN_IN_PATH)

        intent = self.intent()
        if intent.is_empty:
            CHECKOUT_TOTAL.labels(outcome="empty_cart").inc()
            return CheckoutResult(status="empty_cart")

        draft = OrderDraft(
            user_id=user.id,
            gadget_id=intent.lines[0].gadget_id,
            customer_name=resolve_customer_name(
                profile_full_name=profile.full_name if profile else None,
                user_full_name=user.full_name,
                email=user.email,
            ),
            customer_email=user.email or "",
            customer_phone=(profile.phone if profile else None) or "",
            total_price=intent.total_price,
        )
        items = [
            OrderItemDraft(
                gadget_id=line.gadget_id,
                gadget_name=line.name,
                gadget_price=line.price,
                quantity=line.quantity,
            )
            for line in intent.lines
        ]

        try:
            order = await self._writer.write(draft, items)
        except PersistenceError:
            logger.exception("Error creating order")
            CHECKOUT_TOTAL.labels(outcome="failed").inc()
            self._notify(Notice.error("Failed to create order. Please try again."))
            return CheckoutResult(status="failed")

        message = intent.message(self._business_name)
        url = whatsapp_link(self._whatsapp_number, message)

        await self._store.clear()
        try:
            await self._writer.commit()
        except PersistenceError:
            logger.exception("Error committing order")
            CHECKOUT_TOTAL.labels(outcome="failed").inc()
            self._notify(Notice.error("Failed to create order. Please try again."))
            return CheckoutResult(status="failed")

        self._notify(Notice(title="Order created!", description="Redirecting you to WhatsApp..."))
        logger.info(
            "Order %s requested via WhatsApp: %d item(s), total %s",
            order.id,
            intent.item_count,
            format_price(intent.total_price),
        )
        CHECKOUT_TOTAL.labels(outcome="completed").inc()
        CHECKOUT_ORDER_VALUE_NAIRA.observe(intent.total_price)
        if self._event_publisher is not None:
            await self._event_publisher.order_requested(order)

        return CheckoutResult(status="completed", order_id=order.id, message=message, whatsapp_url=url)

    def _notify(self, notice: Notice) -> None:
        if self._notifier is not None:
            self._notifier.notify(notice)
