"""Cart state container and its persistence backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .identity import CurrentUser
from .metrics import CART_MUTATIONS_TOTAL, CART_PERSISTENCE_FAILURES_TOTAL
from .models import CartItem, Gadget
from .notices import Notice, Notifier
from .repository import CartRepository, CatalogRepository

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised by backends when a read or write against the store fails."""


@dataclass(slots=True, frozen=True)
class CartGadget:
    id: int
    name: str
    price: int
    image_url: str | None = None
    swap_available: bool = False
    in_stock: bool = True


@dataclass(slots=True, frozen=True)
class CartLine:
    id: int
    gadget_id: int
    quantity: int
    gadget: CartGadget

    @property
    def name(self) -> str:
        return self.gadget.name

    @property
    def price(self) -> int:
        return self.gadget.price

    @property
    def swap_available(self) -> bool:
        return self.gadget.swap_available

    @property
    def subtotal(self) -> int:
        return self.gadget.price * self.quantity


class CartBackend(Protocol):
    async def fetch_lines(self, user_id: str) -> list[CartLine]: ...

    async def insert_line(self, user_id: str, gadget_id: int, quantity: int) -> CartLine: ...

    async def update_quantity(self, user_id: str, gadget_id: int, quantity: int) -> None: ...

    async def delete_line(self, user_id: str, gadget_id: int) -> None: ...

    async def delete_all(self, user_id: str) -> None: ...


def _to_line(item: CartItem, gadget: Gadget) -> CartLine:
    return CartLine(
        id=item.id,
        gadget_id=item.gadget_id,
        quantity=item.quantity,
        gadget=CartGadget(
            id=gadget.id,
            name=gadget.name,
            price=gadget.price,
            image_url=gadget.image_url,
            swap_available=bool(gadget.swap_available),
            in_stock=bool(gadget.in_stock),
        ),
    )


class SqlCartBackend:
    """CartBackend over the storefront database."""

    def __init__(self, carts: CartRepository, catalog: CatalogRepository) -> None:
        self._carts = carts
        self._catalog = catalog

    async def fetch_lines(self, user_id: str) -> list[CartLine]:
        try:
            rows = await self._carts.list_lines(user_id=user_id)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to fetch cart") from exc
        return [_to_line(item, gadget) for item, gadget in rows]

    async def insert_line(self, user_id: str, gadget_id: int, quantity: int) -> CartLine:
        try:
            gadget = await self._catalog.get_gadget(gadget_id)
            if gadget is None:
                raise PersistenceError(f"gadget {gadget_id} does not exist")
            item = await self._carts.insert_line(user_id=user_id, gadget_id=gadget_id, quantity=quantity)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to insert cart line") from exc
        return _to_line(item, gadget)

    async def update_quantity(self, user_id: str, gadget_id: int, quantity: int) -> None:
        try:
            await self._carts.set_quantity(user_id=user_id, gadget_id=gadget_id, quantity=quantity)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to update cart line") from exc

    async def delete_line(self, user_id: str, gadget_id: int) -> None:
        try:
            await self._carts.delete_line(user_id=user_id, gadget_id=gadget_id)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to delete cart line") from exc

    async def delete_all(self, user_id: str) -> None:
        try:
            await self._carts.delete_all(user_id=user_id)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("failed to clear cart") from exc


class CartStore:
    """Authoritative cart lines for one signed-in user, plus derived totals.

    Mutations follow a single reconciliation strategy: snapshot the lines,
    apply the change locally, persist, and restore the snapshot if the
    backend call fails. Failures are logged and reported through the
    notifier; they never propagate to the caller.
    """

    def __init__(self, backend: CartBackend, notifier: Notifier | None = None) -> None:
        self._backend = backend
        self._notifier = notifier
        self._user: CurrentUser | None = None
        self._lines: list[CartLine] = []
        self.loading = False

    @property
    def user(self) -> CurrentUser | None:
        return self._user

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_price(self) -> int:
        return sum(line.subtotal for line in self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def line_for(self, gadget_id: int) -> CartLine | None:
        return next((line for line in self._lines if line.gadget_id == gadget_id), None)

    async def load(self, user: CurrentUser | None) -> Sequence[CartLine]:
        self._user = user
        if user is None:
            self._lines = []
            return self.lines

        self.loading = True
        try:
            lines = await self._backend.fetch_lines(user.id)
        except PersistenceError:
            logger.exception("Error fetching cart")
            CART_PERSISTENCE_FAILURES_TOTAL.labels(operation="load").inc()
            self._notify(Notice.error("Failed to load your cart"))
            return self.lines
        finally:
            self.loading = False
        self._lines = list(lines)
        return self.lines

    async def add(self, gadget_id: int) -> bool:
        if self._user is None:
            return False
        user_id = self._user.id

        existing = self.line_for(gadget_id)
        if existing is not None:
            added = await self.set_quantity(gadget_id, existing.quantity + 1, operation="add")
        else:
            added = await self._mutate(
                "add",
                lambda lines: lines,
                lambda: self._append_confirmed(user_id, gadget_id),
                "Failed to add item to cart",
            )
        if added:
            self._notify(Notice(title="Added to cart", description="Item has been added to your cart"))
        return added

    async def set_quantity(self, gadget_id: int, quantity: int, *, operation: str = "set_quantity") -> bool:
        if self._user is None or quantity < 1:
            return False
        if self.line_for(gadget_id) is None:
            return False
        user_id = self._user.id

        return await self._mutate(
            operation,
            lambda lines: [
                replace(line, quantity=quantity) if line.gadget_id == gadget_id else line for line in lines
            ],
            lambda: self._backend.update_quantity(user_id, gadget_id, quantity),
            "Failed to update item quantity",
        )

    async def remove(self, gadget_id: int) -> bool:
        if self._user is None:
            return False
        user_id = self._user.id

        removed = await self._mutate(
            "remove",
            lambda lines: [line for line in lines if line.gadget_id != gadget_id],
            lambda: self._backend.delete_line(user_id, gadget_id),
            "Failed to remove item from cart",
        )
        if removed:
            self._notify(Notice(title="Removed from cart", description="Item has been removed from your cart"))
        return removed

    async def clear(self) -> bool:
        if self._user is None:
            return False
        user_id = self._user.id

        return await self._mutate(
            "clear",
            lambda _lines: [],
            lambda: self._backend.delete_all(user_id),
            "Failed to clear cart",
        )

    async def _append_confirmed(self, user_id: str, gadget_id: int) -> None:
        line = await self._backend.insert_line(user_id, gadget_id, 1)
        self._lines.append(line)

    async def _mutate(
        self,
        operation: str,
        apply: Callable[[list[CartLine]], list[CartLine]],
        persist: Callable[[], Awaitable[None]],
        failure_message: str,
    ) -> bool:
        snapshot = list(self._lines)
        self._lines = apply(list(snapshot))
        try:
            await persist()
        except PersistenceError:
            self._lines = snapshot
            logger.exception("Cart %s failed", operation)
            CART_PERSISTENCE_FAILURES_TOTAL.labels(operation=operation).inc()
            self._notify(Notice.error(failure_message))
            return False
        CART_MUTATIONS_TOTAL.labels(operation=operation).inc()
        return True

    def _notify(self, notice: Notice) -> None:
        if self._notifier is not None:
            self._notifier.notify(notice)
