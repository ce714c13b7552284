"""In-memory collaborators shared by the storefront unit tests."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Sequence

from prometheus_client import REGISTRY

from services.storefront_service.app.cart import CartGadget, CartLine, PersistenceError
from services.storefront_service.app.checkout import OrderDraft, OrderItemDraft

PHONE_X = CartGadget(id=1, name="Phone X", price=100_000, swap_available=True)
CHARGER = CartGadget(id=2, name="Charger", price=5_000)


class MemoryCartBackend:
    """CartBackend keeping lines per user; ``fail_on`` names operations that raise."""

    def __init__(self, gadgets: Sequence[CartGadget] = (PHONE_X, CHARGER)) -> None:
        self.gadgets = {gadget.id: gadget for gadget in gadgets}
        self.rows: dict[str, list[CartLine]] = {}
        self.calls: Counter[str] = Counter()
        self.fail_on: set[str] = set()
        self._next_id = 1

    def _check(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed")

    async def fetch_lines(self, user_id: str) -> list[CartLine]:
        self._check("fetch_lines")
        return list(self.rows.get(user_id, []))

    async def insert_line(self, user_id: str, gadget_id: int, quantity: int) -> CartLine:
        self._check("insert_line")
        gadget = self.gadgets.get(gadget_id)
        if gadget is None:
            raise PersistenceError(f"gadget {gadget_id} does not exist")
        line = CartLine(id=self._next_id, gadget_id=gadget_id, quantity=quantity, gadget=gadget)
        self._next_id += 1
        self.rows.setdefault(user_id, []).append(line)
        return line

    async def update_quantity(self, user_id: str, gadget_id: int, quantity: int) -> None:
        self._check("update_quantity")
        self.rows[user_id] = [
            replace(line, quantity=quantity) if line.gadget_id == gadget_id else line
            for line in self.rows.get(user_id, [])
        ]

    async def delete_line(self, user_id: str, gadget_id: int) -> None:
        self._check("delete_line")
        self.rows[user_id] = [line for line in self.rows.get(user_id, []) if line.gadget_id != gadget_id]

    async def delete_all(self, user_id: str) -> None:
        self._check("delete_all")
        self.rows.pop(user_id, None)


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices = []

    def notify(self, notice) -> None:
        self.notices.append(notice)

    @property
    def titles(self) -> list[str]:
        return [notice.title for notice in self.notices]

    @property
    def errors(self) -> list[str]:
        return [notice.description for notice in self.notices if notice.is_error]


class RecordingOrderWriter:
    """OrderWriter that stores drafts; ``fail`` makes the write raise after nothing is kept."""

    def __init__(self, *, fail: bool = False, fail_commit: bool = False) -> None:
        self.fail = fail
        self.fail_commit = fail_commit
        self.calls = 0
        self.commits = 0
        self.orders: list[tuple[OrderDraft, list[OrderItemDraft]]] = []

    async def write(self, order: OrderDraft, items: Sequence[OrderItemDraft]):
        self.calls += 1
        if self.fail:
            raise PersistenceError("order items could not be written")
        self.orders.append((order, list(items)))
        now = datetime.now(timezone.utc)
        return SimpleNamespace(
            id=len(self.orders),
            user_id=order.user_id,
            customer_name=order.customer_name,
            status=order.status,
            total_price=order.total_price,
            items=[SimpleNamespace(quantity=item.quantity) for item in items],
            created_at=now,
        )

    async def commit(self) -> None:
        if self.fail_commit:
            self.orders.clear()
            raise PersistenceError("transaction could not be committed")
        self.commits += 1


class MemoryRedis:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:  # noqa: ARG002 - TTL ignored in stub
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class ErrorRedis:
    def __init__(self) -> None:
        self.get_calls = 0
        self.set_calls = 0
        self.delete_calls = 0

    async def get(self, key: str) -> str | None:
        self.get_calls += 1
        raise RuntimeError(f"cache get failure for {key}")

    async def set(self, key: str, value: str, ex: int | None = None) -> None:  # noqa: ARG002
        self.set_calls += 1
        raise RuntimeError(f"cache set failure for {key}")

    async def delete(self, key: str) -> None:
        self.delete_calls += 1
        raise RuntimeError(f"cache delete failure for {key}")


class MetricTracker:
    def __init__(self, name: str, labels: dict[str, str] | None = None) -> None:
        self.name = name
        self.labels = labels or {}
        baseline = REGISTRY.get_sample_value(name, self.labels)
        self._baseline = baseline if baseline is not None else 0.0

    def delta(self) -> float:
        current = REGISTRY.get_sample_value(self.name, self.labels)
        value = current if current is not None else 0.0
        return value - self._baseline
