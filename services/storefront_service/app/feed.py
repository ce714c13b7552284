"""Back-office notification feed fed by order, enrollment and service request events."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Literal

from .events import ENROLLMENT_CREATED_TOPIC, ORDER_REQUESTED_TOPIC, SERVICE_REQUEST_CREATED_TOPIC

logger = logging.getLogger(__name__)

FeedEntryType = Literal["order", "enrollment", "service_request"]


@dataclass(slots=True, frozen=True)
class FeedEntry:
    id: str
    type: FeedEntryType
    message: str
    timestamp: datetime


class AdminNotificationFeed:
    """Keeps the most recent admin notifications, newest first."""

    def __init__(self, *, size: int = 10) -> None:
        self._entries: deque[FeedEntry] = deque(maxlen=size)
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[None]]] = {
            ORDER_REQUESTED_TOPIC: self._on_order_requested,
            ENROLLMENT_CREATED_TOPIC: self._on_enrollment_created,
            SERVICE_REQUEST_CREATED_TOPIC: self._on_service_request_created,
        }

    @property
    def topics(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def entries(self) -> list[FeedEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    async def handle(self, topic: str, payload: dict[str, Any]) -> None:
        handler = self._handlers.get(topic)
        if handler is None:
            logger.debug("Ignoring unsupported topic %s", topic)
            return
        await handler(payload)

    async def _on_order_requested(self, payload: dict[str, Any]) -> None:
        order = self._record(ORDER_REQUESTED_TOPIC, payload, "order")
        if order is None:
            return
        customer_name = order.get("customerName") or "a customer"
        self._push(f"order-{order['id']}", "order", f"New order from {customer_name}")

    async def _on_enrollment_created(self, payload: dict[str, Any]) -> None:
        enrollment = self._record(ENROLLMENT_CREATED_TOPIC, payload, "enrollment")
        if enrollment is None:
            return
        self._push(f"enrollment-{enrollment['id']}", "enrollment", "New student enrollment")

    async def _on_service_request_created(self, payload: dict[str, Any]) -> None:
        request = self._record(SERVICE_REQUEST_CREATED_TOPIC, payload, "serviceRequest")
        if request is None:
            return
        customer_name = request.get("customerName") or "a customer"
        self._push(f"service-{request['id']}", "service_request", f"New service request from {customer_name}")

    @staticmethod
    def _record(topic: str, payload: dict[str, Any], key: str) -> dict[str, Any] | None:
        record = payload.get(key)
        if not isinstance(record, dict) or record.get("id") is None:
            logger.warning("Dropping %s event without a %s payload", topic, key)
            return None
        return record

    def _push(self, entry_id: str, entry_type: FeedEntryType, message: str) -> None:
        self._entries.appendleft(
            FeedEntry(id=entry_id, type=entry_type, message=message, timestamp=datetime.now(timezone.utc))
        )
