"""Event publishing helpers for the storefront service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from services.common.kafka import KafkaProducerStub

from .models import Enrollment, Order, ServiceRequest

ORDER_REQUESTED_TOPIC = "order.requested.v1"
ORDER_STATUS_CHANGED_TOPIC = "order.status.changed.v1"
ENROLLMENT_CREATED_TOPIC = "enrollment.created.v1"
SERVICE_REQUEST_CREATED_TOPIC = "service_request.created.v1"


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


class StorefrontEventPublisher:
    """Publishes order, enrollment and service request events for back-office consumers."""

    def __init__(self, producer: KafkaProducerStub | None) -> None:
        self._producer = producer

    async def _emit(self, topic: str, payload: dict[str, Any]) -> None:
        if self._producer is None:
            return
        envelope = {
            "eventType": topic,
            "occurredAt": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        await self._producer.send(topic, envelope)

    async def order_requested(self, order: Order) -> None:
        await self._emit(ORDER_REQUESTED_TOPIC, {"order": self._serialize_order(order)})

    async def order_status_changed(self, order: Order, *, previous_status: str) -> None:
        await self._emit(
            ORDER_STATUS_CHANGED_TOPIC,
            {
                "order": self._serialize_order(order),
                "previousStatus": previous_status,
            },
        )

    async def enrollment_created(self, enrollment: Enrollment) -> None:
        await self._emit(
            ENROLLMENT_CREATED_TOPIC,
            {
                "enrollment": {
                    "id": enrollment.id,
                    "userId": enrollment.user_id,
                    "courseId": enrollment.course_id,
                    "status": enrollment.status,
                    "enrolledAt": _iso(enrollment.enrolled_at),
                }
            },
        )

    async def service_request_created(self, request: ServiceRequest) -> None:
        await self._emit(
            SERVICE_REQUEST_CREATED_TOPIC,
            {
                "serviceRequest": {
                    "id": request.id,
                    "userId": request.user_id,
                    "serviceId": request.service_id,
                    "customerName": request.customer_name,
                    "status": request.status,
                    "createdAt": _iso(request.created_at),
                }
            },
        )

    @staticmethod
    def _serialize_order(order: Order) -> dict[str, Any]:
        return {
            "id": order.id,
            "userId": order.user_id,
            "customerName": order.customer_name,
            "status": order.status,
            "totalPrice": order.total_price,
            "itemCount": sum(item.quantity for item in order.items),
            "createdAt": _iso(order.created_at),
        }
