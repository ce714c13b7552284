import pytest

from services.common.kafka import KafkaConsumerStub, KafkaProducerStub, subscriber_count
from services.storefront_service.app.events import (
    ENROLLMENT_CREATED_TOPIC,
    ORDER_REQUESTED_TOPIC,
    ORDER_STATUS_CHANGED_TOPIC,
    SERVICE_REQUEST_CREATED_TOPIC,
)
from services.storefront_service.app.feed import AdminNotificationFeed


def _order_event(order_id: int, customer_name: str) -> dict:
    return {"eventType": ORDER_REQUESTED_TOPIC, "order": {"id": order_id, "customerName": customer_name}}


@pytest.mark.asyncio
async def test_feed_keeps_newest_entries_first_and_caps_size() -> None:
    feed = AdminNotificationFeed(size=10)

    for order_id in range(1, 13):
        await feed.handle(ORDER_REQUESTED_TOPIC, _order_event(order_id, f"Customer {order_id}"))

    entries = feed.entries()
    assert len(entries) == 10
    assert entries[0].id == "order-12"
    assert entries[0].message == "New order from Customer 12"
    assert entries[-1].id == "order-3"
    assert all(entry.type == "order" for entry in entries)


@pytest.mark.asyncio
async def test_feed_ignores_other_topics_and_malformed_events() -> None:
    feed = AdminNotificationFeed()

    await feed.handle(ORDER_STATUS_CHANGED_TOPIC, _order_event(1, "Ada"))
    await feed.handle(ORDER_REQUESTED_TOPIC, {"eventType": ORDER_REQUESTED_TOPIC})
    await feed.handle(ORDER_REQUESTED_TOPIC, {"order": {"customerName": "No id"}})

    assert feed.entries() == []


@pytest.mark.asyncio
async def test_feed_clear_removes_entries() -> None:
    feed = AdminNotificationFeed()
    await feed.handle(ORDER_REQUESTED_TOPIC, _order_event(1, "Ada"))

    feed.clear()

    assert feed.entries() == []


@pytest.mark.asyncio
async def test_feed_receives_events_through_consumer_stub() -> None:
    feed = AdminNotificationFeed()
    consumer = KafkaConsumerStub([ORDER_REQUESTED_TOPIC], feed.handle)
    producer = KafkaProducerStub()
    baseline = subscriber_count(ORDER_REQUESTED_TOPIC)

    await consumer.start()
    await producer.connect()
    try:
        assert subscriber_count(ORDER_REQUESTED_TOPIC) == baseline + 1
        await producer.send(ORDER_REQUESTED_TOPIC, _order_event(5, "Grace"))
    finally:
        await consumer.stop()
        await producer.close()

    assert [entry.message for entry in feed.entries()] == ["New order from Grace"]
    assert subscriber_count(ORDER_REQUESTED_TOPIC) == baseline
    with pytest.raises(RuntimeError):
        await producer.send(ORDER_REQUESTED_TOPIC, _order_event(6, "Closed"))


@pytest.mark.asyncio
async def test_producer_refuses_to_send_before_connect() -> None:
    producer = KafkaProducerStub()

    with pytest.raises(RuntimeError):
        await producer.send(ORDER_REQUESTED_TOPIC, _order_event(1, "Ada"))


@pytest.mark.asyncio
async def test_feed_mixes_orders_enrollments_and_service_requests() -> None:
    feed = AdminNotificationFeed()

    await feed.handle(ORDER_REQUESTED_TOPIC, _order_event(1, "Ada"))
    await feed.handle(ENROLLMENT_CREATED_TOPIC, {"enrollment": {"id": 4, "courseId": 2}})
    await feed.handle(SERVICE_REQUEST_CREATED_TOPIC, {"serviceRequest": {"id": 9, "customerName": "Grace"}})

    assert [(entry.id, entry.type, entry.message) for entry in feed.entries()] == [
        ("service-9", "service_request", "New service request from Grace"),
        ("enrollment-4", "enrollment", "New student enrollment"),
        ("order-1", "order", "New order from Ada"),
    ]
    assert set(feed.topics) == {ORDER_REQUESTED_TOPIC, ENROLLMENT_CREATED_TOPIC, SERVICE_REQUEST_CREATED_TOPIC}


@pytest.mark.asyncio
async def test_feed_drops_enrollment_and_service_events_without_ids() -> None:
    feed = AdminNotificationFeed()

    await feed.handle(ENROLLMENT_CREATED_TOPIC, {"enrollment": {"courseId": 2}})
    await feed.handle(SERVICE_REQUEST_CREATED_TOPIC, {"serviceRequest": "not-a-record"})

    assert feed.entries() == []
