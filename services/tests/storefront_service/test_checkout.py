from types import SimpleNamespace
from urllib.parse import unquote

import pytest

from services.storefront_service.app.cart import CartStore
from services.storefront_service.app.checkout import (
    SIGN_IN_PATH,
    WHATSAPP_DELIVERY_ADDRESS,
    OrderIntentFormatter,
)
from services.storefront_service.app.events import StorefrontEventPublisher
from services.storefront_service.app.identity import CurrentUser
from services.tests.storefront_service.fakes import (
    CHARGER,
    PHONE_X,
    MemoryCartBackend,
    MetricTracker,
    RecordingNotifier,
    RecordingOrderWriter,
)

USER = CurrentUser(id="user-7", email="ada@example.com", full_name="Ada L")
BUSINESS = "JE Tech Hub"
NUMBER = "2348107941349"

EXPECTED_MESSAGE = (
    "Hello JE Tech Hub 👋\n\n"
    "I would like to request the following gadgets:\n\n"
    "1. Phone X\n"
    "   Price: ₦100,000\n"
    "   Quantity: 2\n"
    "   (Swap Available)\n"
    "\n"
    "2. Charger\n"
    "   Price: ₦5,000\n"
    "   Quantity: 1\n"
    "\n"
    "Total: ₦205,000\n\n"
    "Please let me know how to proceed with the order."
)


class _RecordingProducer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    async def send(self, topic: str, value: dict) -> None:
        self.sent.append((topic, value))


async def _formatter(
    *,
    user: CurrentUser | None = USER,
    writer: RecordingOrderWriter | None = None,
    populate: bool = True,
    event_publisher: StorefrontEventPublisher | None = None,
):
    backend = MemoryCartBackend()
    notifier = RecordingNotifier()
    store = CartStore(backend, notifier=notifier)
    await store.load(user)
    if populate and user is not None:
        await store.add(PHONE_X.id)
        await store.add(CHARGER.id)
        await store.set_quantity(PHONE_X.id, 2)
    notifier.notices.clear()
    writer = writer or RecordingOrderWriter()
    formatter = OrderIntentFormatter(
        store,
        writer,
        business_name=BUSINESS,
        whatsapp_number=NUMBER,
        notifier=notifier,
        event_publisher=event_publisher,
    )
    return formatter, store, backend, writer, notifier


@pytest.mark.asyncio
async def test_two_line_cart_renders_expected_message() -> None:
    formatter, store, _, _, _ = await _formatter()

    intent = formatter.intent()

    assert intent.item_count == 3
    assert intent.total_price == 205_000 == store.total_price
    assert intent.message(BUSINESS) == EXPECTED_MESSAGE


@pytest.mark.asyncio
async def test_checkout_records_order_clears_cart_and_returns_link() -> None:
    formatter, store, backend, writer, notifier = await _formatter()
    completed = MetricTracker("storefront_checkout_total", {"outcome": "completed"})

    profile = SimpleNamespace(full_name="Ada Lovelace", phone="+2348000000000")
    result = await formatter.checkout(profile)

    assert result.status == "completed"
    assert result.order_id == 1
    assert result.message == EXPECTED_MESSAGE
    assert result.whatsapp_url is not None
    assert result.whatsapp_url.startswith(f"https://wa.me/{NUMBER}?text=")
    assert unquote(result.whatsapp_url.split("text=", 1)[1]) == EXPECTED_MESSAGE

    [(order, items)] = writer.orders
    assert order.user_id == USER.id
    assert order.gadget_id == PHONE_X.id
    assert order.customer_name == "Ada Lovelace"
    assert order.customer_email == "ada@example.com"
    assert order.customer_phone == "+2348000000000"
    assert order.delivery_address == WHATSAPP_DELIVERY_ADDRESS
    assert order.status == "requested_whatsapp"
    assert order.total_price == 205_000
    assert [(item.gadget_name, item.gadget_price, item.quantity) for item in items] == [
        ("Phone X", 100_000, 2),
        ("Charger", 5_000, 1),
    ]

    assert store.is_empty
    assert backend.calls["delete_all"] == 1
    assert notifier.titles == ["Order created!"]
    assert completed.delta() == 1


@pytest.mark.asyncio
async def test_checkout_without_profile_uses_identity_details() -> None:
    formatter, _, _, writer, _ = await _formatter()

    await formatter.checkout()

    [(order, _)] = writer.orders
    assert order.customer_name == "Ada L"
    assert order.customer_phone == ""


@pytest.mark.asyncio
async def test_checkout_with_empty_cart_does_nothing() -> None:
    formatter, _, backend, writer, notifier = await _formatter(populate=False)
    calls_before = sum(backend.calls.values())

    result = await formatter.checkout()

    assert result.status == "empty_cart"
    assert result.whatsapp_url is None
    assert formatter.preview_link() is None
    assert writer.calls == 0
    assert sum(backend.calls.values()) == calls_before
    assert notifier.notices == []


@pytest.mark.asyncio
async def test_checkout_requires_sign_in() -> None:
    formatter, _, backend, writer, notifier = await _formatter(user=None)

    result = await formatter.checkout()

    assert result.status == "sign_in_required"
    assert result.redirect == SIGN_IN_PATH
    assert writer.calls == 0
    assert sum(backend.calls.values()) == 0
    assert notifier.titles == ["Sign in required"]


@pytest.mark.asyncio
async def test_failed_order_write_keeps_cart_and_reports_error() -> None:
    writer = RecordingOrderWriter(fail=True)
    formatter, store, backend, _, notifier = await _formatter(writer=writer)
    lines_before = store.lines
    failed = MetricTracker("storefront_checkout_total", {"outcome": "failed"})

    result = await formatter.checkout()

    assert result.status == "failed"
    assert result.whatsapp_url is None
    assert writer.calls == 1
    assert writer.orders == []
    assert store.lines == lines_before
    assert backend.calls["delete_all"] == 0
    assert notifier.errors == ["Failed to create order. Please try again."]
    assert failed.delta() == 1


@pytest.mark.asyncio
async def test_checkout_publishes_order_requested_event() -> None:
    producer = _RecordingProducer()
    formatter, _, _, _, _ = await _formatter(event_publisher=StorefrontEventPublisher(producer))

    await formatter.checkout()

    [(topic, envelope)] = producer.sent
    assert topic == "order.requested.v1"
    assert envelope["order"]["customerName"] == "Ada L"
    assert envelope["order"]["totalPrice"] == 205_000
    assert envelope["order"]["itemCount"] == 3


@pytest.mark.asyncio
async def test_failed_commit_reports_error_and_publishes_nothing() -> None:
    producer = _RecordingProducer()
    writer = RecordingOrderWriter(fail_commit=True)
    formatter, _, _, _, notifier = await _formatter(
        writer=writer,
        event_publisher=StorefrontEventPublisher(producer),
    )
    failed = MetricTracker("storefront_checkout_total", {"outcome": "failed"})

    result = await formatter.checkout()

    assert result.status == "failed"
    assert result.order_id is None
    assert result.whatsapp_url is None
    assert producer.sent == []
    assert notifier.errors == ["Failed to create order. Please try again."]
    assert "Order created!" not in notifier.titles
    assert failed.delta() == 1


@pytest.mark.asyncio
async def test_checkout_commits_before_publishing() -> None:
    writer = RecordingOrderWriter()
    commits_at_publish: list[int] = []

    class _Producer:
        async def send(self, topic: str, value: dict) -> None:
            commits_at_publish.append(writer.commits)

    formatter, _, _, _, _ = await _formatter(writer=writer, event_publisher=StorefrontEventPublisher(_Producer()))

    await formatter.checkout()

    assert commits_at_publish == [1]
