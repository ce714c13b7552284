from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import unquote

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from services.common import ServiceSettings
from services.storefront_service.app.main import create_app

ADA = {"X-User-Id": "user-ada", "X-User-Email": "ada@example.com", "X-User-Full-Name": "Ada L"}
GRACE = {"X-User-Id": "user-grace", "X-User-Email": "grace@example.com"}


def _gadget(name: str, price: int, **overrides: Any) -> dict[str, Any]:
    payload = {"name": name, "category": "phones", "price": price, "inStock": True, "swapAvailable": False}
    payload.update(overrides)
    return payload


def _prepare_app(tmp_path) -> FastAPI:
    settings = ServiceSettings(
        app_name="Storefront Test",
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        auto_create_schema=True,
    )
    return create_app(settings)


@asynccontextmanager
async def _client(tmp_path):
    app = _prepare_app(tmp_path)
    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


async def _seed_gadgets(client: AsyncClient) -> tuple[int, int]:
    phone = await client.post("/gadgets", json=_gadget("Phone X", 100_000, swapAvailable=True))
    charger = await client.post("/gadgets", json=_gadget("Charger", 5_000, category="accessories"))
    assert phone.status_code == 201
    assert charger.status_code == 201
    return phone.json()["id"], charger.json()["id"]


@pytest.mark.asyncio
async def test_anonymous_cart_is_empty_and_mutations_are_noops(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, _ = await _seed_gadgets(client)

        response = await client.get("/cart")
        assert response.status_code == 200
        assert response.json() == {
            "userId": None,
            "items": [],
            "itemCount": 0,
            "totalPrice": 0,
            "formattedTotal": "₦0",
            "notices": [],
        }

        add_response = await client.post("/cart/items", json={"gadgetId": phone_id})
        assert add_response.status_code == 200
        assert add_response.json()["items"] == []

        clear_response = await client.delete("/cart")
        assert clear_response.status_code == 200
        assert clear_response.json()["itemCount"] == 0


@pytest.mark.asyncio
async def test_add_items_and_read_back_totals(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, charger_id = await _seed_gadgets(client)

        first = await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        assert first.status_code == 200
        assert first.json()["notices"] == [
            {"title": "Added to cart", "description": "Item has been added to your cart", "variant": "default"}
        ]
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        await client.post("/cart/items", json={"gadgetId": charger_id}, headers=ADA)

        response = await client.get("/cart", headers=ADA)
        assert response.status_code == 200
        cart = response.json()
        assert cart["userId"] == "user-ada"
        assert cart["itemCount"] == 3
        assert cart["totalPrice"] == 205_000
        assert cart["formattedTotal"] == "₦205,000"
        assert [(line["gadget"]["name"], line["quantity"]) for line in cart["items"]] == [
            ("Phone X", 2),
            ("Charger", 1),
        ]
        assert cart["items"][0]["formattedSubtotal"] == "₦200,000"
        assert cart["items"][0]["gadget"]["swapAvailable"] is True

        other = await client.get("/cart", headers=GRACE)
        assert other.json()["items"] == []


@pytest.mark.asyncio
async def test_add_rejects_unknown_and_out_of_stock_gadgets(tmp_path) -> None:
    async with _client(tmp_path) as client:
        sold_out = await client.post("/gadgets", json=_gadget("Tablet", 150_000, inStock=False))

        missing = await client.post("/cart/items", json={"gadgetId": 999}, headers=ADA)
        assert missing.status_code == 404

        unavailable = await client.post("/cart/items", json={"gadgetId": sold_out.json()["id"]}, headers=ADA)
        assert unavailable.status_code == 409

        invalid = await client.post("/cart/items", json={"gadgetId": 0}, headers=ADA)
        assert invalid.status_code == 422

        cart = await client.get("/cart", headers=ADA)
        assert cart.json()["items"] == []


@pytest.mark.asyncio
async def test_update_remove_and_clear_cart(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, charger_id = await _seed_gadgets(client)
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        await client.post("/cart/items", json={"gadgetId": charger_id}, headers=ADA)

        ignored = await client.patch(f"/cart/items/{phone_id}", json={"quantity": 0}, headers=ADA)
        assert ignored.status_code == 200
        assert ignored.json()["itemCount"] == 2

        negative = await client.patch(f"/cart/items/{phone_id}", json={"quantity": -1}, headers=ADA)
        assert negative.json()["itemCount"] == 2

        updated = await client.patch(f"/cart/items/{phone_id}", json={"quantity": 3}, headers=ADA)
        assert updated.json()["itemCount"] == 4
        assert updated.json()["totalPrice"] == 305_000

        removed = await client.delete(f"/cart/items/{charger_id}", headers=ADA)
        assert removed.status_code == 200
        assert [line["gadgetId"] for line in removed.json()["items"]] == [phone_id]
        assert removed.json()["notices"][0]["title"] == "Removed from cart"

        persisted = await client.get("/cart", headers=ADA)
        assert persisted.json()["itemCount"] == 3

        cleared = await client.delete("/cart", headers=ADA)
        assert cleared.json()["itemCount"] == 0
        assert cleared.json()["totalPrice"] == 0
        assert (await client.get("/cart", headers=ADA)).json()["items"] == []


@pytest.mark.asyncio
async def test_cart_skips_lines_for_deleted_gadgets(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, charger_id = await _seed_gadgets(client)
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        await client.post("/cart/items", json={"gadgetId": charger_id}, headers=ADA)

        delete_response = await client.delete(f"/gadgets/{charger_id}")
        assert delete_response.status_code == 204

        cart = (await client.get("/cart", headers=ADA)).json()
        assert [line["gadgetId"] for line in cart["items"]] == [phone_id]
        assert cart["totalPrice"] == 100_000


@pytest.mark.asyncio
async def test_new_gadget_never_inherits_lines_of_deleted_newest_gadget(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, charger_id = await _seed_gadgets(client)
        await client.post("/cart/items", json={"gadgetId": charger_id}, headers=ADA)

        assert (await client.delete(f"/gadgets/{charger_id}")).status_code == 204
        laptop = await client.post("/gadgets", json=_gadget("Brand New Laptop", 900_000, category="laptops"))
        assert laptop.status_code == 201
        assert laptop.json()["id"] not in (phone_id, charger_id)

        cart = (await client.get("/cart", headers=ADA)).json()
        assert cart["items"] == []
        assert cart["totalPrice"] == 0

        checkout = await client.post("/checkout", headers=ADA)
        assert checkout.status_code == 400
        assert checkout.json()["status"] == "empty_cart"


@pytest.mark.asyncio
async def test_oversized_quantity_and_price_are_rejected(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, _ = await _seed_gadgets(client)
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)

        oversized = await client.patch(f"/cart/items/{phone_id}", json={"quantity": 10**20}, headers=ADA)
        assert oversized.status_code == 422
        assert (await client.get("/cart", headers=ADA)).json()["itemCount"] == 1

        largest = await client.patch(f"/cart/items/{phone_id}", json={"quantity": 10_000}, headers=ADA)
        assert largest.status_code == 200
        assert largest.json()["itemCount"] == 10_000

        assert (await client.post("/gadgets", json=_gadget("Gold Phone", 10**20))).status_code == 422
        assert (await client.patch(f"/gadgets/{phone_id}", json={"price": 10**20})).status_code == 422
        assert (await client.get(f"/gadgets/{phone_id}")).json()["price"] == 100_000


@pytest.mark.asyncio
async def test_order_intent_preview(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, _ = await _seed_gadgets(client)

        empty = await client.get("/cart/intent", headers=ADA)
        assert empty.json() == {
            "itemCount": 0,
            "totalPrice": 0,
            "formattedTotal": "₦0",
            "message": None,
            "whatsappUrl": None,
        }

        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        preview = (await client.get("/cart/intent", headers=ADA)).json()
        assert preview["itemCount"] == 1
        assert "1. Phone X\n   Price: ₦100,000\n   Quantity: 1\n   (Swap Available)\n" in preview["message"]
        assert preview["whatsappUrl"].startswith("https://wa.me/2348107941349?text=")
        assert unquote(preview["whatsappUrl"].split("text=", 1)[1]) == preview["message"]

        # Previewing never places an order.
        orders = await client.get("/orders")
        assert orders.json()["total"] == 0


@pytest.mark.asyncio
async def test_checkout_requires_sign_in(tmp_path) -> None:
    async with _client(tmp_path) as client:
        response = await client.post("/checkout")

        assert response.status_code == 401
        body = response.json()
        assert body["status"] == "sign_in_required"
        assert body["redirect"] == "/auth"
        assert body["notices"][0]["title"] == "Sign in required"


@pytest.mark.asyncio
async def test_checkout_with_empty_cart_is_rejected(tmp_path) -> None:
    async with _client(tmp_path) as client:
        response = await client.post("/checkout", headers=ADA)

        assert response.status_code == 400
        assert response.json()["status"] == "empty_cart"
        assert response.json()["whatsappUrl"] is None
        assert (await client.get("/orders")).json()["total"] == 0


@pytest.mark.asyncio
async def test_checkout_records_order_and_clears_cart(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, charger_id = await _seed_gadgets(client)
        profile = await client.put(
            "/profile",
            json={"fullName": "Ada Lovelace", "phone": "+2348000000000"},
            headers=ADA,
        )
        assert profile.status_code == 200
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=ADA)
        await client.post("/cart/items", json={"gadgetId": charger_id}, headers=ADA)

        response = await client.post("/checkout", headers=ADA)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "completed"
        assert body["message"].startswith("Hello JE Tech Hub 👋\n\nI would like to request the following gadgets:")
        assert "Total: ₦205,000" in body["message"]
        assert body["whatsappUrl"].startswith("https://wa.me/2348107941349?text=Hello%20JE%20Tech%20Hub")
        assert body["notices"][-1] == {
            "title": "Order created!",
            "description": "Redirecting you to WhatsApp...",
            "variant": "default",
        }

        cart = await client.get("/cart", headers=ADA)
        assert cart.json()["items"] == []

        order = (await client.get(f"/orders/{body['orderId']}")).json()
        assert order["userId"] == "user-ada"
        assert order["gadgetId"] == phone_id
        assert order["customerName"] == "Ada Lovelace"
        assert order["customerEmail"] == "ada@example.com"
        assert order["customerPhone"] == "+2348000000000"
        assert order["deliveryAddress"] == "Via WhatsApp"
        assert order["status"] == "requested_whatsapp"
        assert order["totalPrice"] == 205_000
        assert order["formattedTotal"] == "₦205,000"
        assert [(item["gadgetName"], item["gadgetPrice"], item["quantity"]) for item in order["items"]] == [
            ("Phone X", 100_000, 2),
            ("Charger", 5_000, 1),
        ]

        feed = (await client.get("/admin/notifications")).json()
        assert [entry["message"] for entry in feed] == ["New order from Ada Lovelace"]
        assert feed[0]["id"] == f"order-{body['orderId']}"

        stats = (await client.get("/admin/stats")).json()
        assert stats["totalOrders"] == 1
        assert stats["pendingOrders"] == 1
        assert stats["revenue"] == 205_000
        assert stats["formattedRevenue"] == "₦205,000"
        assert stats["gadgets"] == 2


@pytest.mark.asyncio
async def test_checkout_names_customer_from_email_without_profile(tmp_path) -> None:
    async with _client(tmp_path) as client:
        phone_id, _ = await _seed_gadgets(client)
        await client.post("/cart/items", json={"gadgetId": phone_id}, headers=GRACE)

        response = await client.post("/checkout", headers=GRACE)
        assert response.status_code == 201

        order = (await client.get(f"/orders/{response.json()['orderId']}")).json()
        assert order["customerName"] == "grace"
        assert order["customerPhone"] == ""


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
