import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from ordering.schemas.cart import DeliveryMode, PaymentMethod
from ordering.schemas.order import OrderCreatePayload, OrderItemPayload
from ordering.services.storefront_api import StorefrontApiClient, StorefrontApiError, to_wire


BASE_URL = "http://storefront.test/api"


def _client(handler, token: str | None = "secret") -> StorefrontApiClient:
    return StorefrontApiClient(BASE_URL, token=token, timeout=5.0, transport=httpx.MockTransport(handler))


def test_fetch_offers_normalizes_envelope() -> None:
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "data": [
                    {"id": 1, "name": "A", "type": "FIXED", "value": 5, "application_type": "cart", "isActiveNow": True},
                    {"id": 2, "name": "B", "type": "UNKNOWN", "application_type": "cart"},
                ]
            },
        )

    offers = asyncio.run(_client(handler).fetch_offers())

    assert [offer.id for offer in offers] == ["1"]
    assert seen[0].url.path == "/api/offers"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_fetch_delivery_zones_handles_both_casings() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params.get("active") == "1"
        return httpx.Response(
            200,
            json=[
                {"id": 1, "name": "Centru", "deliveryFee": 10, "minOrder": 40},
                {"id": 2, "name": "Periferie", "delivery_fee": "17.5", "min_order": "60"},
                {"name": "no id"},
            ],
        )

    zones = asyncio.run(_client(handler).fetch_delivery_zones(active_only=True))

    assert [(zone.id, zone.delivery_fee, zone.min_order_amount) for zone in zones] == [
        ("1", Decimal("10.00"), Decimal("40.00")),
        ("2", Decimal("17.50"), Decimal("60.00")),
    ]


def test_search_products_skips_blank_query() -> None:
    calls = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        assert request.url.params.get("search") == "pizza"
        assert request.url.params.get("pageSize") == "10"
        return httpx.Response(200, json={"data": [{"id": 3, "name": "Pizza", "price": "32.5", "category_id": 4}]})

    client = _client(handler)
    assert asyncio.run(client.search_products("   ")) == []
    products = asyncio.run(client.search_products(" pizza ", page_size=10))

    assert calls["count"] == 1
    assert products[0].id == "3"
    assert products[0].price == Decimal("32.5")
    assert products[0].category_id == "4"


def test_lookup_customer_by_phone_prefill_and_failures() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        phone = request.url.params.get("phone")
        if phone == "0722000000":
            return httpx.Response(
                200,
                json={
                    "name": "Ana",
                    "phone": phone,
                    "addresses": [{"id": 5, "city": "Cluj", "address": "Str. Lunga 1", "isDefault": True}],
                },
            )
        if phone == "0799999999":
            return httpx.Response(500, json={"message": "boom"})
        return httpx.Response(200, json={})

    client = _client(handler)
    found = asyncio.run(client.lookup_customer_by_phone("0722000000"))
    assert found is not None
    assert found.name == "Ana"
    assert found.default_address is not None
    assert found.default_address.display_text == "Cluj, Str. Lunga 1"

    assert asyncio.run(client.lookup_customer_by_phone("0799999999")) is None
    assert asyncio.run(client.lookup_customer_by_phone("0711111111")) is None
    assert asyncio.run(client.lookup_customer_by_phone("123")) is None


def test_submit_order_sends_numbers_and_returns_id() -> None:
    bodies: list[dict] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/admin/orders"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": 42})

    payload = OrderCreatePayload(
        delivery_type=DeliveryMode.delivery,
        payment_method=PaymentMethod.cash,
        customer_name="Ana",
        customer_phone="0722000000",
        address_text="Str. Lunga 1",
        delivery_zone_id="1",
        delivery_fee=Decimal("15"),
        items=[OrderItemPayload(product_id="1", quantity=2)],
        discount=Decimal("9.005"),
    )
    created = asyncio.run(_client(handler).submit_order(payload))

    assert created.id == "42"
    assert bodies[0]["delivery_fee"] == 15.0
    assert bodies[0]["discount"] == 9.01
    assert bodies[0]["delivery_type"] == "delivery"
    assert bodies[0]["items"] == [{"product_id": "1", "quantity": 2}]


def test_server_rejection_surfaces_message() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Produs indisponibil"})

    with pytest.raises(StorefrontApiError) as excinfo:
        asyncio.run(_client(handler).submit_order({"items": []}))
    assert excinfo.value.status_code == 422
    assert excinfo.value.message == "Produs indisponibil"


def test_malformed_json_body_becomes_api_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>", headers={"content-type": "application/json"})

    with pytest.raises(StorefrontApiError) as excinfo:
        asyncio.run(_client(handler).fetch_offers())
    assert excinfo.value.status_code == 200


def test_network_failure_becomes_api_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorefrontApiError) as excinfo:
        asyncio.run(_client(handler).fetch_offers())
    assert excinfo.value.status_code is None


def test_order_lifecycle_calls() -> None:
    seen: list[tuple[str, str, bytes]] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={"status": "ok"})

    client = _client(handler, token=None)
    asyncio.run(client.update_order("7", {"notes": "x"}))
    asyncio.run(client.update_order_status("7", "confirmed"))
    asyncio.run(client.cancel_order("7"))

    assert [(method, path) for method, path, _ in seen] == [
        ("PATCH", "/api/admin/orders/7"),
        ("PATCH", "/api/admin/orders/7/status"),
        ("POST", "/api/admin/orders/7/cancel"),
    ]
    assert json.loads(seen[1][2]) == {"status": "confirmed"}


def test_to_wire_rounds_money_and_flattens_enums() -> None:
    assert to_wire({"fee": Decimal("1.005"), "mode": DeliveryMode.pickup, "ids": ("a",)}) == {
        "fee": 1.01,
        "mode": "pickup",
        "ids": ["a"],
    }
