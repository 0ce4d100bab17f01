from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import httpx
from pydantic import BaseModel

from ordering.core.config import settings
from ordering.schemas.cart import DeliveryZone
from ordering.schemas.offer import Offer
from ordering.schemas.order import CustomerAddress, CustomerLookup, OrderCreated, ProductLite
from ordering.services import pricing
from ordering.services.offers import _parse_bool, _parse_decimal, _parse_id, normalize_offers


logger = logging.getLogger(__name__)


class StorefrontApiError(Exception):
    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def to_wire(value: Any) -> Any:
    """Request body form: money as 2-decimal numbers, enums as their values."""
    if isinstance(value, BaseModel):
        return to_wire(value.model_dump(mode="python"))
    if isinstance(value, Decimal):
        return float(pricing.quantize_money(value))
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(key): to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_wire(item) for item in value]
    return value


def _unwrap_list(payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    return list(payload) if isinstance(payload, (list, tuple)) else []


def _error_message(response: httpx.Response) -> str:
    fallback = f"HTTP error! status: {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or fallback
    if isinstance(body, Mapping):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return fallback


def _zone_from_raw(raw: Mapping[str, Any]) -> DeliveryZone | None:
    zone_id = _parse_id(raw.get("id"))
    if zone_id is None:
        return None
    fee = _parse_decimal(raw.get("deliveryFee", raw.get("delivery_fee")), fallback=Decimal("0"))
    minimum = _parse_decimal(
        raw.get("minOrder", raw.get("min_order", raw.get("min_order_amount"))),
        fallback=Decimal("0"),
    )
    return DeliveryZone(
        id=zone_id,
        name=str(raw.get("name") or zone_id),
        delivery_fee=pricing.quantize_money(max(fee, Decimal("0"))),
        min_order_amount=pricing.quantize_money(max(minimum, Decimal("0"))),
        active=_parse_bool(raw.get("active", raw.get("is_active")), fallback=True),
    )


def _product_from_raw(raw: Mapping[str, Any]) -> ProductLite | None:
    product_id = _parse_id(raw.get("id"))
    if product_id is None:
        return None
    price = _parse_decimal(raw.get("price"), fallback=Decimal("0"))
    return ProductLite(
        id=product_id,
        name=str(raw.get("name") or ""),
        price=max(price, Decimal("0")),
        category_id=_parse_id(raw.get("category_id", raw.get("categoryId"))),
    )


def _customer_from_raw(raw: Mapping[str, Any], *, phone: str) -> CustomerLookup:
    addresses: list[CustomerAddress] = []
    for item in raw.get("addresses") or []:
        if not isinstance(item, Mapping):
            continue
        address_id = _parse_id(item.get("id"))
        if address_id is None:
            continue
        addresses.append(
            CustomerAddress(
                id=address_id,
                city=str(item.get("city") or ""),
                address=str(item.get("address") or ""),
                is_default=_parse_bool(item.get("is_default", item.get("isDefault")), fallback=False),
                label=item.get("label"),
            )
        )
    return CustomerLookup(
        name=str(raw.get("name") or ""),
        phone=str(raw.get("phone") or phone),
        addresses=tuple(addresses),
    )


class StorefrontApiClient:
    """Async client for the storefront REST backend that owns catalogue and orders."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.storefront_api_url).rstrip("/")
        self.token = token if token is not None else settings.storefront_api_token
        self.timeout = timeout if timeout is not None else settings.storefront_api_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("storefront_request_failed", extra={"path": path, "method": method, "error": str(exc)})
            raise StorefrontApiError(None, str(exc) or "Storefront API unreachable") from exc
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "storefront_request_rejected",
                extra={"path": path, "method": method, "status_code": response.status_code},
            )
            raise StorefrontApiError(response.status_code, message)
        if "application/json" not in response.headers.get("content-type", ""):
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("storefront_response_malformed", extra={"path": path, "method": method})
            raise StorefrontApiError(response.status_code, "Malformed JSON from storefront API") from exc

    async def fetch_offers(self) -> list[Offer]:
        return normalize_offers(await self._request("GET", "/offers"))

    async def fetch_delivery_zones(self, *, active_only: bool = True) -> list[DeliveryZone]:
        params = {"active": 1} if active_only else None
        payload = await self._request("GET", "/delivery-zones", params=params)
        zones = [_zone_from_raw(raw) for raw in _unwrap_list(payload) if isinstance(raw, Mapping)]
        return [zone for zone in zones if zone is not None and (zone.active or not active_only)]

    async def search_products(self, query: str, *, page_size: int = 10) -> list[ProductLite]:
        cleaned = (query or "").strip()
        if not cleaned:
            return []
        payload = await self._request("GET", "/products", params={"search": cleaned, "pageSize": page_size})
        products = [_product_from_raw(raw) for raw in _unwrap_list(payload) if isinstance(raw, Mapping)]
        return [product for product in products if product is not None]

    async def lookup_customer_by_phone(self, phone: str) -> CustomerLookup | None:
        """Prefill helper; every failure is reported as "not found"."""
        cleaned = (phone or "").strip()
        if len(cleaned) < settings.customer_lookup_min_phone_length:
            return None
        try:
            payload = await self._request("GET", "/admin/clients/lookup", params={"phone": cleaned})
        except StorefrontApiError as exc:
            logger.info("customer_lookup_failed", extra={"status_code": exc.status_code})
            return None
        if isinstance(payload, Mapping) and isinstance(payload.get("data"), Mapping):
            payload = payload["data"]
        if not isinstance(payload, Mapping) or not payload:
            return None
        return _customer_from_raw(payload, phone=cleaned)

    async def submit_order(self, payload: BaseModel | Mapping[str, Any]) -> OrderCreated:
        body = await self._request("POST", "/admin/orders", json=to_wire(payload))
        if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping):
            body = body["data"]
        order_id = _parse_id(body.get("id")) if isinstance(body, Mapping) else None
        if order_id is None:
            raise StorefrontApiError(None, "Order was not created")
        return OrderCreated(id=order_id)

    async def update_order(self, order_id: str, payload: BaseModel | Mapping[str, Any]) -> Any:
        return await self._request("PATCH", f"/admin/orders/{order_id}", json=to_wire(payload))

    async def update_order_status(self, order_id: str, status: str) -> Any:
        return await self._request("PATCH", f"/admin/orders/{order_id}/status", json={"status": status})

    async def cancel_order(self, order_id: str) -> Any:
        return await self._request("POST", f"/admin/orders/{order_id}/cancel")
