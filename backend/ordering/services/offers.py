from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ordering.schemas.offer import (
    BxgyRule,
    CartScope,
    CategoryScope,
    Offer,
    OfferConditions,
    OfferType,
    ProductSetScope,
)


logger = logging.getLogger(__name__)

MAX_PERCENT = Decimal("100")

_TYPE_ALIASES: dict[str, OfferType] = {
    "PERCENT": OfferType.percent,
    "PERCENTAGE": OfferType.percent,
    "FIXED": OfferType.fixed,
    "AMOUNT": OfferType.fixed,
    "BXGY": OfferType.bxgy,
    "BUY_X_GET_Y": OfferType.bxgy,
    "FREE_DELIVERY": OfferType.free_delivery,
    "FREE_SHIPPING": OfferType.free_delivery,
}

# Scope spellings collapse to lowercase without separators before lookup.
_SCOPE_ALIASES: dict[str, str] = {
    "cart": "cart",
    "category": "category",
    "productids": "product_ids",
    "productset": "product_ids",
    "products": "product_ids",
}


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _parse_decimal(value: object | None, *, fallback: Decimal) -> Decimal:
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, Decimal):
        return value if value.is_finite() else fallback
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return fallback
        return parsed if parsed.is_finite() else fallback
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return fallback
        try:
            parsed = Decimal(candidate)
        except InvalidOperation:
            return fallback
        return parsed if parsed.is_finite() else fallback
    return fallback


def _parse_bool(value: object | None, *, fallback: bool) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in {"1", "true", "yes", "on"}:
            return True
        if candidate in {"0", "false", "no", "off"}:
            return False
    return fallback


def _parse_int(value: object | None, *, fallback: int | None) -> int | None:
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    if isinstance(value, (int, float, str, Decimal)):
        try:
            return int(Decimal(str(value)))
        except (InvalidOperation, ValueError, OverflowError):
            return fallback
    return fallback


def _parse_datetime(value: object | None) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_id(value: object | None) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _non_negative(value: Decimal) -> Decimal:
    return value if value > 0 else Decimal("0")


def _positive_int_or_none(value: object | None) -> int | None:
    parsed = _parse_int(value, fallback=None)
    if parsed is None or parsed <= 0:
        return None
    return parsed


def _normalize_type(value: object | None) -> OfferType | None:
    key = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    return _TYPE_ALIASES.get(key)


def _normalize_scope(raw: Mapping[str, Any]) -> CartScope | CategoryScope | ProductSetScope | None:
    scope_raw = _pick(raw, "application_type", "applicationType", "scope")
    key = str(scope_raw or "").strip().lower().replace("_", "").replace("-", "")
    kind = _SCOPE_ALIASES.get(key)
    if kind == "cart":
        return CartScope()
    if kind == "category":
        return CategoryScope(category_id=_parse_id(_pick(raw, "category_id", "categoryId", "scope_category_id", "scopeCategoryId")))
    if kind == "product_ids":
        return ProductSetScope(product_ids=frozenset(_product_ids(raw)))
    return None


def _product_ids(raw: Mapping[str, Any]) -> list[str]:
    ids: list[str] = []
    listed = _pick(raw, "product_ids", "productIds", "scope_product_ids", "scopeProductIds")
    if isinstance(listed, (list, tuple, set, frozenset)):
        ids.extend(pid for pid in (_parse_id(item) for item in listed) if pid)
    products = raw.get("products")
    if isinstance(products, (list, tuple)):
        for product in products:
            pid = _parse_id(product.get("id")) if isinstance(product, Mapping) else _parse_id(product)
            if pid:
                ids.append(pid)
    return ids


def _normalize_bxgy(value: object | None) -> BxgyRule | None:
    if not isinstance(value, Mapping):
        return None
    return BxgyRule(
        buy=_parse_int(value.get("buy"), fallback=0) or 0,
        get=_parse_int(value.get("get"), fallback=0) or 0,
        limit=_positive_int_or_none(value.get("limit")),
    )


def _normalize_conditions(raw: Mapping[str, Any]) -> OfferConditions | None:
    conditions = raw.get("conditions")
    top_level_bxgy = raw.get("bxgy")
    if not isinstance(conditions, Mapping):
        if isinstance(top_level_bxgy, Mapping):
            return OfferConditions(bxgy=_normalize_bxgy(top_level_bxgy))
        return None
    min_subtotal = _parse_decimal(_pick(conditions, "min_subtotal", "minSubtotal"), fallback=Decimal("0"))
    return OfferConditions(
        min_items=_positive_int_or_none(_pick(conditions, "min_items", "minItems")),
        min_subtotal=min_subtotal if min_subtotal > 0 else None,
        bxgy=_normalize_bxgy(conditions.get("bxgy")) or _normalize_bxgy(top_level_bxgy),
    )


def is_within_window(starts_at: datetime | None, ends_at: datetime | None, *, now: datetime) -> bool:
    if starts_at is not None and starts_at > now:
        return False
    if ends_at is not None and ends_at < now:
        return False
    return True


def _exclude(raw: Mapping[str, Any], reason: str) -> None:
    logger.debug("offer_excluded", extra={"offer_id": raw.get("id"), "reason": reason})


def normalize_offer(raw: object, *, now: datetime | None = None) -> Offer | None:
    """Turn one upstream offer payload into the canonical ``Offer``.

    Returns None instead of raising when the payload cannot be evaluated
    (unknown type or scope, no identifier, percent above 100).
    """
    if not isinstance(raw, Mapping):
        return None
    offer_type = _normalize_type(raw.get("type"))
    if offer_type is None:
        _exclude(raw, "unknown_type")
        return None
    scope = _normalize_scope(raw)
    if scope is None:
        _exclude(raw, "unknown_scope")
        return None
    code = _parse_id(raw.get("code"))
    offer_id = _parse_id(_pick(raw, "numericId", "numeric_id", "id")) or code
    if offer_id is None:
        _exclude(raw, "missing_id")
        return None

    value = _non_negative(_parse_decimal(raw.get("value"), fallback=Decimal("0")))
    if offer_type == OfferType.percent and value > MAX_PERCENT:
        _exclude(raw, "percent_out_of_range")
        return None

    starts_at = _parse_datetime(_pick(raw, "starts_at", "startsAt"))
    ends_at = _parse_datetime(_pick(raw, "ends_at", "endsAt"))
    active_now_raw = _pick(raw, "active_now", "activeNow", "is_active_now", "isActiveNow")
    if active_now_raw is None:
        active_now = is_within_window(starts_at, ends_at, now=now or datetime.now(timezone.utc))
    else:
        active_now = _parse_bool(active_now_raw, fallback=True)

    name = str(raw.get("name") or code or offer_id)
    description = raw.get("description")
    return Offer(
        id=offer_id,
        code=code,
        name=name,
        description=str(description) if description is not None else None,
        type=offer_type,
        value=value,
        scope=scope,
        conditions=_normalize_conditions(raw),
        stackable=_parse_bool(raw.get("stackable"), fallback=False),
        priority=_parse_int(raw.get("priority"), fallback=0) or 0,
        active=_parse_bool(_pick(raw, "active", "is_active", "isActive"), fallback=True),
        active_now=active_now,
        starts_at=starts_at,
        ends_at=ends_at,
    )


def normalize_offers(payload: object, *, now: datetime | None = None) -> list[Offer]:
    """Normalize a list of offers, or the ``{"data": [...]}`` envelope the API returns."""
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    if not isinstance(payload, (list, tuple)):
        return []
    moment = now or datetime.now(timezone.utc)
    offers: list[Offer] = []
    for raw in payload:
        if isinstance(raw, Offer):
            offers.append(raw)
            continue
        offer = normalize_offer(raw, now=moment)
        if offer is not None:
            offers.append(offer)
    return offers
