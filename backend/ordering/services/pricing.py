from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP
from typing import Iterable, Literal

from ordering.schemas.cart import DeliveryMode, DeliveryZone, LineItem


MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyRounding = Literal["half_up", "half_even", "up", "down"]


_ROUNDING_MAP: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "up": ROUND_UP,
    "down": ROUND_DOWN,
}


class BlockingReason:
    empty_cart = "empty_cart"
    missing_name = "missing_name"
    missing_phone = "missing_phone"
    missing_zone = "missing_zone"
    missing_address = "missing_address"
    min_order_not_met = "min_order_not_met"


BLOCKING_MESSAGES: dict[str, str] = {
    BlockingReason.empty_cart: "Add at least one product to the order.",
    BlockingReason.missing_name: "Customer name is required.",
    BlockingReason.missing_phone: "Customer phone is required.",
    BlockingReason.missing_zone: "Select a delivery zone.",
    BlockingReason.missing_address: "Delivery address is required.",
    BlockingReason.min_order_not_met: "Minimum order amount for the selected zone is not met.",
}


def quantize_money(value: Decimal, *, rounding: MoneyRounding = "half_up") -> Decimal:
    mode = _ROUNDING_MAP.get(str(rounding), ROUND_HALF_UP)
    return Decimal(value).quantize(MONEY_QUANT, rounding=mode)


def _non_negative(value: Decimal) -> Decimal:
    return value if value > 0 else ZERO


def items_subtotal(items: Iterable[LineItem], *, rounding: MoneyRounding = "half_up") -> Decimal:
    subtotal = sum((item.line_total for item in items), start=ZERO)
    return quantize_money(subtotal, rounding=rounding)


def base_delivery_fee(delivery_mode: DeliveryMode, zone: DeliveryZone | None) -> Decimal:
    if delivery_mode != DeliveryMode.delivery or zone is None:
        return ZERO
    return _non_negative(Decimal(zone.delivery_fee))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    items_discount: Decimal
    delivery_discount: Decimal
    discount: Decimal
    base_delivery_fee: Decimal
    delivery_fee: Decimal
    total: Decimal
    min_order_missing: Decimal


def compute_min_order_missing(
    *,
    subtotal: Decimal,
    items_discount: Decimal,
    delivery_mode: DeliveryMode,
    zone: DeliveryZone | None,
    rounding: MoneyRounding = "half_up",
) -> Decimal:
    if delivery_mode != DeliveryMode.delivery or zone is None:
        return ZERO
    effective = _non_negative(subtotal - items_discount)
    missing = _non_negative(Decimal(zone.min_order_amount) - effective)
    return quantize_money(missing, rounding=rounding)


def compute_order_totals(
    *,
    subtotal: Decimal,
    items_discount: Decimal,
    delivery_discount: Decimal = ZERO,
    delivery_mode: DeliveryMode,
    zone: DeliveryZone | None,
    free_delivery: bool = False,
    rounding: MoneyRounding = "half_up",
) -> OrderTotals:
    """Combine subtotal, offer discounts and the zone fee into the payable figures.

    ``items_discount`` is what the offers take off the merchandise; a waived
    delivery fee is reported in ``delivery_discount`` and folded into
    ``discount`` for display, but it only reaches the total through the
    effective ``delivery_fee`` being zero. The minimum-order gate is measured
    against the merchandise after ``items_discount``.
    """
    subtotal_q = quantize_money(_non_negative(subtotal), rounding=rounding)
    items_discount_q = quantize_money(min(_non_negative(items_discount), subtotal_q), rounding=rounding)
    base_fee = quantize_money(base_delivery_fee(delivery_mode, zone), rounding=rounding)

    charged_fee = base_fee
    if delivery_mode != DeliveryMode.delivery or free_delivery:
        charged_fee = ZERO
    delivery_discount_q = ZERO
    if delivery_mode == DeliveryMode.delivery:
        delivery_discount_q = quantize_money(min(_non_negative(delivery_discount), base_fee), rounding=rounding)

    discount = quantize_money(min(items_discount_q + delivery_discount_q, subtotal_q), rounding=rounding)
    total = quantize_money(_non_negative(subtotal_q - items_discount_q + charged_fee), rounding=rounding)
    missing = compute_min_order_missing(
        subtotal=subtotal_q,
        items_discount=items_discount_q,
        delivery_mode=delivery_mode,
        zone=zone,
        rounding=rounding,
    )
    return OrderTotals(
        subtotal=subtotal_q,
        items_discount=items_discount_q,
        delivery_discount=delivery_discount_q,
        discount=discount,
        base_delivery_fee=base_fee,
        delivery_fee=charged_fee,
        total=total,
        min_order_missing=missing,
    )


def submission_blocking_reason(
    *,
    has_items: bool,
    customer_name: str | None,
    customer_phone: str | None,
    delivery_mode: DeliveryMode,
    zone: DeliveryZone | None,
    address_text: str | None,
    min_order_missing: Decimal,
) -> str | None:
    """Return the first unmet submission condition, or None when the order can be placed."""
    if not has_items:
        return BlockingReason.empty_cart
    if not (customer_name or "").strip():
        return BlockingReason.missing_name
    if not (customer_phone or "").strip():
        return BlockingReason.missing_phone
    if delivery_mode == DeliveryMode.pickup:
        return None
    if zone is None:
        return BlockingReason.missing_zone
    if not (address_text or "").strip():
        return BlockingReason.missing_address
    if min_order_missing > 0:
        return BlockingReason.min_order_not_met
    return None
