from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ordering.schemas.cart import DeliveryMode
from ordering.schemas.offer import Offer, OfferType
from ordering.services.eligibility import EligibleSet
from ordering.services.pricing import ZERO, MoneyRounding, quantize_money


@dataclass(frozen=True)
class OfferComputation:
    items_discount: Decimal
    delivery_discount: Decimal

    @property
    def amount(self) -> Decimal:
        return self.items_discount + self.delivery_discount


NO_DISCOUNT = OfferComputation(items_discount=ZERO, delivery_discount=ZERO)


def conditions_met(offer: Offer, eligible: EligibleSet) -> bool:
    conditions = offer.conditions
    if conditions is None:
        return True
    if conditions.min_subtotal is not None and eligible.total_subtotal < conditions.min_subtotal:
        return False
    if conditions.min_items is not None and eligible.total_quantity < conditions.min_items:
        return False
    return True


def _clamp_to_subtotal(value: Decimal, eligible: EligibleSet, *, rounding: MoneyRounding) -> Decimal:
    if value <= 0:
        return ZERO
    return quantize_money(min(value, eligible.total_subtotal), rounding=rounding)


def bxgy_free_units(total_quantity: int, *, buy: int, get: int, limit: int | None) -> int:
    if buy <= 0 or get <= 0:
        return 0
    blocks = total_quantity // (buy + get)
    if limit is not None:
        blocks = min(blocks, limit)
    return max(0, blocks * get)


def _bxgy_discount(offer: Offer, eligible: EligibleSet) -> Decimal:
    rule = offer.conditions.bxgy if offer.conditions is not None else None
    if rule is None:
        return ZERO
    free_units = bxgy_free_units(eligible.total_quantity, buy=rule.buy, get=rule.get, limit=rule.limit)
    if free_units <= 0:
        return ZERO
    return sum(eligible.sorted_unit_prices[:free_units], start=ZERO)


def compute_offer_discount(
    offer: Offer,
    eligible: EligibleSet,
    *,
    delivery_mode: DeliveryMode = DeliveryMode.pickup,
    delivery_fee: Decimal = ZERO,
    rounding: MoneyRounding = "half_up",
) -> OfferComputation:
    """Monetary effect of a single offer on its eligible items.

    Gates run before any arithmetic. FREE_DELIVERY is bounded by the delivery
    fee; every other type is bounded by the eligible subtotal.
    """
    if not conditions_met(offer, eligible):
        return NO_DISCOUNT

    if offer.type == OfferType.free_delivery:
        if delivery_mode != DeliveryMode.delivery or delivery_fee <= 0:
            return NO_DISCOUNT
        return OfferComputation(items_discount=ZERO, delivery_discount=quantize_money(delivery_fee, rounding=rounding))

    if eligible.total_subtotal <= 0:
        return NO_DISCOUNT

    if offer.type == OfferType.percent:
        raw = eligible.total_subtotal * Decimal(offer.value) / Decimal("100")
    elif offer.type == OfferType.fixed:
        raw = min(Decimal(offer.value), eligible.total_subtotal)
    elif offer.type == OfferType.bxgy:
        raw = _bxgy_discount(offer, eligible)
    else:
        return NO_DISCOUNT

    return OfferComputation(items_discount=_clamp_to_subtotal(raw, eligible, rounding=rounding), delivery_discount=ZERO)
