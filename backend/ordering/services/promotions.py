from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from ordering.schemas.cart import DeliveryMode, LineItem
from ordering.schemas.offer import AppliedOffer, Offer, OfferScopeKind, OfferType
from ordering.services.discounts import compute_offer_discount
from ordering.services.eligibility import resolve_eligibility
from ordering.services.pricing import ZERO, MoneyRounding, items_subtotal, quantize_money


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferApplication:
    discount: Decimal
    items_discount: Decimal
    delivery_discount: Decimal
    applied_offers: tuple[AppliedOffer, ...] = field(default_factory=tuple)

    @property
    def free_delivery(self) -> bool:
        return any(applied.type == OfferType.free_delivery for applied in self.applied_offers)


EMPTY_APPLICATION = OfferApplication(discount=ZERO, items_discount=ZERO, delivery_discount=ZERO)


def evaluation_order(offers: Iterable[Offer]) -> list[Offer]:
    """Offers that may run now, by ascending priority; ties keep input order."""
    return sorted((offer for offer in offers if offer.is_evaluable), key=lambda offer: offer.priority)


def _applied(offer: Offer, amount: Decimal) -> AppliedOffer:
    return AppliedOffer(
        offer_id=offer.id,
        code=offer.code,
        name=offer.name,
        type=offer.type,
        scope=OfferScopeKind(offer.scope.kind),
        amount=amount,
    )


def apply_offers(
    items: Sequence[LineItem],
    offers: Iterable[Offer],
    *,
    delivery_mode: DeliveryMode = DeliveryMode.pickup,
    delivery_fee: Decimal = ZERO,
    rounding: MoneyRounding = "half_up",
) -> OfferApplication:
    """Run the offer catalogue over a cart.

    Stackable offers always add. The first non-stackable offer with a
    positive discount is honoured and every later non-stackable offer is
    skipped, even when it would discount more: priority decides, not size.
    """
    if not items:
        return EMPTY_APPLICATION

    subtotal = items_subtotal(items, rounding=rounding)
    remaining_fee = delivery_fee if delivery_mode == DeliveryMode.delivery else ZERO
    items_discount = ZERO
    delivery_discount = ZERO
    non_stackable_applied = False
    applied: list[AppliedOffer] = []

    for offer in evaluation_order(offers):
        eligible = resolve_eligibility(items, offer)
        computed = compute_offer_discount(
            offer,
            eligible,
            delivery_mode=delivery_mode,
            delivery_fee=remaining_fee,
            rounding=rounding,
        )
        if computed.amount <= 0:
            continue
        if not offer.stackable:
            if non_stackable_applied:
                logger.debug("offer_suppressed", extra={"offer_id": offer.id, "priority": offer.priority})
                continue
            non_stackable_applied = True
        items_discount += computed.items_discount
        delivery_discount += computed.delivery_discount
        remaining_fee -= computed.delivery_discount
        applied.append(_applied(offer, quantize_money(computed.amount, rounding=rounding)))

    items_discount = quantize_money(min(items_discount, subtotal), rounding=rounding)
    delivery_discount = quantize_money(delivery_discount, rounding=rounding)
    discount = quantize_money(min(items_discount + delivery_discount, subtotal), rounding=rounding)
    return OfferApplication(
        discount=discount,
        items_discount=items_discount,
        delivery_discount=delivery_discount,
        applied_offers=tuple(applied),
    )
