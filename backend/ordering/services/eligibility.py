from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ordering.schemas.cart import LineItem
from ordering.schemas.offer import CartScope, CategoryScope, Offer, ProductSetScope


@dataclass(frozen=True)
class EligibleSet:
    items: tuple[LineItem, ...]
    total_quantity: int
    total_subtotal: Decimal
    # One entry per unit, cheapest first.
    sorted_unit_prices: tuple[Decimal, ...]

    @property
    def is_empty(self) -> bool:
        return not self.items


def _in_scope(item: LineItem, offer: Offer) -> bool:
    scope = offer.scope
    if isinstance(scope, CartScope):
        return True
    if isinstance(scope, CategoryScope):
        return scope.category_id is not None and item.category_id == scope.category_id
    if isinstance(scope, ProductSetScope):
        return item.product_id in scope.product_ids
    return False


def resolve_eligibility(items: Sequence[LineItem], offer: Offer) -> EligibleSet:
    eligible = tuple(item for item in items if _in_scope(item, offer))
    unit_prices: list[Decimal] = []
    for item in eligible:
        unit_prices.extend([Decimal(item.unit_price)] * int(item.quantity))
    unit_prices.sort()
    return EligibleSet(
        items=eligible,
        total_quantity=sum(int(item.quantity) for item in eligible),
        total_subtotal=sum((item.line_total for item in eligible), start=Decimal("0.00")),
        sorted_unit_prices=tuple(unit_prices),
    )
