from __future__ import annotations

import enum
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ordering.schemas.offer import AppliedOffer, OfferHint


class DeliveryMode(str, enum.Enum):
    delivery = "delivery"
    pickup = "pickup"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    card = "card"


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    product_id: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    category_id: str | None = None
    name: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class DeliveryZone(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    name: str
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    min_order_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    active: bool = True


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    phone: str = ""


class Totals(BaseModel):
    subtotal: Decimal
    items_discount: Decimal = Decimal("0.00")
    delivery_discount: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    base_delivery_fee: Decimal = Decimal("0.00")
    delivery_fee: Decimal = Decimal("0.00")
    total: Decimal
    min_order_missing: Decimal = Decimal("0.00")
    currency: str | None = "RON"


class OrderQuote(BaseModel):
    totals: Totals
    applied_offers: list[AppliedOffer] = Field(default_factory=list)
    hints: list[OfferHint] = Field(default_factory=list)
    can_submit: bool
    blocking_reason: str | None = None
