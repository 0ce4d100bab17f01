from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ordering.schemas.cart import DeliveryMode, DeliveryZone, LineItem, OrderQuote, PaymentMethod
from ordering.schemas.offer import AppliedOffer


class OrderDraftPayload(BaseModel):
    """Wire shape of an order draft, as sent by the storefront and admin dialogs."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    items: list[LineItem] = Field(default_factory=list)
    delivery_mode: DeliveryMode = DeliveryMode.delivery
    zone: DeliveryZone | None = None
    customer_name: str = ""
    customer_phone: str = ""
    address_id: str | None = None
    address_text: str = ""
    payment_method: PaymentMethod = PaymentMethod.cash
    notes: str | None = None


class QuoteRequest(BaseModel):
    draft: OrderDraftPayload
    # Raw offer payloads in any supported casing; omitted means "use the upstream catalogue".
    offers: list[dict[str, Any]] | None = None


class QuoteResponse(OrderQuote):
    pass


class OrderItemPayload(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    product_id: str
    quantity: int = Field(ge=1)


class OrderCreatePayload(BaseModel):
    delivery_type: DeliveryMode
    payment_method: PaymentMethod
    customer_name: str
    customer_phone: str
    address_id: str | None = None
    address_text: str | None = None
    delivery_zone_id: str | None = None
    delivery_fee: Decimal
    notes: str | None = None
    items: list[OrderItemPayload]
    discount: Decimal
    applied_offers: list[AppliedOffer] = Field(default_factory=list)


class OrderCreated(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str


class OrderSubmitResponse(BaseModel):
    id: str
    quote: OrderQuote


class ProductLite(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    name: str
    price: Decimal = Decimal("0.00")
    category_id: str | None = None


class CustomerAddress(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    city: str = ""
    address: str = ""
    is_default: bool = False
    label: str | None = None

    @property
    def display_text(self) -> str:
        return f"{self.city}, {self.address}" if self.city else self.address


class CustomerLookup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    phone: str = ""
    addresses: tuple[CustomerAddress, ...] = ()

    @property
    def default_address(self) -> CustomerAddress | None:
        return next((address for address in self.addresses if address.is_default), None)
