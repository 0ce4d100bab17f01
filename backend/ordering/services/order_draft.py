from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from ordering.core.config import settings
from ordering.schemas.cart import (
    CustomerInfo,
    DeliveryMode,
    DeliveryZone,
    LineItem,
    OrderQuote,
    PaymentMethod,
    Totals,
)
from ordering.schemas.offer import Offer, OfferHint
from ordering.schemas.order import (
    CustomerLookup,
    OrderCreatePayload,
    OrderDraftPayload,
    OrderItemPayload,
    ProductLite,
)
from ordering.services import pricing
from ordering.services.offers import normalize_offers
from ordering.services.promotions import apply_offers


logger = logging.getLogger(__name__)


class OrderNotSubmittableError(Exception):
    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        self.message = message or pricing.BLOCKING_MESSAGES.get(code, code)
        super().__init__(self.message)


class OrderDraft(BaseModel):
    """Immutable snapshot of an order being composed.

    Every mutator returns a new draft. Monetary figures are not stored here;
    ``quote_draft`` derives them from the draft and an offer catalogue.
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[LineItem, ...] = ()
    delivery_mode: DeliveryMode = DeliveryMode.delivery
    zone: DeliveryZone | None = None
    customer: CustomerInfo = CustomerInfo()
    address_id: str | None = None
    address_text: str = ""
    payment_method: PaymentMethod = PaymentMethod.cash
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: OrderDraftPayload) -> "OrderDraft":
        return cls(
            items=tuple(_merge_lines(payload.items)),
            delivery_mode=payload.delivery_mode,
            zone=payload.zone,
            customer=CustomerInfo(name=payload.customer_name, phone=payload.customer_phone),
            address_id=payload.address_id,
            address_text=payload.address_text,
            payment_method=payload.payment_method,
            notes=payload.notes,
        )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def add_product(self, product: ProductLite, quantity: int = 1) -> "OrderDraft":
        if quantity <= 0:
            return self
        pid = str(product.id)
        existing = next((item for item in self.items if item.product_id == pid), None)
        if existing is None:
            line = LineItem(
                product_id=pid,
                unit_price=Decimal(product.price),
                quantity=quantity,
                category_id=product.category_id,
                name=product.name,
            )
            return self.model_copy(update={"items": self.items + (line,)})
        return self.set_quantity(pid, existing.quantity + quantity)

    def set_quantity(self, product_id: str, quantity: int) -> "OrderDraft":
        pid = str(product_id)
        if quantity <= 0:
            return self.remove_item(pid)
        items = tuple(
            item.model_copy(update={"quantity": quantity}) if item.product_id == pid else item for item in self.items
        )
        return self.model_copy(update={"items": items})

    def remove_item(self, product_id: str) -> "OrderDraft":
        pid = str(product_id)
        return self.model_copy(update={"items": tuple(item for item in self.items if item.product_id != pid)})

    def clear_items(self) -> "OrderDraft":
        return self.model_copy(update={"items": ()})

    def with_delivery(self, mode: DeliveryMode, zone: DeliveryZone | None = None) -> "OrderDraft":
        return self.model_copy(update={"delivery_mode": mode, "zone": zone if mode == DeliveryMode.delivery else None})

    def with_customer(self, *, name: str | None = None, phone: str | None = None) -> "OrderDraft":
        customer = CustomerInfo(
            name=self.customer.name if name is None else name,
            phone=self.customer.phone if phone is None else phone,
        )
        return self.model_copy(update={"customer": customer})

    def with_address(self, text: str, *, address_id: str | None = None) -> "OrderDraft":
        return self.model_copy(update={"address_text": text, "address_id": address_id})

    def with_customer_lookup(self, found: CustomerLookup | None) -> "OrderDraft":
        """Prefill customer fields from a phone lookup; a miss leaves the draft unchanged."""
        if found is None:
            return self
        draft = self.with_customer(name=found.name or None, phone=found.phone or None)
        default = found.default_address
        if default is not None:
            draft = draft.with_address(default.display_text, address_id=default.id)
        return draft


def _merge_lines(items: Iterable[LineItem]) -> list[LineItem]:
    merged: dict[str, LineItem] = {}
    for item in items:
        current = merged.get(item.product_id)
        if current is None:
            merged[item.product_id] = item
        else:
            merged[item.product_id] = current.model_copy(update={"quantity": current.quantity + item.quantity})
    return list(merged.values())


def _format_money(value: Decimal) -> str:
    return f"{pricing.quantize_money(value):.2f} {settings.currency}"


def offer_hints(offers: Iterable[Offer], items: Sequence[LineItem]) -> list[OfferHint]:
    """Nudges for offers whose cart-wide thresholds are not reached yet."""
    if not items:
        return []
    subtotal = pricing.items_subtotal(items)
    total_items = sum(item.quantity for item in items)
    hints: list[OfferHint] = []
    for offer in offers:
        if not offer.is_evaluable or offer.conditions is None:
            continue
        min_subtotal = offer.conditions.min_subtotal
        if min_subtotal is not None and subtotal < min_subtotal:
            missing = pricing.quantize_money(min_subtotal - subtotal)
            hints.append(
                OfferHint(
                    offer_id=offer.id,
                    code=offer.code,
                    kind="min_subtotal",
                    missing_amount=missing,
                    message=f"Add {_format_money(missing)} more to unlock “{offer.name}”.",
                )
            )
        min_items = offer.conditions.min_items
        if min_items is not None and total_items < min_items:
            missing_items = min_items - total_items
            hints.append(
                OfferHint(
                    offer_id=offer.id,
                    code=offer.code,
                    kind="min_items",
                    missing_items=missing_items,
                    message=f"Add {missing_items} more item(s) to unlock “{offer.name}”.",
                )
            )
    return hints


def quote_draft(
    draft: OrderDraft,
    offers: Iterable[Offer] | Sequence[Any] | Mapping[str, Any],
    *,
    now: datetime | None = None,
    rounding: pricing.MoneyRounding | None = None,
) -> OrderQuote:
    """Recompute every derived figure of ``draft`` from scratch.

    ``offers`` may be canonical ``Offer`` objects or raw payloads; raw ones are
    normalized first and malformed entries dropped.
    """
    mode = rounding or settings.money_rounding
    catalogue = normalize_offers(offers if isinstance(offers, Mapping) else list(offers), now=now)
    fee = pricing.base_delivery_fee(draft.delivery_mode, draft.zone)
    application = apply_offers(
        draft.items,
        catalogue,
        delivery_mode=draft.delivery_mode,
        delivery_fee=fee,
        rounding=mode,
    )
    totals = pricing.compute_order_totals(
        subtotal=pricing.items_subtotal(draft.items, rounding=mode),
        items_discount=application.items_discount,
        delivery_discount=application.delivery_discount,
        delivery_mode=draft.delivery_mode,
        zone=draft.zone,
        free_delivery=application.free_delivery,
        rounding=mode,
    )
    reason = pricing.submission_blocking_reason(
        has_items=bool(draft.items),
        customer_name=draft.customer.name,
        customer_phone=draft.customer.phone,
        delivery_mode=draft.delivery_mode,
        zone=draft.zone,
        address_text=draft.address_text,
        min_order_missing=totals.min_order_missing,
    )
    return OrderQuote(
        totals=Totals(
            subtotal=totals.subtotal,
            items_discount=totals.items_discount,
            delivery_discount=totals.delivery_discount,
            discount=totals.discount,
            base_delivery_fee=totals.base_delivery_fee,
            delivery_fee=totals.delivery_fee,
            total=totals.total,
            min_order_missing=totals.min_order_missing,
            currency=settings.currency,
        ),
        applied_offers=list(application.applied_offers),
        hints=offer_hints(catalogue, draft.items),
        can_submit=reason is None,
        blocking_reason=reason,
    )


def build_order_payload(draft: OrderDraft, quote: OrderQuote) -> OrderCreatePayload:
    """Order-create request for a quoted draft; refuses drafts that cannot be placed."""
    if not quote.can_submit:
        raise OrderNotSubmittableError(quote.blocking_reason or pricing.BlockingReason.empty_cart)
    is_delivery = draft.delivery_mode == DeliveryMode.delivery
    return OrderCreatePayload(
        delivery_type=draft.delivery_mode,
        payment_method=draft.payment_method,
        customer_name=draft.customer.name.strip(),
        customer_phone=draft.customer.phone.strip(),
        address_id=draft.address_id,
        address_text=draft.address_text.strip() if is_delivery else None,
        delivery_zone_id=draft.zone.id if is_delivery and draft.zone is not None else None,
        delivery_fee=quote.totals.base_delivery_fee,
        notes=(draft.notes or "").strip() or None,
        items=[OrderItemPayload(product_id=item.product_id, quantity=item.quantity) for item in draft.items],
        discount=quote.totals.discount,
        applied_offers=quote.applied_offers,
    )


def dump_draft(draft: OrderDraft) -> dict[str, Any]:
    """JSON-compatible form for client-side persistence. Derived totals are not included."""
    return draft.model_dump(mode="json")


def load_draft(data: dict[str, Any] | None) -> OrderDraft:
    if not data:
        return OrderDraft()
    return OrderDraft.model_validate(data)
