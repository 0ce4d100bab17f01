from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class OfferType(str, enum.Enum):
    percent = "PERCENT"
    fixed = "FIXED"
    bxgy = "BXGY"
    free_delivery = "FREE_DELIVERY"


class OfferScopeKind(str, enum.Enum):
    cart = "cart"
    category = "category"
    product_set = "product_ids"


class CartScope(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["cart"] = "cart"


class CategoryScope(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["category"] = "category"
    # None matches nothing.
    category_id: str | None = None


class ProductSetScope(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["product_ids"] = "product_ids"
    product_ids: frozenset[str] = frozenset()


OfferScope = Annotated[Union[CartScope, CategoryScope, ProductSetScope], Field(discriminator="kind")]


class BxgyRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    buy: int = 0
    get: int = 0
    limit: int | None = None


class OfferConditions(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_items: int | None = None
    min_subtotal: Decimal | None = None
    bxgy: BxgyRule | None = None


class Offer(BaseModel):
    """Canonical promotional rule, produced by ``services.offers.normalize_offer``."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str | None = None
    name: str
    description: str | None = None
    type: OfferType
    value: Decimal = Decimal("0")
    scope: OfferScope = Field(default_factory=CartScope)
    conditions: OfferConditions | None = None
    stackable: bool = False
    priority: int = 0
    active: bool = True
    active_now: bool = True
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    @property
    def is_evaluable(self) -> bool:
        return self.active and self.active_now


class AppliedOffer(BaseModel):
    model_config = ConfigDict(frozen=True)

    offer_id: str
    code: str | None = None
    name: str
    type: OfferType
    scope: OfferScopeKind
    amount: Decimal


class OfferHint(BaseModel):
    model_config = ConfigDict(frozen=True)

    offer_id: str
    code: str | None = None
    kind: Literal["min_subtotal", "min_items"]
    missing_amount: Decimal | None = None
    missing_items: int | None = None
    message: str
