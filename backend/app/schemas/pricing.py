"""Pricing schema definitions."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CartLineIn(BaseModel):
    """A cart line as submitted by the storefront."""

    product_id: str | None = None
    title: str | None = None
    unit_price: Decimal = Field(ge=Decimal("0"))
    quantity: int = Field(ge=1)


class PricingQuoteRequest(BaseModel):
    """Input payload for pricing a cart."""

    items: list[CartLineIn] = Field(default_factory=list)
    promo_code: str | None = None


class PromoApplicationRead(BaseModel):
    """Outcome of applying a promo code to a cart."""

    valid: bool
    discount: Decimal
    final_amount: Decimal
    message: str

    model_config = ConfigDict(from_attributes=True)


class PricingResultRead(BaseModel):
    """Priced totals of a cart."""

    items_price: Decimal
    tax_price: Decimal
    shipping_price: Decimal
    discount_amount: Decimal
    total_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class PricingQuoteRead(PricingResultRead):
    """Pricing response including the promo preview, if one was requested."""

    promo: PromoApplicationRead | None = None
