"""Order schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.order import OrderStatus
from app.schemas.pricing import CartLineIn


class ShippingAddress(BaseModel):
    address: str
    city: str
    postal_code: str
    country: str


class OrderCreate(BaseModel):
    items: list[CartLineIn] = Field(min_length=1)
    shipping_address: ShippingAddress | None = None
    payment_method: str = "razorpay"
    promo_code: str | None = None


class OrderPayRequest(BaseModel):
    """Payment confirmation forwarded by the payment flow."""

    payment_reference: str | None = None


class OrderRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    items: list[dict[str, Any]]
    shipping_address: dict[str, Any]
    payment_method: str
    items_price: Decimal
    tax_price: Decimal
    shipping_price: Decimal
    discount_amount: Decimal
    total_price: Decimal
    promo_code_id: uuid.UUID | None = None
    status: OrderStatus
    is_paid: bool
    paid_at: datetime | None = None
    payment_reference: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceLineRead(BaseModel):
    title: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceTotalRead(BaseModel):
    label: str
    amount: Decimal


class InvoiceRead(BaseModel):
    order_id: uuid.UUID
    store_name: str
    currency: str
    lines: list[InvoiceLineRead]
    totals: list[InvoiceTotalRead]
    grand_total: Decimal
