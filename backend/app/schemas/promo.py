"""Promo code schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.promo_code import DiscountType


class PromoValidateRequest(BaseModel):
    """Shopper request to preview a promo code against a cart total."""

    code: str = Field(min_length=1)
    cart_total: Decimal


class PromoValidateResponse(BaseModel):
    success: bool = True
    promo_code_id: uuid.UUID
    code: str
    discount: Decimal
    final_amount: Decimal
    message: str


class PromoCodeBase(BaseModel):
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: Decimal = Field(ge=Decimal("0"))
    min_cart_value: Decimal | None = Field(default=None, ge=Decimal("0"))
    max_discount: Decimal | None = Field(default=None, ge=Decimal("0"))
    usage_limit: int = Field(ge=1)
    per_user_limit: int | None = Field(default=None, ge=1)
    expiry_date: datetime
    is_active: bool | None = None


class PromoCodeCreate(PromoCodeBase):
    code: str = Field(min_length=1, max_length=64)


class PromoCodeUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=64)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=Decimal("0"))
    min_cart_value: Decimal | None = Field(default=None, ge=Decimal("0"))
    max_discount: Decimal | None = Field(default=None, ge=Decimal("0"))
    usage_limit: int | None = Field(default=None, ge=1)
    per_user_limit: int | None = Field(default=None, ge=1)
    expiry_date: datetime | None = None
    is_active: bool | None = None


class PromoCodeRead(BaseModel):
    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_cart_value: Decimal
    max_discount: Decimal | None = None
    usage_limit: int
    used_count: int
    per_user_limit: int
    expiry_date: datetime
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PromoUsageRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user_email: str | None = None
    order_id: uuid.UUID
    order_total: Decimal | None = None
    discount_amount: Decimal
    used_at: datetime


class PromoStatsSummary(BaseModel):
    total_usages: int
    remaining_usages: int
    total_discount_given: Decimal
    unique_users: int


class PromoStatsRead(BaseModel):
    promo_code: PromoCodeRead
    usages: list[PromoUsageRead]
    stats: PromoStatsSummary


class MessageResponse(BaseModel):
    message: str
