"""Pricing-related API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.config import get_settings
from app.models.user import User
from app.schemas.pricing import (
    CartLineIn,
    PricingQuoteRead,
    PricingQuoteRequest,
    PromoApplicationRead,
)
from app.services import order_service
from app.services.pricing_service import CartLine, pricing_config_from_settings

router = APIRouter(prefix="/pricing", tags=["pricing"])


def to_cart_lines(items: list[CartLineIn]) -> list[CartLine]:
    return [
        CartLine(
            unit_price=item.unit_price,
            quantity=item.quantity,
            product_id=item.product_id,
            title=item.title,
        )
        for item in items
    ]


@router.post("/quote", response_model=PricingQuoteRead, summary="Quote cart pricing")
async def quote_cart_pricing(
    payload: PricingQuoteRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_active_user)],
) -> PricingQuoteRead:
    priced = await order_service.quote_cart(
        session,
        lines=to_cart_lines(payload.items),
        config=pricing_config_from_settings(get_settings()),
        promo_code=payload.promo_code,
    )
    promo = (
        PromoApplicationRead.model_validate(priced.promo)
        if priced.promo is not None
        else None
    )
    result = priced.result
    return PricingQuoteRead(
        items_price=result.items_price,
        tax_price=result.tax_price,
        shipping_price=result.shipping_price,
        discount_amount=result.discount_amount,
        total_price=result.total_price,
        promo=promo,
    )
