"""Order creation and payment finalization."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Order, OrderStatus, User
from app.services import promo_service
from app.services.pricing_service import (
    CartLine,
    PricedCart,
    PricingConfig,
    PromoRule,
    compute_items_price,
    price_cart,
)

logger = logging.getLogger(__name__)


class OrderError(ValueError):
    """Raised when an order cannot be created or updated."""


class OrderNotFound(LookupError):
    """Raised when an order does not exist."""


def _snapshot(lines: Sequence[CartLine]) -> list[dict[str, Any]]:
    return [
        {
            "product_id": line.product_id,
            "title": line.title,
            "quantity": line.quantity,
            "unit_price": str(line.unit_price),
        }
        for line in lines
    ]


async def quote_cart(
    session: AsyncSession,
    *,
    lines: Sequence[CartLine],
    config: PricingConfig,
    promo_code: str | None = None,
    now: datetime | None = None,
) -> PricedCart:
    """Price a cart, previewing the promo when one is supplied.

    Unlike order creation this never raises for an unusable promo; the
    outcome is reported on the returned ``PricedCart.promo``.
    """

    rule: PromoRule | None = None
    requested = bool(promo_code and promo_code.strip())
    if requested:
        promo = await promo_service.get_promo_by_code(session, promo_code or "")
        if promo is not None:
            rule = PromoRule.from_model(promo)
    return price_cart(
        lines, config=config, promo=rule, promo_requested=requested, now=now
    )


async def create_order(
    session: AsyncSession,
    *,
    user: User,
    lines: Sequence[CartLine],
    config: PricingConfig,
    shipping_address: dict[str, Any] | None = None,
    payment_method: str = "razorpay",
    promo_code: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Price the cart server-side and persist a pending order.

    The promo is re-validated for ``user`` but not redeemed here;
    redemption happens in :func:`mark_order_paid`.
    """

    if not lines:
        raise OrderError("No order items")

    now = now or datetime.now(UTC)
    promo = None
    rule: PromoRule | None = None
    if promo_code and promo_code.strip():
        promo = await promo_service.get_promo_by_code(session, promo_code)
        if promo is None:
            raise promo_service.PromoCodeNotFound("Invalid promo code")
        await promo_service.check_promo_for_user(
            session,
            promo,
            cart_total=compute_items_price(lines),
            user_id=user.id,
            now=now,
        )
        rule = PromoRule.from_model(promo)

    priced = price_cart(lines, config=config, promo=rule, now=now)
    result = priced.result

    order = Order(
        user_id=user.id,
        items=_snapshot(lines),
        shipping_address=dict(shipping_address or {}),
        payment_method=payment_method,
        items_price=result.items_price,
        tax_price=result.tax_price,
        shipping_price=result.shipping_price,
        discount_amount=result.discount_amount,
        total_price=result.total_price,
        promo_code_id=promo.id if promo is not None else None,
        status=OrderStatus.PENDING,
        is_paid=False,
    )
    session.add(order)
    await session.commit()
    await session.refresh(order)
    logger.info(
        "Created order %s for user %s: %s line(s), total %s",
        order.id,
        user.id,
        len(lines),
        result.total_price,
    )
    return order


async def get_order(session: AsyncSession, order_id: UUID) -> Order | None:
    return await session.get(Order, order_id)


async def list_orders_for_user(session: AsyncSession, user_id: UUID) -> list[Order]:
    stmt = (
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def mark_order_paid(
    session: AsyncSession,
    *,
    order_id: UUID,
    payment_reference: str | None = None,
    paid_at: datetime | None = None,
) -> Order:
    """Finalize an order after the payment gateway reported success.

    The pending -> paid flip is a conditional UPDATE, so of two concurrent
    payments for the same order only one redeems the promo. The redemption
    is recorded in the same transaction; if the promo was exhausted in the
    meantime nothing is written and the order stays unpaid.
    """

    order = await get_order(session, order_id)
    if order is None:
        raise OrderNotFound("Order not found")
    if order.is_paid:
        return order
    if order.status == OrderStatus.CANCELLED:
        raise OrderError("Cancelled orders cannot be paid")

    stmt = (
        update(Order)
        .where(
            Order.id == order_id,
            Order.is_paid.is_(False),
            Order.status == OrderStatus.PENDING,
        )
        .values(
            is_paid=True,
            status=OrderStatus.PAID,
            paid_at=paid_at or datetime.now(UTC),
            payment_reference=payment_reference,
        )
        .execution_options(synchronize_session=False)
    )
    try:
        flipped = (await session.execute(stmt)).rowcount == 1
        if flipped and order.promo_code_id is not None:
            await promo_service.redeem_promo(
                session,
                promo_id=order.promo_code_id,
                user_id=order.user_id,
                order=order,
                discount_amount=order.discount_amount,
            )
        await session.commit()
    except promo_service.PromoRedemptionError:
        await session.rollback()
        raise
    await session.refresh(order)
    if not flipped:
        # Another request settled the order first.
        if order.status == OrderStatus.CANCELLED:
            raise OrderError("Cancelled orders cannot be paid")
        return order
    logger.info("Order %s marked paid", order.id)
    return order


async def cancel_order(session: AsyncSession, *, order_id: UUID) -> Order:
    """Cancel an order that has not been paid yet."""

    order = await get_order(session, order_id)
    if order is None:
        raise OrderNotFound("Order not found")
    if order.is_paid:
        raise OrderError("Paid orders cannot be cancelled")
    if order.status != OrderStatus.CANCELLED:
        order.status = OrderStatus.CANCELLED
        await session.commit()
        await session.refresh(order)
        logger.info("Order %s cancelled", order.id)
    return order
