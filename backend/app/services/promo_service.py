"""Promo code lookup, validation, administration and redemption."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import DiscountType, Order, PromoCode, PromoCodeUsage
from app.services.pricing_service import (
    PromoApplication,
    PromoRule,
    apply_promo,
    to_money,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "discount_type",
    "discount_value",
    "min_cart_value",
    "max_discount",
    "usage_limit",
    "per_user_limit",
    "expiry_date",
    "is_active",
)


class PromoCodeNotFound(LookupError):
    """Raised when no promo code matches the requested code or id."""


class PromoCodeRejected(ValueError):
    """Raised when a promo code exists but cannot be applied."""


class PromoRedemptionError(ValueError):
    """Raised when the guarded usage increment does not go through."""


@dataclass(slots=True)
class PromoValidation:
    """A promo code that passed every check, with its computed discount."""

    promo: PromoCode
    application: PromoApplication


@dataclass(slots=True)
class PromoStats:
    """Usage statistics for a single promo code."""

    promo: PromoCode
    usages: list[PromoCodeUsage] = field(default_factory=list)
    total_usages: int = 0
    remaining_usages: int = 0
    total_discount_given: Decimal = Decimal("0.00")
    unique_users: int = 0


def normalize_code(code: str) -> str:
    """Return the canonical (trimmed, upper-case) form of a promo code."""
    return (code or "").strip().upper()


async def get_promo(session: AsyncSession, promo_id: UUID) -> PromoCode | None:
    return await session.get(PromoCode, promo_id)


async def get_promo_by_code(session: AsyncSession, code: str) -> PromoCode | None:
    """Fetch a promo code by exact match on its normalized form."""
    stmt = select(PromoCode).where(PromoCode.code == normalize_code(code))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_user_usages(
    session: AsyncSession, *, promo_id: UUID, user_id: UUID
) -> int:
    stmt = select(func.count(PromoCodeUsage.id)).where(
        PromoCodeUsage.promo_code_id == promo_id,
        PromoCodeUsage.user_id == user_id,
    )
    return int((await session.execute(stmt)).scalar_one())


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


async def check_promo_for_user(
    session: AsyncSession,
    promo: PromoCode,
    *,
    cart_total: Decimal,
    user_id: UUID,
    now: datetime | None = None,
) -> PromoApplication:
    """Run the eligibility checks for ``promo`` and compute its discount.

    Each failed check raises :class:`PromoCodeRejected` with a message naming
    the failing condition; the minimum cart value is checked last by the
    calculator itself.
    """

    now = _coerce_utc(now or datetime.now(UTC))
    if not promo.is_active:
        raise PromoCodeRejected("This promo code is no longer active")
    if _coerce_utc(promo.expiry_date) <= now:
        raise PromoCodeRejected("This promo code has expired")
    if promo.used_count >= promo.usage_limit:
        raise PromoCodeRejected("This promo code has reached its usage limit")

    used_by_user = await count_user_usages(
        session, promo_id=promo.id, user_id=user_id
    )
    if used_by_user >= promo.per_user_limit:
        raise PromoCodeRejected(
            "You have already used this promo code the maximum number of times"
        )

    application = apply_promo(cart_total, PromoRule.from_model(promo), now)
    if not application.valid:
        raise PromoCodeRejected(application.message)
    return application


async def validate_for_user(
    session: AsyncSession,
    *,
    code: str,
    cart_total: Decimal,
    user_id: UUID,
    now: datetime | None = None,
) -> PromoValidation:
    """Validate a promo code typed by a shopper against their cart total."""

    if not normalize_code(code):
        raise PromoCodeRejected("Promo code and cart total are required")
    if cart_total <= 0:
        raise PromoCodeRejected("Cart total must be greater than 0")

    promo = await get_promo_by_code(session, code)
    if promo is None:
        raise PromoCodeNotFound("Invalid promo code")

    application = await check_promo_for_user(
        session, promo, cart_total=cart_total, user_id=user_id, now=now
    )
    return PromoValidation(promo=promo, application=application)


async def list_promos(session: AsyncSession) -> list[PromoCode]:
    stmt = select(PromoCode).order_by(PromoCode.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


def _clean_max_discount(value: Decimal | None) -> Decimal | None:
    # A zero cap is stored as "no cap".
    if value is None or value == 0:
        return None
    return value


def _check_rule_values(promo: PromoCode) -> None:
    if (
        DiscountType(promo.discount_type) == DiscountType.PERCENT
        and Decimal(promo.discount_value) > 100
    ):
        raise PromoCodeRejected("Percentage discount cannot exceed 100")


async def create_promo(
    session: AsyncSession,
    *,
    code: str,
    discount_type: DiscountType,
    discount_value: Decimal,
    usage_limit: int,
    expiry_date: datetime,
    min_cart_value: Decimal | None = None,
    max_discount: Decimal | None = None,
    per_user_limit: int | None = None,
    is_active: bool | None = None,
) -> PromoCode:
    """Create a promo code, rejecting duplicates of the normalized code."""

    normalized = normalize_code(code)
    if not normalized:
        raise PromoCodeRejected("Promo code is required")
    if await get_promo_by_code(session, normalized) is not None:
        raise PromoCodeRejected("Promo code already exists")

    promo = PromoCode(
        code=normalized,
        discount_type=discount_type,
        discount_value=discount_value,
        min_cart_value=min_cart_value or Decimal("0"),
        max_discount=_clean_max_discount(max_discount),
        usage_limit=usage_limit,
        used_count=0,
        per_user_limit=per_user_limit or 1,
        expiry_date=_coerce_utc(expiry_date),
        is_active=True if is_active is None else is_active,
    )
    _check_rule_values(promo)
    session.add(promo)
    await session.commit()
    await session.refresh(promo)
    logger.info("Created promo code %s (%s)", promo.code, promo.id)
    return promo


async def update_promo(
    session: AsyncSession,
    promo_id: UUID,
    changes: dict[str, Any],
) -> PromoCode:
    """Apply a partial update; ``changes`` holds only the provided fields."""

    promo = await get_promo(session, promo_id)
    if promo is None:
        raise PromoCodeNotFound("Promo code not found")

    new_code = changes.get("code")
    if new_code is not None:
        normalized = normalize_code(new_code)
        if normalized and normalized != promo.code:
            if await get_promo_by_code(session, normalized) is not None:
                raise PromoCodeRejected("Promo code already exists")
            promo.code = normalized

    for name in _UPDATABLE_FIELDS:
        if name not in changes:
            continue
        value = changes[name]
        if name == "max_discount":
            value = _clean_max_discount(value)
        elif value is None:
            continue
        elif name == "expiry_date":
            value = _coerce_utc(value)
        setattr(promo, name, value)

    _check_rule_values(promo)
    await session.commit()
    await session.refresh(promo)
    return promo


async def deactivate_promo(session: AsyncSession, promo_id: UUID) -> PromoCode:
    """Soft delete a promo code by switching it off."""

    promo = await get_promo(session, promo_id)
    if promo is None:
        raise PromoCodeNotFound("Promo code not found")
    promo.is_active = False
    await session.commit()
    await session.refresh(promo)
    logger.info("Deactivated promo code %s", promo.code)
    return promo


async def promo_stats(session: AsyncSession, promo_id: UUID) -> PromoStats:
    promo = await get_promo(session, promo_id)
    if promo is None:
        raise PromoCodeNotFound("Promo code not found")

    stmt = (
        select(PromoCodeUsage)
        .where(PromoCodeUsage.promo_code_id == promo.id)
        .options(
            selectinload(PromoCodeUsage.user),
            selectinload(PromoCodeUsage.order),
        )
        .order_by(PromoCodeUsage.used_at.desc())
    )
    usages = list((await session.execute(stmt)).scalars().all())
    total_discount = sum(
        (Decimal(usage.discount_amount) for usage in usages), Decimal("0")
    )
    return PromoStats(
        promo=promo,
        usages=usages,
        total_usages=promo.used_count,
        remaining_usages=promo.usage_limit - promo.used_count,
        total_discount_given=to_money(total_discount),
        unique_users=len({usage.user_id for usage in usages}),
    )


async def redeem_promo(
    session: AsyncSession,
    *,
    promo_id: UUID,
    user_id: UUID,
    order: Order,
    discount_amount: Decimal,
) -> PromoCodeUsage:
    """Record a redemption inside the caller's transaction.

    ``used_count`` is bumped with a single conditional UPDATE that also
    requires the user to be under ``per_user_limit``, so neither limit can be
    overrun by orders that were created before the promo ran out. The caller
    owns the commit (or the rollback when this raises).
    """

    user_usages = (
        select(func.count(PromoCodeUsage.id))
        .where(
            PromoCodeUsage.promo_code_id == promo_id,
            PromoCodeUsage.user_id == user_id,
        )
        .scalar_subquery()
    )
    per_user_limit = (
        await session.execute(
            select(PromoCode.per_user_limit).where(PromoCode.id == promo_id)
        )
    ).scalar_one_or_none()
    if per_user_limit is not None:
        used_by_user = await count_user_usages(
            session, promo_id=promo_id, user_id=user_id
        )
        if used_by_user >= per_user_limit:
            logger.warning(
                "User %s reached the limit for promo %s on order %s",
                user_id,
                promo_id,
                order.id,
            )
            raise PromoRedemptionError(
                "You have already used this promo code the maximum number of times"
            )

    stmt = (
        update(PromoCode)
        .where(
            PromoCode.id == promo_id,
            PromoCode.used_count < PromoCode.usage_limit,
            PromoCode.per_user_limit > user_usages,
        )
        .values(used_count=PromoCode.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "Promo %s exhausted while finalizing order %s", promo_id, order.id
        )
        raise PromoRedemptionError("Promo code usage limit reached")

    usage = PromoCodeUsage(
        promo_code_id=promo_id,
        user_id=user_id,
        order_id=order.id,
        discount_amount=to_money(discount_amount),
        used_at=datetime.now(UTC),
    )
    session.add(usage)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise PromoRedemptionError(
            "Promo code was already redeemed for this order"
        ) from exc
    logger.info("Redeemed promo %s for order %s", promo_id, order.id)
    return usage
