"""Tests for promo code validation, administration and redemption."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.db.session import get_sessionmaker
from app.models import DiscountType, Order, OrderStatus, PromoCode, PromoCodeUsage
from app.services import promo_service

pytestmark = pytest.mark.asyncio


async def _pending_order(session, user, promo: PromoCode | None = None) -> Order:
    order = Order(
        user_id=user.id,
        items=[{"title": "Book", "quantity": 1, "unit_price": "1000.00"}],
        shipping_address={},
        payment_method="razorpay",
        items_price=Decimal("1000.00"),
        tax_price=Decimal("180.00"),
        shipping_price=Decimal("0.00"),
        discount_amount=Decimal("100.00"),
        total_price=Decimal("1080.00"),
        promo_code_id=promo.id if promo else None,
        status=OrderStatus.PENDING,
    )
    session.add(order)
    await session.commit()
    await session.refresh(order)
    return order


async def test_validate_normalizes_code_and_returns_discount(
    reset_database, db_url: str, make_user, make_promo
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        user = await make_user(session, email="reader@example.com")
        promo = await make_promo(session, code="SAVE10")

        validation = await promo_service.validate_for_user(
            session, code="  save10 ", cart_total=Decimal("1000"), user_id=user.id
        )

    assert validation.promo.id == promo.id
    assert validation.application.discount == Decimal("100.00")
    assert validation.application.final_amount == Decimal("900.00")
    assert validation.application.message == "Promo code applied successfully"


async def test_validate_rejects_missing_input(
    reset_database, db_url: str, make_user
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        user = await make_user(session, email="reader@example.com")

        with pytest.raises(promo_service.PromoCodeRejected, match="are required"):
            await promo_service.validate_for_user(
                session, code="   ", cart_total=Decimal("10"), user_id=user.id
            )
        with pytest.raises(promo_service.PromoCodeRejected, match="greater than 0"):
            await promo_service.validate_for_user(
                session, code="SAVE10", cart_total=Decimal("0"), user_id=user.id
            )
        with pytest.raises(promo_service.PromoCodeNotFound, match="Invalid promo code"):
            await promo_service.validate_for_user(
                session, code="NOPE", cart_total=Decimal("10"), user_id=user.id
            )


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"is_active": False}, "no longer active"),
        ({"expiry_date": datetime.now(UTC) - timedelta(days=1)}, "has expired"),
        ({"usage_limit": 2, "used_count": 2}, "reached its usage limit"),
        ({"min_cart_value": Decimal("1500")}, "Minimum cart value of 1500 required"),
    ],
)
async def test_validate_reports_failing_condition(
    reset_database, db_url: str, make_user, make_promo, overrides, message
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        user = await make_user(session, email="reader@example.com")
        await make_promo(session, **overrides)

        with pytest.raises(promo_service.PromoCodeRejected, match=message):
            await promo_service.validate_for_user(
                session, code="SAVE10", cart_total=Decimal("1000"), user_id=user.id
            )


async def test_per_user_limit_counts_past_redemptions(
    reset_database, db_url: str, make_user, make_promo
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        user = await make_user(session, email="reader@example.com")
        other = await make_user(session, email="other@example.com")
        promo = await make_promo(session, per_user_limit=1)
        order = await _pending_order(session, user, promo)

        await promo_service.redeem_promo(
            session,
            promo_id=promo.id,
            user_id=user.id,
            order=order,
            discount_amount=order.discount_amount,
        )
        await session.commit()

        with pytest.raises(promo_service.PromoCodeRejected, match="maximum number"):
            await promo_service.validate_for_user(
                session, code="SAVE10", cart_total=Decimal("1000"), user_id=user.id
            )
        validation = await promo_service.validate_for_user(
            session, code="SAVE10", cart_total=Decimal("1000"), user_id=other.id
        )
        assert validation.application.valid


async def test_create_promo_normalizes_and_rejects_duplicates(
    reset_database, db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    expiry = datetime.now(UTC) + timedelta(days=10)
    async with sessionmaker() as session:
        promo = await promo_service.create_promo(
            session,
            code=" welcome10 ",
            discount_type=DiscountType.PERCENT,
            discount_value=Decimal("10"),
            usage_limit=50,
            expiry_date=expiry,
            max_discount=Decimal("0"),
        )
        assert promo.code == "WELCOME10"
        assert promo.used_count == 0
        assert promo.per_user_limit == 1
        assert promo.is_active is True
        assert promo.max_discount is None
        assert promo.min_cart_value == Decimal("0")

        with pytest.raises(promo_service.PromoCodeRejected, match="already exists"):
            await promo_service.create_promo(
                session,
                code="WELCOME10",
                discount_type=DiscountType.FLAT,
                discount_value=Decimal("50"),
                usage_limit=5,
                expiry_date=expiry,
            )


async def test_create_promo_rejects_percent_over_hundred(
    reset_database, db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(promo_service.PromoCodeRejected, match="cannot exceed 100"):
            await promo_service.create_promo(
                session,
                code="TOOMUCH",
                discount_type=DiscountType.PERCENT,
                discount_value=Decimal("150"),
                usage_limit=5,
                expiry_date=datetime.now(UTC) + timedelta(days=1),
            )


async def test_update_and_deactivate_promo(
    reset_database, db_url: str, make_promo
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await make_promo(session, max_discount=Decimal("75"))
        await make_promo(session, code="TAKEN")

        updated = await promo_service.update_promo(
            session,
            promo.id,
            {"code": "bigsave", "discount_value": Decimal("15"), "max_discount": None},
        )
        assert updated.code == "BIGSAVE"
        assert updated.discount_value == Decimal("15")
        assert updated.max_discount is None
        assert updated.usage_limit == 100

        with pytest.raises(promo_service.PromoCodeRejected, match="already exists"):
            await promo_service.update_promo(session, promo.id, {"code": "taken"})

        deactivated = await promo_service.deactivate_promo(session, promo.id)
        assert deactivated.is_active is False
        assert await promo_service.get_promo(session, promo.id) is not None

        listed = await promo_service.list_promos(session)
        assert {item.code for item in listed} == {"BIGSAVE", "TAKEN"}


async def test_missing_promo_raises_not_found(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(promo_service.PromoCodeNotFound):
            await promo_service.update_promo(session, uuid.uuid4(), {})
        with pytest.raises(promo_service.PromoCodeNotFound):
            await promo_service.deactivate_promo(session, uuid.uuid4())
        with pytest.raises(promo_service.PromoCodeNotFound):
            await promo_service.promo_stats(session, uuid.uuid4())


async def test_redeem_stops_at_usage_limit(
    reset_database, db_url: str, make_user, make_promo
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        first = await make_user(session, email="first@example.com")
        second = await make_user(session, email="second@example.com")
        promo = await make_promo(session, usage_limit=1)
        promo_id = promo.id
        first_order = await _pending_order(session, first, promo)
        second_order = await _pending_order(session, second, promo)

        await promo_service.redeem_promo(
            session,
            promo_id=promo_id,
            user_id=first.id,
            order=first_order,
            discount_amount=Decimal("100"),
        )
        await session.commit()

        with pytest.raises(promo_service.PromoRedemptionError):
            await promo_service.redeem_promo(
                session,
                promo_id=promo_id,
                user_id=second.id,
                order=second_order,
                discount_amount=Decimal("100"),
            )
        await session.rollback()

    async with sessionmaker() as session:
        fresh = await session.get(PromoCode, promo_id)
        assert fresh is not None
        assert fresh.used_count == 1
        usage_count = await promo_service.count_user_usages(
            session, promo_id=promo_id, user_id=second.id
        )
        assert usage_count == 0


async def test_promo_stats_summarizes_usages(
    reset_database, db_url: str, make_user, make_promo
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        first = await make_user(session, email="first@example.com")
        second = await make_user(session, email="second@example.com")
        promo = await make_promo(session, usage_limit=10)
        promo_id = promo.id
        for user, discount in ((first, "100.00"), (second, "45.50")):
            order = await _pending_order(session, user, promo)
            await promo_service.redeem_promo(
                session,
                promo_id=promo_id,
                user_id=user.id,
                order=order,
                discount_amount=Decimal(discount),
            )
            await session.commit()

    async with sessionmaker() as session:
        stats = await promo_service.promo_stats(session, promo_id)

    assert stats.total_usages == 2
    assert stats.remaining_usages == 8
    assert stats.total_discount_given == Decimal("145.50")
    assert stats.unique_users == 2
    assert len(stats.usages) == 2
    assert all(isinstance(usage, PromoCodeUsage) for usage in stats.usages)
    assert {usage.user.email for usage in stats.usages} == {
        "first@example.com",
        "second@example.com",
    }
