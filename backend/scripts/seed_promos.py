"""Seed baseline promo codes."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from app.db.session import get_sessionmaker
from app.models import DiscountType
from app.services import promo_service

SEED_PROMOS = (
    {
        "code": "WELCOME10",
        "discount_type": DiscountType.PERCENT,
        "discount_value": Decimal("10"),
        "usage_limit": 1000,
        "per_user_limit": 1,
    },
    {
        "code": "BOOKLOVER20",
        "discount_type": DiscountType.PERCENT,
        "discount_value": Decimal("20"),
        "max_discount": Decimal("100"),
        "min_cart_value": Decimal("499"),
        "usage_limit": 500,
        "per_user_limit": 2,
    },
    {
        "code": "FLAT50",
        "discount_type": DiscountType.FLAT,
        "discount_value": Decimal("50"),
        "min_cart_value": Decimal("300"),
        "usage_limit": 200,
        "per_user_limit": 1,
    },
)


async def seed_promos() -> None:
    sessionmaker = get_sessionmaker()
    expiry = datetime.now(UTC) + timedelta(days=365)
    created = 0
    async with sessionmaker() as session:
        for values in SEED_PROMOS:
            if await promo_service.get_promo_by_code(session, values["code"]):
                continue
            await promo_service.create_promo(session, expiry_date=expiry, **values)
            created += 1
    print(f"Seeded {created} promo code(s).")


def main() -> None:
    asyncio.run(seed_promos())


if __name__ == "__main__":
    main()
