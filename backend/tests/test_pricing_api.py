"""API tests for cart pricing quotes."""

from __future__ import annotations

from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.db.session import get_sessionmaker

pytestmark = pytest.mark.asyncio

CART = [
    {"product_id": "b-1", "title": "Ponniyin Selvan", "unit_price": "400", "quantity": 2},
    {"product_id": "b-2", "title": "Thirukkural", "unit_price": "400", "quantity": 1},
]


async def test_quote_requires_authentication(app_context) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post("/api/v1/pricing/quote", json={"items": CART})
    assert response.status_code == 401


async def test_quote_without_promo(app_context) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/pricing/quote",
        json={"items": CART},
        headers=app_context["shopper_headers"],
    )
    assert response.status_code == 200, response.text
    payload = response.json()
    assert Decimal(payload["items_price"]) == Decimal("1200.00")
    assert Decimal(payload["shipping_price"]) == Decimal("0.00")
    assert Decimal(payload["tax_price"]) == Decimal("216.00")
    assert Decimal(payload["total_price"]) == Decimal("1416.00")
    assert payload["promo"] is None


async def test_quote_with_promo_and_small_cart(
    app_context, db_url: str, make_promo
) -> None:
    async with get_sessionmaker(db_url)() as session:
        await make_promo(session, code="SAVE10")

    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/pricing/quote",
        json={"items": CART, "promo_code": "save10"},
        headers=app_context["shopper_headers"],
    )
    assert response.status_code == 200, response.text
    payload = response.json()
    assert Decimal(payload["discount_amount"]) == Decimal("120.00")
    assert Decimal(payload["total_price"]) == Decimal("1296.00")
    assert payload["promo"]["valid"] is True
    assert payload["promo"]["message"] == "Promo code applied successfully"

    small = await client.post(
        "/api/v1/pricing/quote",
        json={"items": [{"unit_price": "500.00", "quantity": 1}]},
        headers=app_context["shopper_headers"],
    )
    assert small.status_code == 200
    assert Decimal(small.json()["shipping_price"]) == Decimal("50.00")
    assert Decimal(small.json()["total_price"]) == Decimal("640.00")


async def test_quote_with_unknown_promo_reports_not_found(app_context) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/pricing/quote",
        json={"items": CART, "promo_code": "GHOST"},
        headers=app_context["shopper_headers"],
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["promo"]["valid"] is False
    assert payload["promo"]["message"] == "Promo code not found"
    assert Decimal(payload["discount_amount"]) == Decimal("0.00")


async def test_quote_rejects_invalid_lines(app_context) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/pricing/quote",
        json={"items": [{"unit_price": "-5", "quantity": 1}]},
        headers=app_context["shopper_headers"],
    )
    assert response.status_code == 422
