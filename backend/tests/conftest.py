"""Test fixtures for the bookstore checkout backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.pop("REDIS_URL", None)

from app.core.config import get_settings
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import dispose_engine, get_sessionmaker
from app.main import app
from app.models import DiscountType, PromoCode, User


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


async def _create_user(session, *, email: str, is_admin: bool = False) -> User:
    user = User(email=email, name=email.split("@")[0].title(), is_admin=is_admin)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def _create_promo_code(session, **overrides) -> PromoCode:
    values = {
        "code": "SAVE10",
        "discount_type": DiscountType.PERCENT,
        "discount_value": Decimal("10"),
        "min_cart_value": Decimal("0"),
        "max_discount": None,
        "usage_limit": 100,
        "used_count": 0,
        "per_user_limit": 1,
        "expiry_date": datetime.now(UTC) + timedelta(days=30),
        "is_active": True,
    }
    values.update(overrides)
    promo = PromoCode(**values)
    session.add(promo)
    await session.commit()
    await session.refresh(promo)
    return promo


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None, db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client with a seeded admin and shopper."""
    sessionmaker = get_sessionmaker(db_url)

    async with sessionmaker() as session:
        admin = await _create_user(session, email="admin@example.com", is_admin=True)
        shopper = await _create_user(session, email="reader@example.com")
        other = await _create_user(session, email="other@example.com")

    context: dict[str, object] = {
        "admin": admin,
        "shopper": shopper,
        "other": other,
        "admin_headers": _auth_headers(admin),
        "shopper_headers": _auth_headers(shopper),
        "other_headers": _auth_headers(other),
    }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context


@pytest.fixture()
def make_user():
    """Factory fixture: ``await make_user(session, email=..., is_admin=...)``."""
    return _create_user


@pytest.fixture()
def make_promo():
    """Factory fixture: ``await make_promo(session, code=..., ...)``."""
    return _create_promo_code


@pytest.fixture()
def auth_headers():
    """Return a helper that builds bearer headers for a user."""
    return _auth_headers
