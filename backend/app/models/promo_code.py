"""Promo code and promo usage ledger models."""

from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import TimestampMixin, _utcnow

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from app.models.order import Order
    from app.models.user import User


class DiscountType(str, enum.Enum):
    """Kinds of discounts a promo code can grant."""

    PERCENT = "PERCENT"
    FLAT = "FLAT"


class PromoCode(TimestampMixin, Base):
    """Administrator-defined discount code with eligibility limits."""

    __tablename__ = "promo_codes"
    __table_args__ = (
        Index("ix_promo_codes_code_active", "code", "is_active"),
        Index("ix_promo_codes_expiry_date", "expiry_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType), default=DiscountType.PERCENT, nullable=False
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_cart_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    usage_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    used_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    per_user_limit: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    expiry_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    usages: Mapped[list["PromoCodeUsage"]] = relationship(
        "PromoCodeUsage", back_populates="promo_code", cascade="all, delete-orphan"
    )


class PromoCodeUsage(TimestampMixin, Base):
    """Ledger row written each time an order redeems a promo code."""

    __tablename__ = "promo_code_usages"
    __table_args__ = (
        Index("ix_promo_code_usages_promo_user", "promo_code_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    promo_code_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("promo_codes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    used_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    promo_code: Mapped[PromoCode] = relationship("PromoCode", back_populates="usages")
    user: Mapped["User"] = relationship("User")
    order: Mapped["Order"] = relationship("Order")
