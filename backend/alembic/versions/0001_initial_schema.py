"""Users, promo codes, orders and the promo usage ledger.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    jsonb_type = postgresql.JSONB(astext_type=sa.Text()).with_variant(
        sa.JSON(), "sqlite"
    )
    discount_enum = sa.Enum("PERCENT", "FLAT", name="discounttype")
    order_status_enum = sa.Enum("PENDING", "PAID", "CANCELLED", name="orderstatus")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("discount_type", discount_enum, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "min_cart_value", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column("max_discount", sa.Numeric(12, 2), nullable=True),
        sa.Column("usage_limit", sa.Integer(), nullable=False),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("per_user_limit", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count"),
        sa.CheckConstraint("usage_limit >= 1", name="ck_promo_codes_usage_limit"),
    )
    op.create_index(
        "ix_promo_codes_code_active", "promo_codes", ["code", "is_active"]
    )
    op.create_index("ix_promo_codes_expiry_date", "promo_codes", ["expiry_date"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("items", jsonb_type, nullable=False),
        sa.Column("shipping_address", jsonb_type, nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False),
        sa.Column("items_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("shipping_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", order_status_enum, nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])

    op.create_table(
        "promo_code_usages",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "order_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_promo_code_usages_promo_code_id", "promo_code_usages", ["promo_code_id"]
    )
    op.create_index("ix_promo_code_usages_user_id", "promo_code_usages", ["user_id"])
    op.create_index(
        "ix_promo_code_usages_promo_user",
        "promo_code_usages",
        ["promo_code_id", "user_id"],
    )


def downgrade() -> None:
    op.drop_table("promo_code_usages")
    op.drop_table("orders")
    op.drop_table("promo_codes")
    op.drop_table("users")

    bind = op.get_bind()
    sa.Enum(name="orderstatus").drop(bind, checkfirst=True)
    sa.Enum(name="discounttype").drop(bind, checkfirst=True)
