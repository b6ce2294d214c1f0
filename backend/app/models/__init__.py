"""ORM models package export."""

from app.models.order import Order, OrderStatus
from app.models.promo_code import DiscountType, PromoCode, PromoCodeUsage
from app.models.user import User

__all__ = [
    "DiscountType",
    "Order",
    "OrderStatus",
    "PromoCode",
    "PromoCodeUsage",
    "User",
]
