"""Ownership helper for explicit authorization checks."""

from __future__ import annotations

from fastapi import HTTPException, status

from app.models import Order, User


def require_order_access(user: User, order: Order) -> None:
    """Raise HTTP 403 unless the user placed the order or is an admin."""

    if user.is_admin or order.user_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not authorized to access this order",
    )


__all__ = ["require_order_access"]
