"""Service layer exports."""
from app.services import (
    invoice_service,
    order_service,
    pricing_service,
    promo_service,
)

__all__ = [
    "invoice_service",
    "order_service",
    "pricing_service",
    "promo_service",
]
