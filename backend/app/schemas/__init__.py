"""Schema exports."""

from app.schemas.order import (
    InvoiceRead,
    OrderCreate,
    OrderPayRequest,
    OrderRead,
    ShippingAddress,
)
from app.schemas.pricing import (
    CartLineIn,
    PricingQuoteRead,
    PricingQuoteRequest,
    PricingResultRead,
    PromoApplicationRead,
)
from app.schemas.promo import (
    MessageResponse,
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeUpdate,
    PromoStatsRead,
    PromoValidateRequest,
    PromoValidateResponse,
)

__all__ = [
    "CartLineIn",
    "InvoiceRead",
    "MessageResponse",
    "OrderCreate",
    "OrderPayRequest",
    "OrderRead",
    "PricingQuoteRead",
    "PricingQuoteRequest",
    "PricingResultRead",
    "PromoApplicationRead",
    "PromoCodeCreate",
    "PromoCodeRead",
    "PromoCodeUpdate",
    "PromoStatsRead",
    "PromoValidateRequest",
    "PromoValidateResponse",
    "ShippingAddress",
]
