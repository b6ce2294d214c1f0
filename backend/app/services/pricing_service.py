"""Checkout pricing calculator.

Every function in this module is pure: it only looks at its arguments and
never touches the database. Promo lookups, usage counting and redemption live
in :mod:`app.services.promo_service`; this module only evaluates a promo rule
that has already been fetched.

Money is handled as :class:`~decimal.Decimal` and rounded half away from zero
to two places. Components are rounded individually before they are summed so
that the total always equals the sum of the displayed lines.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from app.models.promo_code import DiscountType

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from app.core.config import Settings
    from app.models.promo_code import PromoCode

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

MSG_NOT_FOUND = "Promo code not found"
MSG_NOT_VALID = "Promo code is not valid"
MSG_APPLIED = "Promo code applied successfully"


def _to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Round a monetary amount to two places, half away from zero."""
    return _to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{to_money(value):.2f}"


def _format_amount(value: Decimal) -> str:
    # 500.00 -> "500", 499.50 -> "499.5"
    return format(_to_decimal(value).normalize(), "f")


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


@dataclass(slots=True, frozen=True)
class CartLine:
    """One product entry of a cart."""

    unit_price: Decimal
    quantity: int
    product_id: str | None = None
    title: str | None = None

    def __post_init__(self) -> None:
        price = _to_decimal(self.unit_price)
        if price < 0:
            raise ValueError("unit_price must be >= 0")
        if int(self.quantity) < 1:
            raise ValueError("quantity must be >= 1")
        object.__setattr__(self, "unit_price", price)
        object.__setattr__(self, "quantity", int(self.quantity))

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(slots=True, frozen=True)
class PromoRule:
    """Snapshot of the promo fields the calculator reads."""

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    usage_limit: int
    expiry_date: datetime.datetime
    min_cart_value: Decimal = ZERO
    max_discount: Decimal | None = None
    used_count: int = 0
    per_user_limit: int = 1
    is_active: bool = True

    @classmethod
    def from_model(cls, promo: "PromoCode") -> "PromoRule":
        """Build a rule from a persisted promo code."""
        return cls(
            code=promo.code,
            discount_type=DiscountType(promo.discount_type),
            discount_value=_to_decimal(promo.discount_value),
            usage_limit=promo.usage_limit,
            expiry_date=promo.expiry_date,
            min_cart_value=_to_decimal(promo.min_cart_value or 0),
            max_discount=(
                None if promo.max_discount is None else _to_decimal(promo.max_discount)
            ),
            used_count=promo.used_count or 0,
            per_user_limit=promo.per_user_limit or 1,
            is_active=bool(promo.is_active),
        )

    def is_valid(self, now: datetime.datetime) -> bool:
        """Return True when the rule is active, unexpired and not exhausted."""
        return (
            self.is_active
            and _as_utc(self.expiry_date) > _as_utc(now)
            and self.used_count < self.usage_limit
        )


@dataclass(slots=True)
class PromoApplication:
    """Outcome of evaluating a promo rule against a cart total."""

    valid: bool
    discount: Decimal
    final_amount: Decimal
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "discount": _to_str(self.discount),
            "final_amount": _to_str(self.final_amount),
            "message": self.message,
        }


@dataclass(slots=True)
class PricingResult:
    """Priced totals of a checkout."""

    items_price: Decimal
    tax_price: Decimal
    shipping_price: Decimal
    discount_amount: Decimal
    total_price: Decimal

    def to_dict(self) -> dict[str, str]:
        """Serialize the totals to two-place decimal strings."""
        return {
            "items_price": _to_str(self.items_price),
            "tax_price": _to_str(self.tax_price),
            "shipping_price": _to_str(self.shipping_price),
            "discount_amount": _to_str(self.discount_amount),
            "total_price": _to_str(self.total_price),
        }


@dataclass(slots=True, frozen=True)
class PricingConfig:
    """Store-wide pricing constants."""

    tax_rate: Decimal = Decimal("0.18")
    free_shipping_threshold: Decimal = Decimal("500")
    shipping_flat_fee: Decimal = Decimal("50")


@dataclass(slots=True)
class PricedCart:
    """Pricing result together with the promo evaluation that produced it."""

    result: PricingResult
    promo: PromoApplication | None = None


def pricing_config_from_settings(settings: "Settings") -> PricingConfig:
    """Return the pricing constants configured for this deployment."""
    return PricingConfig(
        tax_rate=_to_decimal(settings.tax_rate),
        free_shipping_threshold=_to_decimal(settings.free_shipping_threshold),
        shipping_flat_fee=_to_decimal(settings.shipping_flat_fee),
    )


def compute_items_price(lines: Iterable[CartLine]) -> Decimal:
    """Sum unit price times quantity over all lines (0 for an empty cart)."""
    return sum((line.line_total for line in lines), Decimal("0"))


def compute_shipping(
    items_price: Decimal, free_threshold: Decimal, flat_fee: Decimal
) -> Decimal:
    """Waive shipping only when the items price is strictly above the threshold."""
    if _to_decimal(items_price) > _to_decimal(free_threshold):
        return Decimal("0")
    return _to_decimal(flat_fee)


def compute_tax(items_price: Decimal, rate: Decimal) -> Decimal:
    """Return the unrounded tax on the items price."""
    return _to_decimal(items_price) * _to_decimal(rate)


def apply_promo(
    cart_total: Decimal,
    rule: PromoRule | None,
    now: datetime.datetime,
) -> PromoApplication:
    """Evaluate ``rule`` against ``cart_total`` at time ``now``.

    Checks run in a fixed order: active/expiry/usage, then the minimum cart
    value, then the discount itself. Failures are reported through
    ``valid=False`` with a zero discount rather than raised.
    """

    total = _to_decimal(cart_total)
    if rule is None:
        return PromoApplication(False, ZERO, to_money(total), MSG_NOT_FOUND)
    if not rule.is_valid(now):
        return PromoApplication(False, ZERO, to_money(total), MSG_NOT_VALID)

    min_cart_value = _to_decimal(rule.min_cart_value)
    if total < min_cart_value:
        return PromoApplication(
            False,
            ZERO,
            to_money(total),
            f"Minimum cart value of {_format_amount(min_cart_value)} required",
        )

    value = _to_decimal(rule.discount_value)
    if rule.discount_type == DiscountType.PERCENT:
        discount = total * value / Decimal("100")
        # A zero cap means "no cap".
        if rule.max_discount and discount > rule.max_discount:
            discount = _to_decimal(rule.max_discount)
    else:
        discount = min(value, total)

    final_amount = max(Decimal("0"), total - discount)
    return PromoApplication(True, to_money(discount), to_money(final_amount), MSG_APPLIED)


def assemble(
    items_price: Decimal,
    tax_price: Decimal,
    shipping_price: Decimal,
    discount_amount: Decimal,
) -> PricingResult:
    """Round each component, then derive the total from the rounded values."""
    items = to_money(items_price)
    tax = to_money(tax_price)
    shipping = to_money(shipping_price)
    discount = to_money(discount_amount)
    total = max(ZERO, items + tax + shipping - discount)
    return PricingResult(
        items_price=items,
        tax_price=tax,
        shipping_price=shipping,
        discount_amount=discount,
        total_price=to_money(total),
    )


def price_cart(
    lines: Iterable[CartLine],
    *,
    config: PricingConfig,
    promo: PromoRule | None = None,
    promo_requested: bool = False,
    now: datetime.datetime | None = None,
) -> PricedCart:
    """Price a cart end to end.

    The promo discount is taken on the items price. Pass ``promo_requested``
    when a code was supplied but no rule was found so the "not found"
    outcome is reported alongside the totals.
    """

    lines = list(lines)
    items_price = compute_items_price(lines)
    shipping_price = compute_shipping(
        items_price, config.free_shipping_threshold, config.shipping_flat_fee
    )
    tax_price = compute_tax(items_price, config.tax_rate)

    application: PromoApplication | None = None
    discount = ZERO
    if promo is not None or promo_requested:
        application = apply_promo(
            items_price, promo, now or datetime.datetime.now(datetime.UTC)
        )
        if application.valid:
            discount = application.discount

    result = assemble(items_price, tax_price, shipping_price, discount)
    return PricedCart(result=result, promo=application)
