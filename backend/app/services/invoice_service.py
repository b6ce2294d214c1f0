"""Invoice summaries for persisted orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.models import Order
from app.services.pricing_service import to_money


@dataclass(slots=True)
class InvoiceLine:
    """Rendered row of an invoice."""

    title: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(slots=True)
class InvoiceSummary:
    """Everything an invoice shows for one order."""

    order_id: UUID
    store_name: str
    currency: str
    lines: list[InvoiceLine] = field(default_factory=list)
    totals: list[tuple[str, Decimal]] = field(default_factory=list)
    grand_total: Decimal = Decimal("0.00")

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": str(self.order_id),
            "store_name": self.store_name,
            "currency": self.currency,
            "lines": [
                {
                    "title": line.title,
                    "quantity": line.quantity,
                    "unit_price": f"{line.unit_price:.2f}",
                    "line_total": f"{line.line_total:.2f}",
                }
                for line in self.lines
            ],
            "totals": [
                {"label": label, "amount": f"{amount:.2f}"}
                for label, amount in self.totals
            ],
            "grand_total": f"{self.grand_total:.2f}",
        }


def build_invoice(order: Order, *, store_name: str, currency: str) -> InvoiceSummary:
    """Build the invoice rows and totals block for ``order``.

    The discount row is only included when a discount was granted.
    """

    lines: list[InvoiceLine] = []
    for item in order.items or []:
        # Snapshots keep the exact unit price; round only for display.
        unit_price = Decimal(str(item.get("unit_price") or "0"))
        quantity = int(item.get("quantity") or 0)
        lines.append(
            InvoiceLine(
                title=item.get("title") or str(item.get("product_id") or "Item"),
                quantity=quantity,
                unit_price=to_money(unit_price),
                line_total=to_money(unit_price * quantity),
            )
        )

    totals: list[tuple[str, Decimal]] = [
        ("Subtotal", to_money(order.items_price)),
        ("Tax", to_money(order.tax_price)),
        ("Shipping", to_money(order.shipping_price)),
    ]
    discount = to_money(order.discount_amount or 0)
    if discount > 0:
        totals.append(("Discount", -discount))

    return InvoiceSummary(
        order_id=order.id,
        store_name=store_name,
        currency=currency,
        lines=lines,
        totals=totals,
        grand_total=to_money(order.total_price),
    )
