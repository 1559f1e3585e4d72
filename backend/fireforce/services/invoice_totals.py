# Overview: Invoice subtotal/tax/grand-total arithmetic.

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping


CENT = Decimal("0.01")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    grand_total: Decimal

    def as_record(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "grandTotal": float(self.grand_total),
        }


def to_money(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_totals(items: Iterable[Mapping[str, Any]], tax_rate: Any, shipping_cost: Any) -> Totals:
    """
    subtotal = sum(qty * unitPrice) over all items
    tax = sum(qty * unitPrice) over taxable items * taxRate / 100
    grandTotal = subtotal + tax + shippingCost

    Items without a "taxable" flag count as taxable. Tax is rounded to the
    cent before it is added so the three stored figures always agree.
    """
    subtotal = Decimal("0")
    taxable_subtotal = Decimal("0")
    for item in items:
        line = to_money(item.get("qty")) * to_money(item.get("unitPrice"))
        subtotal += line
        if item.get("taxable", True):
            taxable_subtotal += line

    subtotal = round_money(subtotal)
    tax = round_money(taxable_subtotal * to_money(tax_rate) / Decimal("100"))
    grand_total = round_money(subtotal + tax + to_money(shipping_cost))
    return Totals(subtotal=subtotal, tax=tax, grand_total=grand_total)
