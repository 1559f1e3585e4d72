# Overview: Service-layer operations for reporting; dashboard figures over the in-memory invoices.

from __future__ import annotations

from typing import Iterable

from .invoice_totals import round_money, to_money
from .record_schemas import SALES_ORDER, STATUS_COMPLETED, STATUS_PENDING


RECENT_LIMIT = 5


def _revenue(invoices: Iterable[dict]) -> float:
    return float(round_money(sum((to_money(inv.get("grandTotal")) for inv in invoices), to_money(0))))


def _summary(invoice: dict) -> dict:
    return {
        "id": invoice["id"],
        "date": invoice.get("date"),
        "customerName": invoice.get("customerName"),
        "transactionType": invoice.get("transactionType"),
        "status": invoice.get("status"),
        "salesRep": invoice.get("salesRep"),
        "grandTotal": invoice.get("grandTotal"),
        "createdAt": invoice.get("createdAt"),
        "updatedAt": invoice.get("updatedAt"),
    }


def _is_open(invoice: dict) -> bool:
    return not invoice.get("archived") and invoice.get("status") != STATUS_COMPLETED


def office_stats(invoices: list[dict], customers: list[dict]) -> dict:
    """
    Totals across every invoice, plus the five newest open invoices and the
    five most recently converted quotes.

    A converted quote is an open Sales Order edited after creation.
    """
    total = len(invoices)
    revenue = _revenue(invoices)
    active = sorted(
        (inv for inv in invoices if _is_open(inv)),
        key=lambda inv: inv.get("createdAt") or "",
        reverse=True,
    )
    converted = sorted(
        (
            inv for inv in invoices
            if inv.get("transactionType") == SALES_ORDER
            and inv.get("updatedAt")
            and inv.get("updatedAt") != inv.get("createdAt")
            and _is_open(inv)
        ),
        key=lambda inv: inv.get("updatedAt") or "",
        reverse=True,
    )
    return {
        "totalInvoices": total,
        "totalCustomers": len(customers),
        "totalRevenue": revenue,
        "averageInvoiceValue": float(round_money(to_money(revenue) / total)) if total else 0.0,
        "activeInvoices": [_summary(inv) for inv in active[:RECENT_LIMIT]],
        "convertedQuotes": [_summary(inv) for inv in converted[:RECENT_LIMIT]],
    }


def salesman_stats(invoices: list[dict], sales_rep: str) -> dict:
    mine = [inv for inv in invoices if inv.get("salesRep") == sales_rep]
    recent = sorted(mine, key=lambda inv: inv.get("createdAt") or "", reverse=True)
    return {
        "salesRep": sales_rep,
        "totalInvoices": len(mine),
        "totalRevenue": _revenue(mine),
        "pendingInvoices": sum(1 for inv in mine if inv.get("status") == STATUS_PENDING),
        "completedInvoices": sum(1 for inv in mine if inv.get("status") == STATUS_COMPLETED),
        "recentInvoices": [_summary(inv) for inv in recent[:RECENT_LIMIT]],
    }
