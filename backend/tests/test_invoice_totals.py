from decimal import Decimal

from fireforce.services.invoice_totals import calculate_totals, round_money


def test_taxable_items_shipping_and_rate():
    totals = calculate_totals([{"qty": 2, "unitPrice": 10, "taxable": True}], 8, 5)
    assert totals.subtotal == Decimal("20.00")
    assert totals.tax == Decimal("1.60")
    assert totals.grand_total == Decimal("26.60")
    assert totals.as_record() == {"subtotal": 20.0, "tax": 1.6, "grandTotal": 26.6}


def test_non_taxable_items_count_toward_subtotal_only():
    items = [
        {"qty": 1, "unitPrice": 100, "taxable": True},
        {"qty": 3, "unitPrice": "12.50", "taxable": False},
    ]
    totals = calculate_totals(items, 7.25, 0)
    assert totals.subtotal == Decimal("137.50")
    assert totals.tax == Decimal("7.25")
    assert totals.grand_total == Decimal("144.75")


def test_missing_taxable_flag_is_taxable():
    totals = calculate_totals([{"qty": 1, "unitPrice": 50}], 10, 0)
    assert totals.tax == Decimal("5.00")


def test_grand_total_is_sum_of_parts():
    items = [{"qty": 3, "unitPrice": 19.99, "taxable": True}, {"qty": 7, "unitPrice": 0.35, "taxable": True}]
    totals = calculate_totals(items, 6.5, 12.4)
    assert totals.grand_total == totals.subtotal + totals.tax + Decimal("12.40")


def test_empty_invoice_is_shipping_only():
    totals = calculate_totals([], 8, "15")
    assert (totals.subtotal, totals.tax, totals.grand_total) == (Decimal("0.00"), Decimal("0.00"), Decimal("15.00"))


def test_rounding_is_half_up():
    assert round_money(Decimal("0.125")) == Decimal("0.13")
    assert round_money(Decimal("2.675")) == Decimal("2.68")
