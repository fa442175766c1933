"""Unit tests for bill arithmetic."""

from decimal import Decimal

from clinic.services.billing_math import (
    compute_bill_totals,
    compute_line_amounts,
    header_discount,
    money2,
    status_after_payment,
)


class TestMoney:

    def test_rounds_half_up(self):
        assert money2("2.345") == Decimal("2.35")
        assert money2("2.344") == Decimal("2.34")

    def test_none_and_garbage_are_zero(self):
        assert money2(None) == Decimal("0.00")
        assert money2("abc") == Decimal("0.00")


class TestLineAmounts:

    def test_tax_and_discount(self):
        line = compute_line_amounts(2, "150.00", 5, "10")
        assert line["subtotal"] == Decimal("300.00")
        assert line["tax_amount"] == Decimal("15.00")
        assert line["discount_amount"] == Decimal("10.00")
        assert line["total_amount"] == Decimal("305.00")

    def test_fractional_tax_is_rounded_per_line(self):
        line = compute_line_amounts(1, "99.99", "12", 0)
        assert line["tax_amount"] == Decimal("12.00")
        assert line["total_amount"] == Decimal("111.99")


class TestHeaderDiscount:

    def test_flat_amount_wins_over_percentage(self):
        assert header_discount("1000", "50", "10") == Decimal("50.00")

    def test_percentage_when_no_flat_amount(self):
        assert header_discount("1000", 0, "10") == Decimal("100.00")


class TestBillTotals:

    def test_total_is_subtotal_plus_tax_minus_discount(self):
        totals = compute_bill_totals(
            [
                {"quantity": 1, "unit_price": "500", "tax_percentage": 0,
                 "discount_amount": 0},
                {"quantity": 3, "unit_price": "100", "tax_percentage": 18,
                 "discount_amount": "20"},
            ],
            discount_amount="30",
        )
        assert totals["subtotal"] == Decimal("800.00")
        assert totals["tax_amount"] == Decimal("54.00")
        assert totals["line_discount"] == Decimal("20.00")
        assert totals["header_discount"] == Decimal("30.00")
        assert totals["discount_amount"] == Decimal("50.00")
        assert totals["total_amount"] == (totals["subtotal"] +
                                          totals["tax_amount"] -
                                          totals["discount_amount"])
        line_sum = sum(l["total_amount"] for l in totals["lines"])
        assert totals["total_amount"] == line_sum - totals["header_discount"]

    def test_percentage_header_discount_uses_subtotal(self):
        totals = compute_bill_totals(
            [{"quantity": 2, "unit_price": "250", "tax_percentage": 0,
              "discount_amount": 0}],
            discount_percentage="10",
        )
        assert totals["header_discount"] == Decimal("50.00")
        assert totals["total_amount"] == Decimal("450.00")


class TestStatusAfterPayment:

    def test_paid_at_zero_balance(self):
        assert status_after_payment("100", "100", "PENDING") == "PAID"

    def test_partial_while_owed(self):
        assert status_after_payment("100", "40", "PENDING") == "PARTIAL"

    def test_unchanged_without_payment(self):
        assert status_after_payment("100", "0", "DRAFT") == "DRAFT"
