# clinic/services/billing_math.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

Q2 = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def D(x) -> Decimal:
    try:
        return Decimal(str(x or 0))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def money2(x) -> Decimal:
    return D(x).quantize(Q2, rounding=ROUND_HALF_UP)


def compute_line_amounts(qty, unit_price, tax_percentage,
                         discount_amount) -> Dict[str, Decimal]:
    """
    One bill line:
      subtotal = qty * unit_price
      tax      = subtotal * tax% / 100
      total    = subtotal + tax - discount
    Each component is rounded to paise before the total is formed, so the
    total is an exact sum of the stored columns.
    """
    subtotal = money2(D(qty) * D(unit_price))
    tax_amount = money2(subtotal * D(tax_percentage) / HUNDRED)
    discount = money2(discount_amount)

    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "discount_amount": discount,
        "total_amount": subtotal + tax_amount - discount,
    }


def header_discount(subtotal, discount_amount, discount_percentage) -> Decimal:
    # a flat amount wins over a percentage
    flat = money2(discount_amount)
    if flat > 0:
        return flat
    return money2(D(subtotal) * D(discount_percentage) / HUNDRED)


def compute_bill_totals(
    items: Iterable[Dict[str, Any]],
    *,
    discount_amount=0,
    discount_percentage=0,
) -> Dict[str, Any]:
    """
    Aggregate a full item set.

    `items` are mappings with quantity, unit_price, tax_percentage and
    discount_amount. The bill discount is the sum of line discounts plus the
    header discount, which keeps total == subtotal + tax - discount and also
    total == sum(line totals) - header discount.
    """
    lines: List[Dict[str, Decimal]] = []
    subtotal = ZERO
    tax = ZERO
    line_discounts = ZERO

    for it in items:
        amounts = compute_line_amounts(
            it.get("quantity"),
            it.get("unit_price"),
            it.get("tax_percentage"),
            it.get("discount_amount"),
        )
        lines.append(amounts)
        subtotal += amounts["subtotal"]
        tax += amounts["tax_amount"]
        line_discounts += amounts["discount_amount"]

    hdr = header_discount(subtotal, discount_amount, discount_percentage)
    discount = line_discounts + hdr

    return {
        "lines": lines,
        "subtotal": subtotal,
        "tax_amount": tax,
        "line_discount": line_discounts,
        "header_discount": hdr,
        "discount_amount": discount,
        "total_amount": subtotal + tax - discount,
    }


def status_after_payment(total, paid, current: str) -> str:
    """PAID at zero balance, PARTIAL while something is paid and owed."""
    balance = money2(total) - money2(paid)
    if balance <= 0:
        return "PAID"
    if money2(paid) > 0:
        return "PARTIAL"
    return current
