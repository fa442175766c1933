# FILE: clinic/services/pdf_bill.py
from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from typing import Any, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from clinic.services.billing_math import money2


def _fmt_dt(dt: Any) -> str:
    if not dt:
        return ""
    if isinstance(dt, datetime):
        return dt.strftime("%d-%m-%Y %H:%M")
    if isinstance(dt, date):
        return dt.strftime("%d-%m-%Y")
    return str(dt)


def _draw_header(c: canvas.Canvas, clinic_name: str, title: str) -> float:
    w, h = A4
    x = 18 * mm
    y = h - 20 * mm

    c.setFont("Helvetica-Bold", 14)
    c.drawString(x, y, clinic_name)
    y -= 7 * mm
    c.setFont("Helvetica-Bold", 12)
    c.drawString(x, y, title)

    y -= 4 * mm
    c.setStrokeColor(colors.grey)
    c.setLineWidth(0.6)
    c.line(x, y, w - x, y)
    return y - 6 * mm


def build_bill_pdf(bill, *, clinic_name: str,
                   currency: Optional[str] = "Rs.") -> bytes:
    """
    bill: Bill ORM with items, payments and patient loaded.
    Built-in Helvetica has no rupee glyph, so amounts use a plain prefix.
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    w, _h = A4
    x0 = 18 * mm
    right = w - 18 * mm

    y = _draw_header(c, clinic_name, f"Bill {bill.bill_number}")

    patient = bill.patient
    c.setFont("Helvetica", 10)
    c.drawString(x0, y, f"Patient: {patient.full_name} ({patient.registration_id})")
    c.drawRightString(right, y, f"Date: {_fmt_dt(bill.created_at)}")
    y -= 5 * mm
    c.drawString(x0, y, f"Phone: {patient.phone_number or ''}")
    c.drawRightString(right, y, f"Status: {bill.status}")
    y -= 9 * mm

    cols = [("Item", 0), ("Qty", 80), ("Rate", 100), ("Tax", 122),
            ("Disc", 142), ("Amount", 174)]
    c.setFont("Helvetica-Bold", 9)
    for label, off in cols:
        c.drawString(x0 + off * mm, y, label)
    y -= 3 * mm
    c.setLineWidth(0.4)
    c.line(x0, y, right, y)
    y -= 5 * mm

    c.setFont("Helvetica", 9)
    for it in bill.items:
        if y < 40 * mm:
            c.showPage()
            y = _draw_header(c, clinic_name, f"Bill {bill.bill_number} (contd.)")
            c.setFont("Helvetica", 9)
        values = [
            (it.item_name or "")[:45],
            str(it.quantity),
            str(money2(it.unit_price)),
            str(money2(it.tax_amount)),
            str(money2(it.discount_amount)),
            str(money2(it.total_amount)),
        ]
        for (label, off), txt in zip(cols, values):
            c.drawString(x0 + off * mm, y, txt)
        y -= 5 * mm

    y -= 3 * mm
    c.line(x0, y, right, y)
    y -= 6 * mm

    totals = [
        ("Subtotal", bill.subtotal),
        ("Tax", bill.tax_amount),
        ("Discount", bill.discount_amount),
        ("Total", bill.total_amount),
        ("Paid", bill.paid_amount),
        ("Balance", bill.balance_amount),
    ]
    for label, value in totals:
        c.setFont("Helvetica-Bold" if label in ("Total", "Balance") else "Helvetica", 10)
        c.drawString(right - 60 * mm, y, label)
        c.drawRightString(right, y, f"{currency} {money2(value)}")
        y -= 5 * mm

    if bill.payments:
        y -= 4 * mm
        c.setFont("Helvetica-Bold", 10)
        c.drawString(x0, y, "Payments")
        y -= 5 * mm
        c.setFont("Helvetica", 9)
        for p in bill.payments:
            c.drawString(x0, y, f"{p.payment_number}  {_fmt_dt(p.payment_date)}  {p.payment_method}")
            c.drawRightString(right, y, f"{currency} {money2(p.amount)}")
            y -= 5 * mm

    c.showPage()
    c.save()
    return buf.getvalue()
