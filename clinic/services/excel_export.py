from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter


def _money(x) -> float:
    try:
        return float(Decimal(str(x or "0")))
    except (ArithmeticError, ValueError):
        return 0.0


def _widths(ws, n: int, width: int = 20) -> None:
    for col in range(1, n + 1):
        ws.column_dimensions[get_column_letter(col)].width = width


def build_pl_report_excel(fp, report: Dict[str, Any]) -> None:
    """Three sheets: summary, revenue by month, expenses by category/month."""
    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    period = report.get("period", {})
    ws.append(["Profit & Loss"])
    ws["A1"].font = Font(bold=True, size=13)
    ws.append(["From", period.get("start_date"), "To", period.get("end_date")])
    ws.append([])
    summary = report.get("summary", {})
    ws.append(["Total Revenue", _money(summary.get("total_revenue"))])
    ws.append(["Total Expenses", _money(summary.get("total_expenses"))])
    ws.append(["Net Profit", _money(summary.get("net_profit"))])
    ws.append(["Profit Margin %", _money(summary.get("profit_margin"))])
    _widths(ws, 4)

    ws = wb.create_sheet("Revenue")
    headers = ["Month", "Revenue"]
    ws.append(headers)
    for month, amount in (report.get("revenue", {}).get("by_month") or {}).items():
        ws.append([month, _money(amount)])
    _widths(ws, len(headers))

    ws = wb.create_sheet("Expenses")
    headers = ["Category", "Amount"]
    ws.append(headers)
    expenses = report.get("expenses", {})
    for cat, amount in (expenses.get("by_category") or {}).items():
        ws.append([cat, _money(amount)])
    ws.append([])
    ws.append(["Month", "Amount"])
    for month, amount in (expenses.get("by_month") or {}).items():
        ws.append([month, _money(amount)])
    _widths(ws, len(headers))

    wb.save(fp)
