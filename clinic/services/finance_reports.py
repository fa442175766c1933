# clinic/services/finance_reports.py
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.models.billing import Bill, BillItem, BillStatus, Expense, QuickIncome
from clinic.services.billing_math import money2

REVENUE_STATUSES = (BillStatus.PAID.value, BillStatus.PARTIAL.value)
OUTSTANDING_STATUSES = (
    BillStatus.PENDING.value,
    BillStatus.PARTIAL.value,
    BillStatus.OVERDUE.value,
)
ZERO = Decimal("0.00")


def _s(x) -> str:
    return str(money2(x))


def _pct(part: Decimal, whole: Decimal) -> str:
    if whole <= 0:
        return "0.00"
    return _s(part * Decimal("100") / whole)


def month_start(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, n: int) -> date:
    y, m = divmod(d.month - 1 + n, 12)
    return date(d.year + y, m + 1, 1)


def resolve_period(
    period: str,
    *,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Inclusive [start, end] for month / quarter / year / custom."""
    today = today or date.today()
    p = (period or "month").lower()

    if p == "custom":
        if not from_date or not to_date:
            raise HTTPException(
                status_code=400,
                detail="from_date and to_date are required for custom period")
        if from_date > to_date:
            raise HTTPException(status_code=400,
                                detail="from_date must be before to_date")
        return from_date, to_date
    if p == "year":
        return date(today.year, 1, 1), today
    if p == "quarter":
        q_month = 3 * ((today.month - 1) // 3) + 1
        return date(today.year, q_month, 1), today
    if p == "month":
        return month_start(today), today
    raise HTTPException(status_code=400, detail="Invalid period")


def _dt_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(
        end + timedelta(days=1), time.min)


def _revenue_bills(db: Session, clinic_id: int, start: date,
                   end: date) -> List[Bill]:
    lo, hi = _dt_bounds(start, end)
    return (db.query(Bill).filter(
        Bill.clinic_id == clinic_id,
        Bill.status.in_(REVENUE_STATUSES),
        Bill.created_at >= lo,
        Bill.created_at < hi,
    ).all())


def _expenses(db: Session,
              clinic_id: int,
              start: date,
              end: date,
              status: Optional[str] = "PAID") -> List[Expense]:
    q = db.query(Expense).filter(
        Expense.clinic_id == clinic_id,
        Expense.expense_date >= start,
        Expense.expense_date <= end,
    )
    if status:
        q = q.filter(Expense.payment_status == status)
    return q.all()


def _sum(values: Iterable) -> Decimal:
    total = ZERO
    for v in values:
        total += money2(v)
    return total


def profit_loss(
    db: Session,
    *,
    clinic_id: int,
    period: str = "month",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    start, end = resolve_period(period,
                                from_date=from_date,
                                to_date=to_date,
                                today=today)

    bills = _revenue_bills(db, clinic_id, start, end)
    revenue = _sum(b.paid_amount for b in bills)

    by_type: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    bill_ids = [b.id for b in bills]
    if bill_ids:
        for it in db.query(BillItem).filter(BillItem.bill_id.in_(bill_ids)):
            by_type[it.item_type] += money2(it.total_amount)

    expenses = _expenses(db, clinic_id, start, end)
    total_expenses = _sum(e.amount for e in expenses)

    by_cat: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for e in expenses:
        by_cat[e.category] += money2(e.amount)
    top = sorted(by_cat.items(), key=lambda kv: kv[1], reverse=True)[:5]

    gross = revenue - total_expenses

    pending_revenue = _sum(
        b.balance_amount for b in db.query(Bill).filter(
            Bill.clinic_id == clinic_id,
            Bill.status.in_(OUTSTANDING_STATUSES),
        ))
    pending_expenses = _sum(e.amount for e in db.query(Expense).filter(
        Expense.clinic_id == clinic_id,
        Expense.payment_status == "PENDING",
    ))

    return {
        "period": {
            "type": (period or "month").lower(),
            "from_date": start.isoformat(),
            "to_date": end.isoformat(),
        },
        "revenue": {
            "total": _s(revenue),
            "bill_count": len(bills),
            "by_category": {k: _s(v) for k, v in sorted(by_type.items())},
        },
        "expenses": {
            "total": _s(total_expenses),
            "count": len(expenses),
            "top_categories": [{
                "category": k,
                "amount": _s(v),
                "percentage": _pct(v, total_expenses),
            } for k, v in top],
        },
        "gross_profit": _s(gross),
        "profit_margin": _pct(gross, revenue),
        "pending": {
            "revenue": _s(pending_revenue),
            "expenses": _s(pending_expenses),
        },
        "trend": monthly_trend(db, clinic_id=clinic_id, months=6, today=today),
    }


def monthly_trend(db: Session,
                  *,
                  clinic_id: int,
                  months: int = 6,
                  today: Optional[date] = None) -> List[Dict[str, str]]:
    today = today or date.today()
    first = add_months(month_start(today), -(months - 1))
    out = []
    for i in range(months):
        m_start = add_months(first, i)
        m_end = add_months(m_start, 1) - timedelta(days=1)
        rev = _sum(b.paid_amount
                   for b in _revenue_bills(db, clinic_id, m_start, m_end))
        exp = _sum(e.amount for e in _expenses(db, clinic_id, m_start, m_end))
        out.append({
            "month": m_start.strftime("%Y-%m"),
            "revenue": _s(rev),
            "expense": _s(exp),
            "profit": _s(rev - exp),
        })
    return out


def pl_report(db: Session, *, clinic_id: int, start: date,
              end: date) -> Dict[str, Any]:
    """Date-range P&L used by /billing/reports and its Excel export."""
    if start > end:
        raise HTTPException(status_code=400,
                            detail="start_date must be before end_date")

    bills = _revenue_bills(db, clinic_id, start, end)
    expenses = _expenses(db, clinic_id, start, end, status=None)

    revenue = _sum(b.paid_amount for b in bills)
    total_expenses = _sum(e.amount for e in expenses)
    net = revenue - total_expenses

    rev_by_month: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for b in bills:
        rev_by_month[b.created_at.strftime("%Y-%m")] += money2(b.paid_amount)

    exp_by_month: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    exp_by_cat: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for e in expenses:
        exp_by_month[e.expense_date.strftime("%Y-%m")] += money2(e.amount)
        exp_by_cat[e.category] += money2(e.amount)

    return {
        "report_type": "Profit & Loss",
        "period": {
            "start_date": start.isoformat(),
            "end_date": end.isoformat()
        },
        "summary": {
            "total_revenue": _s(revenue),
            "total_expenses": _s(total_expenses),
            "net_profit": _s(net),
            "profit_margin": _pct(net, revenue),
        },
        "revenue": {
            "total_bills": len(bills),
            "total_amount": _s(revenue),
            "by_month": {k: _s(v) for k, v in sorted(rev_by_month.items())},
        },
        "expenses": {
            "total_expenses": len(expenses),
            "total_amount": _s(total_expenses),
            "by_category": {k: _s(v) for k, v in sorted(exp_by_cat.items())},
            "by_month": {k: _s(v) for k, v in sorted(exp_by_month.items())},
        },
    }


def month_income(db: Session, *, clinic_id: int, today: Optional[date] = None) -> Decimal:
    """Paid amount on this month's PAID/PARTIAL bills plus quick income."""
    today = today or date.today()
    start = month_start(today)
    end = add_months(start, 1) - timedelta(days=1)
    billed = _sum(b.paid_amount
                  for b in _revenue_bills(db, clinic_id, start, end))
    quick = _sum(q.amount for q in db.query(QuickIncome).filter(
        QuickIncome.clinic_id == clinic_id,
        QuickIncome.received_date >= start,
        QuickIncome.received_date <= end,
    ))
    return billed + quick
