from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from clinic.api.deps import clinic_user, get_db
from clinic.core.rbac import require_module
from clinic.models.billing import Expense, NumberDocType, PaymentConfirmation, QuickIncome
from clinic.models.patient import Patient
from clinic.models.user import User
from clinic.schemas.billing import (
    ExpenseCreate,
    ExpenseOut,
    PaymentConfirmationOut,
    PaymentConfirmationReviewIn,
    QuickIncomeCreate,
    QuickIncomeOut,
)
from clinic.services.billing_math import money2
from clinic.services.excel_export import build_pl_report_excel
from clinic.services.finance_reports import pl_report, profit_loss
from clinic.services.numbers import next_document_number

router = APIRouter()


# ---------------------------------------------------------------------
#  Expenses
# ---------------------------------------------------------------------


@router.post("/expenses", response_model=ExpenseOut, status_code=201)
def create_expense(
        payload: ExpenseCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    exp = Expense(
        clinic_id=user.clinic_id,
        expense_number=next_document_number(db,
                                            clinic_id=user.clinic_id,
                                            doc_type=NumberDocType.EXPENSE,
                                            prefix="EXP"),
        category=payload.category.strip().upper(),
        subcategory=payload.subcategory,
        description=payload.description,
        amount=money2(payload.amount),
        expense_date=payload.expense_date,
        vendor_name=payload.vendor_name,
        payment_method=payload.payment_method,
        payment_status=payload.payment_status,
        receipt_url=payload.receipt_url,
        added_by=user.id,
    )
    db.add(exp)
    db.commit()
    db.refresh(exp)
    return exp


@router.get("/expenses")
def list_expenses(
        category: Optional[str] = Query(None),
        status: Optional[str] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=200),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = db.query(Expense).filter(Expense.clinic_id == user.clinic_id)
    if category and category.upper() != "ALL":
        q = q.filter(Expense.category == category.upper())
    if status and status.upper() != "ALL":
        q = q.filter(Expense.payment_status == status.upper())
    if from_date:
        q = q.filter(Expense.expense_date >= from_date)
    if to_date:
        q = q.filter(Expense.expense_date <= to_date)

    total = q.count()
    rows = (q.order_by(Expense.expense_date.desc(), Expense.id.desc()).offset(
        (page - 1) * limit).limit(limit).all())

    amount = paid = pending = Decimal("0.00")
    for e in q.all():
        amount += money2(e.amount)
        if e.payment_status == "PAID":
            paid += money2(e.amount)
        else:
            pending += money2(e.amount)

    return {
        "expenses": [ExpenseOut.model_validate(e) for e in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "stats": {
            "total_expenses": total,
            "total_amount": str(amount),
            "paid_amount": str(paid),
            "pending_amount": str(pending),
        },
    }


# ---------------------------------------------------------------------
#  Quick income
# ---------------------------------------------------------------------


@router.post("/quick-income", response_model=QuickIncomeOut, status_code=201)
def create_quick_income(
        payload: QuickIncomeCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    if payload.patient_id:
        exists = db.query(Patient.id).filter(
            Patient.id == payload.patient_id,
            Patient.clinic_id == user.clinic_id,
        ).first()
        if not exists:
            raise HTTPException(status_code=404, detail="Patient not found")

    row = QuickIncome(
        clinic_id=user.clinic_id,
        income_number=next_document_number(db,
                                           clinic_id=user.clinic_id,
                                           doc_type=NumberDocType.INCOME,
                                           prefix="INC"),
        amount=money2(payload.amount),
        payment_method=payload.payment_method,
        category=payload.category,
        patient_name=payload.patient_name,
        patient_id=payload.patient_id,
        reference_number=payload.reference_number,
        notes=payload.notes,
        received_date=payload.received_date,
        recorded_by=user.id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/quick-income")
def list_quick_income(
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=200),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = db.query(QuickIncome).filter(QuickIncome.clinic_id == user.clinic_id)
    total = q.count()
    rows = (q.order_by(QuickIncome.received_date.desc(),
                       QuickIncome.id.desc()).offset(
                           (page - 1) * limit).limit(limit).all())
    amount = Decimal("0.00")
    for r in q.all():
        amount += money2(r.amount)
    return {
        "entries": [QuickIncomeOut.model_validate(r) for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "stats": {
            "total_entries": total,
            "total_amount": str(amount),
        },
    }


# ---------------------------------------------------------------------
#  Portal payment confirmations
# ---------------------------------------------------------------------


@router.get("/payment-confirmations")
def list_payment_confirmations(
        status: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = db.query(PaymentConfirmation).filter(
        PaymentConfirmation.clinic_id == user.clinic_id)
    if status and status.upper() != "ALL":
        q = q.filter(PaymentConfirmation.status == status.upper())
    rows = q.order_by(PaymentConfirmation.created_at.desc(),
                      PaymentConfirmation.id.desc()).all()
    return {"confirmations": [PaymentConfirmationOut.model_validate(r) for r in rows]}


@router.post("/payment-confirmations/{confirmation_id}/review",
             response_model=PaymentConfirmationOut)
def review_payment_confirmation(
        confirmation_id: int,
        payload: PaymentConfirmationReviewIn,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    # marks the claim only; the money itself is recorded as a bill payment
    row = db.query(PaymentConfirmation).filter(
        PaymentConfirmation.id == confirmation_id,
        PaymentConfirmation.clinic_id == user.clinic_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Payment confirmation not found")
    if row.status != "PENDING_VERIFICATION":
        raise HTTPException(status_code=400,
                            detail="Payment confirmation already reviewed")
    row.status = payload.status
    db.commit()
    db.refresh(row)
    return row


# ---------------------------------------------------------------------
#  Reports
# ---------------------------------------------------------------------


@router.get("/profit-loss")
def profit_loss_route(
        period: str = Query("month"),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    require_module(user, "reports")
    return profit_loss(db,
                       clinic_id=user.clinic_id,
                       period=period,
                       from_date=from_date,
                       to_date=to_date)


def _report_or_400(db: Session, user: User, type_: str,
                   start_date: Optional[date],
                   end_date: Optional[date]) -> Dict[str, Any]:
    if not start_date or not end_date:
        raise HTTPException(status_code=400,
                            detail="Start date and end date are required")
    if (type_ or "pl").lower() != "pl":
        raise HTTPException(status_code=400, detail="Invalid report type")
    return pl_report(db, clinic_id=user.clinic_id, start=start_date, end=end_date)


@router.get("/reports")
def reports(
        type: str = Query("pl"),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    require_module(user, "reports")
    return _report_or_400(db, user, type, start_date, end_date)


@router.get("/reports/export")
def export_report(
        type: str = Query("pl"),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    require_module(user, "reports")
    report = _report_or_400(db, user, type, start_date, end_date)

    bio = BytesIO()
    build_pl_report_excel(bio, report)
    bio.seek(0)
    filename = f"profit_loss_{start_date:%Y%m%d}_{end_date:%Y%m%d}.xlsx"
    return StreamingResponse(
        bio,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
