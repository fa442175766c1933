from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, joinedload, selectinload

from clinic.api.deps import clinic_user, get_db
from clinic.core.config import settings
from clinic.models.billing import Bill, BillStatus, Payment
from clinic.models.clinic import Clinic
from clinic.models.patient import Patient
from clinic.models.user import User
from clinic.schemas.billing import (
    BillCreate,
    BillDetailOut,
    BillOut,
    BillPaymentResult,
    BillUpdate,
    LedgerEntryOut,
    PaymentCreate,
    PaymentOut,
)
from clinic.services.billing_math import money2
from clinic.services.billing_payment_service import record_payment
from clinic.services.billing_service import cancel_bill, create_bill, get_bill, update_bill
from clinic.services.ledger import current_balance, patient_entries
from clinic.services.pdf_bill import build_bill_pdf

router = APIRouter()


def _day_bounds(from_date: Optional[date], to_date: Optional[date]):
    lo = datetime.combine(from_date, time.min) if from_date else None
    hi = datetime.combine(to_date + timedelta(days=1),
                          time.min) if to_date else None
    return lo, hi


# ---------------------------------------------------------------------
#  Bills
# ---------------------------------------------------------------------


@router.post("/bills", response_model=BillOut, status_code=201)
def create_bill_route(
        payload: BillCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return create_bill(db, clinic_id=user.clinic_id, inp=payload, user=user)


@router.get("/bills")
def list_bills(
        status: str = Query("ALL"),
        patient_id: Optional[int] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=200),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = db.query(Bill).filter(Bill.clinic_id == user.clinic_id)
    if status and status.upper() != "ALL":
        q = q.filter(Bill.status == status.upper())
    if patient_id:
        q = q.filter(Bill.patient_id == patient_id)
    lo, hi = _day_bounds(from_date, to_date)
    if lo:
        q = q.filter(Bill.created_at >= lo)
    if hi:
        q = q.filter(Bill.created_at < hi)

    total = q.count()
    rows = (q.options(joinedload(Bill.patient), selectinload(Bill.items)).order_by(
        Bill.created_at.desc(),
        Bill.id.desc()).offset((page - 1) * limit).limit(limit).all())

    # money stats ignore cancelled bills
    revenue = paid = pending = Decimal("0.00")
    for b in q.filter(Bill.status != BillStatus.CANCELLED.value).all():
        revenue += money2(b.total_amount)
        paid += money2(b.paid_amount)
        pending += money2(b.balance_amount)

    return {
        "bills": [BillOut.model_validate(b) for b in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "stats": {
            "total_bills": total,
            "total_revenue": str(revenue),
            "total_paid": str(paid),
            "total_pending": str(pending),
        },
    }


@router.get("/bills/{bill_id}", response_model=BillDetailOut)
def get_bill_route(
        bill_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return get_bill(db, clinic_id=user.clinic_id, bill_id=bill_id)


@router.patch("/bills/{bill_id}", response_model=BillOut)
def update_bill_route(
        bill_id: int,
        payload: BillUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return update_bill(db,
                       clinic_id=user.clinic_id,
                       bill_id=bill_id,
                       inp=payload,
                       user=user)


@router.delete("/bills/{bill_id}", response_model=BillOut)
def cancel_bill_route(
        bill_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return cancel_bill(db, clinic_id=user.clinic_id, bill_id=bill_id, user=user)


@router.get("/bills/{bill_id}/pdf")
def bill_pdf(
        bill_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    bill = get_bill(db, clinic_id=user.clinic_id, bill_id=bill_id)
    clinic = db.get(Clinic, user.clinic_id)
    pdf_bytes = build_bill_pdf(bill,
                               clinic_name=clinic.name if clinic else settings.PROJECT_NAME)
    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{bill.bill_number}.pdf"'
        },
    )


# ---------------------------------------------------------------------
#  Payments
# ---------------------------------------------------------------------


@router.post("/payments", response_model=BillPaymentResult, status_code=201)
def create_payment(
        payload: PaymentCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    pay, bill = record_payment(db,
                               clinic_id=user.clinic_id,
                               inp=payload,
                               user=user)
    return BillPaymentResult(payment=PaymentOut.model_validate(pay),
                             bill=BillOut.model_validate(bill))


@router.get("/payments")
def list_payments(
        bill_id: Optional[int] = Query(None),
        patient_id: Optional[int] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = db.query(Payment).filter(Payment.clinic_id == user.clinic_id)
    if bill_id:
        q = q.filter(Payment.bill_id == bill_id)
    if patient_id:
        q = q.filter(Payment.patient_id == patient_id)
    lo, hi = _day_bounds(from_date, to_date)
    if lo:
        q = q.filter(Payment.payment_date >= lo)
    if hi:
        q = q.filter(Payment.payment_date < hi)

    rows = q.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()
    total = Decimal("0.00")
    for p in rows:
        total += money2(p.amount)
    return {
        "payments": [PaymentOut.model_validate(p) for p in rows],
        "total_amount": str(total),
    }


# ---------------------------------------------------------------------
#  Patient ledger
# ---------------------------------------------------------------------


@router.get("/ledger/{patient_id}")
def patient_ledger(
        patient_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    patient = db.query(Patient).filter(
        Patient.id == patient_id,
        Patient.clinic_id == user.clinic_id,
    ).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    entries = patient_entries(db, clinic_id=user.clinic_id, patient_id=patient.id)
    return {
        "patient_id": patient.id,
        "entries": [LedgerEntryOut.model_validate(e) for e in entries],
        "balance": str(current_balance(db, patient.id)),
    }
