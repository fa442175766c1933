# FILE: clinic/services/billing_payment_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.models.billing import (
    Bill,
    BillStatus,
    LedgerTxnType,
    NumberDocType,
    Payment,
)
from clinic.models.user import User
from clinic.schemas.billing import PaymentCreate
from clinic.services.billing_math import money2, status_after_payment
from clinic.services.billing_service import get_bill
from clinic.services.ledger import append_entry
from clinic.services.numbers import next_document_number

logger = logging.getLogger(__name__)


def record_payment(
    db: Session,
    *,
    clinic_id: int,
    inp: PaymentCreate,
    user: User,
) -> Tuple[Payment, Bill]:
    """
    Apply one payment to one bill.

    The bill row is locked before the balance check, and the payment, the
    bill totals and the PAYMENT ledger credit commit together.
    """
    amount = money2(inp.amount)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Invalid payment amount")

    try:
        bill = get_bill(db, clinic_id=clinic_id, bill_id=inp.bill_id,
                        for_update=True)
        if bill.status == BillStatus.CANCELLED.value:
            raise HTTPException(
                status_code=400,
                detail="Cannot record payment for a cancelled bill")

        balance = money2(bill.balance_amount)
        if amount > balance:
            raise HTTPException(
                status_code=400,
                detail="Payment amount exceeds outstanding balance")

        pay = Payment(
            clinic_id=clinic_id,
            payment_number=next_document_number(
                db,
                clinic_id=clinic_id,
                doc_type=NumberDocType.PAYMENT,
                prefix="PAY",
            ),
            bill_id=bill.id,
            patient_id=bill.patient_id,
            amount=amount,
            payment_method=inp.payment_method,
            transaction_id=(inp.transaction_id or None),
            reference_number=(inp.reference_number or None),
            notes=(inp.notes or None),
            payment_status="COMPLETED",
            payment_date=inp.payment_date or datetime.utcnow(),
            received_by=getattr(user, "id", None),
        )
        db.add(pay)

        new_paid = money2(bill.paid_amount) + amount
        bill.paid_amount = new_paid
        bill.balance_amount = money2(bill.total_amount) - new_paid
        bill.status = status_after_payment(bill.total_amount, new_paid,
                                           bill.status)
        db.flush()

        append_entry(
            db,
            clinic_id=clinic_id,
            patient_id=bill.patient_id,
            transaction_type=LedgerTxnType.PAYMENT,
            credit=amount,
            reference_id=pay.id,
            reference_type="PAYMENT",
            description=f"Payment {pay.payment_number} received for Bill {bill.bill_number}",
            created_by=getattr(user, "id", None),
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(pay)
    db.refresh(bill)
    logger.info("payment recorded clinic=%s bill=%s amount=%s status=%s",
                clinic_id, bill.bill_number, amount, bill.status)
    return pay, bill
