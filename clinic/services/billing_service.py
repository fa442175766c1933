# clinic/services/billing_service.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.core.config import settings
from clinic.models.appointment import Appointment
from clinic.models.billing import (
    Bill,
    BillItem,
    BillStatus,
    LedgerTxnType,
    NumberDocType,
)
from clinic.models.patient import Patient
from clinic.models.prescription import Prescription
from clinic.models.user import User
from clinic.schemas.billing import BillCreate, BillItemIn, BillUpdate
from clinic.services.billing_math import compute_bill_totals, money2, status_after_payment
from clinic.services.ledger import append_entry
from clinic.services.numbers import next_document_number

logger = logging.getLogger(__name__)

LOCKED_STATUSES = {BillStatus.PAID.value, BillStatus.CANCELLED.value}


def get_bill(db: Session, *, clinic_id: int, bill_id: int,
             for_update: bool = False) -> Bill:
    q = db.query(Bill).filter(Bill.id == int(bill_id),
                              Bill.clinic_id == clinic_id)
    if for_update:
        q = q.with_for_update()
    bill = q.first()
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    return bill


def _item_dict(it: BillItemIn) -> Dict[str, Any]:
    return it.model_dump()


def _existing_item_dict(it: BillItem) -> Dict[str, Any]:
    return {
        "item_type": it.item_type,
        "item_name": it.item_name,
        "description": it.description,
        "reference_id": it.reference_id,
        "quantity": it.quantity,
        "unit_price": it.unit_price,
        "tax_percentage": it.tax_percentage,
        "discount_amount": it.discount_amount,
    }


def _priced(items: List[Dict[str, Any]], *, header_flat,
            header_pct) -> Dict[str, Any]:
    totals = compute_bill_totals(items,
                                 discount_amount=header_flat,
                                 discount_percentage=header_pct)
    for raw, line in zip(items, totals["lines"]):
        if line["total_amount"] < 0:
            raise HTTPException(
                status_code=400,
                detail=f"Discount exceeds amount for item '{raw['item_name']}'")
    if totals["total_amount"] < 0:
        raise HTTPException(status_code=400,
                            detail="Discount exceeds bill amount")
    return totals


def _build_items(items: List[Dict[str, Any]],
                 lines: List[Dict[str, Decimal]]) -> List[BillItem]:
    out = []
    for raw, line in zip(items, lines):
        out.append(
            BillItem(
                item_type=raw.get("item_type") or "OTHER",
                item_name=raw["item_name"],
                description=raw.get("description"),
                reference_id=raw.get("reference_id"),
                quantity=raw.get("quantity"),
                unit_price=money2(raw.get("unit_price")),
                tax_percentage=raw.get("tax_percentage") or 0,
                tax_amount=line["tax_amount"],
                discount_amount=line["discount_amount"],
                total_amount=line["total_amount"],
            ))
    return out


def _apply_totals(bill: Bill, totals: Dict[str, Any]) -> None:
    bill.subtotal = totals["subtotal"]
    bill.tax_amount = totals["tax_amount"]
    bill.discount_amount = totals["discount_amount"]
    bill.total_amount = totals["total_amount"]
    bill.balance_amount = totals["total_amount"] - money2(bill.paid_amount)


def _check_links(db: Session, *, clinic_id: int, patient_id: int,
                 inp: BillCreate) -> None:
    if inp.prescription_id:
        rx = db.query(Prescription.id).filter(
            Prescription.id == inp.prescription_id,
            Prescription.clinic_id == clinic_id,
            Prescription.patient_id == patient_id,
        ).first()
        if not rx:
            raise HTTPException(status_code=400,
                                detail="Prescription does not belong to patient")
    if inp.appointment_id:
        appt = db.query(Appointment.id).filter(
            Appointment.id == inp.appointment_id,
            Appointment.clinic_id == clinic_id,
        ).first()
        if not appt:
            raise HTTPException(status_code=400,
                                detail="Appointment not found")


def create_bill(db: Session, *, clinic_id: int, inp: BillCreate,
                user: User) -> Bill:
    """
    New bill in DRAFT (or PENDING) with balance == total and nothing paid.
    Only ledgered when BILLING_LEDGER_ON_CREATE is set.
    """
    patient = db.query(Patient).filter(
        Patient.id == inp.patient_id,
        Patient.clinic_id == clinic_id,
    ).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    _check_links(db, clinic_id=clinic_id, patient_id=patient.id, inp=inp)

    items = [_item_dict(i) for i in inp.items]
    totals = _priced(items,
                     header_flat=inp.discount_amount,
                     header_pct=inp.discount_percentage)

    try:
        bill = Bill(
            clinic_id=clinic_id,
            bill_number=next_document_number(db,
                                             clinic_id=clinic_id,
                                             doc_type=NumberDocType.BILL,
                                             prefix="INV"),
            patient_id=patient.id,
            prescription_id=inp.prescription_id,
            appointment_id=inp.appointment_id,
            header_discount=money2(inp.discount_amount),
            discount_percentage=inp.discount_percentage,
            paid_amount=Decimal("0.00"),
            status=inp.status,
            notes=inp.notes,
            billed_by=user.id,
        )
        if inp.status == BillStatus.PENDING.value:
            bill.finalized_at = datetime.utcnow()
        bill.items = _build_items(items, totals["lines"])
        _apply_totals(bill, totals)
        db.add(bill)
        db.flush()

        if settings.BILLING_LEDGER_ON_CREATE:
            append_entry(
                db,
                clinic_id=clinic_id,
                patient_id=patient.id,
                transaction_type=LedgerTxnType.BILL,
                debit=bill.total_amount,
                reference_id=bill.id,
                reference_type="BILL",
                description=f"Bill {bill.bill_number} created",
                created_by=user.id,
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bill)
    logger.info("bill created clinic=%s bill=%s total=%s", clinic_id,
                bill.bill_number, bill.total_amount)
    return bill


def update_bill(db: Session, *, clinic_id: int, bill_id: int,
                inp: BillUpdate, user: User) -> Bill:
    """
    Replace items and/or discount, change status or finalize.

    Item edits rebuild the whole item set. A changed total is ledgered as an
    ADJUSTMENT for the delta (debit when it grew, credit when it shrank).
    """
    try:
        bill = get_bill(db, clinic_id=clinic_id, bill_id=bill_id,
                        for_update=True)
        if bill.status in LOCKED_STATUSES:
            raise HTTPException(status_code=400,
                                detail="Cannot edit paid or cancelled bills")

        old_total = money2(bill.total_amount)
        paid = money2(bill.paid_amount)

        reprice = (inp.items is not None or inp.discount_amount is not None
                   or inp.discount_percentage is not None)
        if reprice:
            if inp.discount_amount is not None:
                bill.header_discount = money2(inp.discount_amount)
                bill.discount_percentage = Decimal("0")
            if inp.discount_percentage is not None:
                bill.discount_percentage = inp.discount_percentage
                if inp.discount_amount is None:
                    bill.header_discount = Decimal("0")

            if inp.items is not None:
                items = [_item_dict(i) for i in inp.items]
            else:
                items = [_existing_item_dict(i) for i in bill.items]

            totals = _priced(items,
                             header_flat=bill.header_discount,
                             header_pct=bill.discount_percentage)
            if totals["total_amount"] < paid:
                raise HTTPException(
                    status_code=400,
                    detail="Bill total cannot be less than the amount already paid")

            if inp.items is not None:
                bill.items.clear()
                db.flush()
                bill.items.extend(_build_items(items, totals["lines"]))
            _apply_totals(bill, totals)
            if paid > 0:
                bill.status = status_after_payment(bill.total_amount, paid,
                                                   bill.status)

        if inp.status is not None:
            if paid > 0:
                raise HTTPException(
                    status_code=400,
                    detail="Cannot change status of a bill with payments")
            bill.status = inp.status
            if inp.status == BillStatus.PENDING.value and not bill.finalized_at:
                bill.finalized_at = datetime.utcnow()

        if inp.finalize:
            if bill.status != BillStatus.DRAFT.value:
                raise HTTPException(status_code=400,
                                    detail="Only draft bills can be finalized")
            bill.status = BillStatus.PENDING.value
            bill.finalized_at = datetime.utcnow()

        if inp.notes is not None:
            bill.notes = inp.notes

        db.flush()

        new_total = money2(bill.total_amount)
        if new_total != old_total:
            delta = new_total - old_total
            append_entry(
                db,
                clinic_id=clinic_id,
                patient_id=bill.patient_id,
                transaction_type=LedgerTxnType.ADJUSTMENT,
                debit=delta if delta > 0 else 0,
                credit=-delta if delta < 0 else 0,
                reference_id=bill.id,
                reference_type="BILL_ADJUSTED",
                description=f"Bill amount adjusted from {old_total} to {new_total}",
                created_by=user.id,
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bill)
    logger.info("bill updated clinic=%s bill=%s total=%s status=%s",
                clinic_id, bill.bill_number, bill.total_amount, bill.status)
    return bill


def cancel_bill(db: Session, *, clinic_id: int, bill_id: int,
                user: User) -> Bill:
    """CANCELLED plus an ADJUSTMENT credit of the full total. Paid bills refuse."""
    try:
        bill = get_bill(db, clinic_id=clinic_id, bill_id=bill_id,
                        for_update=True)
        if bill.status == BillStatus.CANCELLED.value:
            raise HTTPException(status_code=400,
                                detail="Bill is already cancelled")
        if money2(bill.paid_amount) > 0:
            raise HTTPException(
                status_code=400,
                detail="Cannot cancel bills with payments")

        bill.status = BillStatus.CANCELLED.value
        bill.cancelled_at = datetime.utcnow()
        db.flush()

        append_entry(
            db,
            clinic_id=clinic_id,
            patient_id=bill.patient_id,
            transaction_type=LedgerTxnType.ADJUSTMENT,
            credit=bill.total_amount,
            reference_id=bill.id,
            reference_type="BILL_CANCELLED",
            description=f"Bill {bill.bill_number} cancelled",
            created_by=user.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bill)
    logger.info("bill cancelled clinic=%s bill=%s", clinic_id,
                bill.bill_number)
    return bill
