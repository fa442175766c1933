# FILE: clinic/services/prescriptions.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.models.pharmacy import Medicine, StockTxnType
from clinic.models.prescription import (
    Prescription,
    PrescriptionMedicine,
    PrescriptionStatus,
)
from clinic.models.user import User
from clinic.schemas.prescription import PrescriptionMedicineIn
from clinic.services.stock import create_stock_transaction, find_shortages

logger = logging.getLogger(__name__)


def build_lines(db: Session, *, clinic_id: int,
                items: Sequence[PrescriptionMedicineIn]) -> List[PrescriptionMedicine]:
    ids = {it.medicine_id for it in items}
    if ids:
        found = {
            m.id
            for m in db.query(Medicine.id).filter(Medicine.clinic_id == clinic_id,
                                                  Medicine.id.in_(ids))
        }
        missing = ids - found
        if missing:
            raise HTTPException(status_code=400,
                                detail=f"Unknown medicine id(s): {sorted(missing)}")

    lines = []
    for i, it in enumerate(items):
        data = it.model_dump()
        if data.get("order_index") is None:
            data["order_index"] = i
        lines.append(PrescriptionMedicine(**data))
    return lines


def dispense(db: Session, *, rx: Prescription, user: User) -> Prescription:
    """
    Take every line out of stock and mark the prescription DISPENSED.

    All medicines are locked first; any shortage aborts the whole dispense
    with the list of short lines.
    """
    if rx.status == PrescriptionStatus.DISPENSED.value:
        raise HTTPException(status_code=400,
                            detail="Prescription has already been dispensed")
    if rx.status == PrescriptionStatus.CANCELLED.value:
        raise HTTPException(status_code=400,
                            detail="Cannot dispense a cancelled prescription")

    try:
        ids = sorted({line.medicine_id for line in rx.medicines})
        meds = {
            m.id: m
            for m in db.query(Medicine).filter(Medicine.id.in_(ids)).order_by(
                Medicine.id).with_for_update().all()
        } if ids else {}

        # several lines may name the same medicine
        needed = {}
        for line in rx.medicines:
            needed[line.medicine_id] = needed.get(line.medicine_id, 0) + int(
                line.quantity_needed or 0)

        issues = find_shortages([(meds[mid], qty) for mid, qty in needed.items()])
        if issues:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Insufficient stock for one or more medicines",
                    "stock_issues": issues,
                },
            )

        for mid, qty in needed.items():
            med = meds[mid]
            med.current_stock = int(med.current_stock or 0) - qty
            create_stock_transaction(
                db,
                medicine=med,
                txn_type=StockTxnType.OUT.value,
                qty_delta=-qty,
                reason="Prescription Dispensed",
                reference_id=rx.id,
                notes=f"Prescription: {rx.prescription_no}",
                user=user,
            )

        rx.status = PrescriptionStatus.DISPENSED.value
        rx.dispensed_at = datetime.utcnow()
        rx.dispensed_by = user.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("prescription %s dispensed (%s medicines)", rx.prescription_no,
                len(needed))
    return rx
