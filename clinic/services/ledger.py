# clinic/services/ledger.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from clinic.models.billing import LedgerTxnType, PatientLedger
from clinic.models.patient import Patient
from clinic.services.billing_math import money2

logger = logging.getLogger(__name__)


def last_entry(db: Session, patient_id: int) -> Optional[PatientLedger]:
    return (db.query(PatientLedger).filter(
        PatientLedger.patient_id == patient_id).order_by(
            PatientLedger.transaction_date.desc(),
            PatientLedger.id.desc()).first())


def current_balance(db: Session, patient_id: int) -> Decimal:
    prev = last_entry(db, patient_id)
    return money2(prev.balance) if prev else Decimal("0.00")


def append_entry(
    db: Session,
    *,
    clinic_id: int,
    patient_id: int,
    transaction_type: LedgerTxnType,
    debit=0,
    credit=0,
    reference_id: Optional[int] = None,
    reference_type: Optional[str] = None,
    description: Optional[str] = None,
    created_by: Optional[int] = None,
) -> PatientLedger:
    """
    Append one ledger row in the caller's transaction (flush, no commit).

    The patient row is locked first so two events for the same patient cannot
    both read the same previous balance.
    """
    (db.query(Patient.id).filter(Patient.id == patient_id).with_for_update().first())

    debit = money2(debit)
    credit = money2(credit)
    prev_balance = current_balance(db, patient_id)

    entry = PatientLedger(
        clinic_id=clinic_id,
        patient_id=patient_id,
        transaction_date=datetime.utcnow(),
        transaction_type=transaction_type.value,
        reference_id=reference_id,
        reference_type=reference_type,
        debit=debit,
        credit=credit,
        balance=prev_balance + debit - credit,
        description=description,
        created_by=created_by,
    )
    db.add(entry)
    db.flush()
    logger.debug("ledger patient=%s %s dr=%s cr=%s bal=%s", patient_id,
                 entry.transaction_type, debit, credit, entry.balance)
    return entry


def patient_entries(db: Session, *, clinic_id: int,
                    patient_id: int) -> List[PatientLedger]:
    return (db.query(PatientLedger).filter(
        PatientLedger.clinic_id == clinic_id,
        PatientLedger.patient_id == patient_id,
    ).order_by(PatientLedger.transaction_date.asc(),
               PatientLedger.id.asc()).all())
