from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from clinic.models.billing import NumberDocType, NumberResetPeriod, NumberSeries


def _period_key(dt: datetime, reset: NumberResetPeriod) -> Optional[str]:
    if reset == NumberResetPeriod.NONE:
        return None
    if reset == NumberResetPeriod.YEAR:
        return dt.strftime("%Y")
    return dt.strftime("%Y-%m")  # MONTH


def _stamp(dt: datetime, reset: NumberResetPeriod) -> str:
    if reset == NumberResetPeriod.NONE:
        return ""
    if reset == NumberResetPeriod.YEAR:
        return dt.strftime("%y")
    return dt.strftime("%y%m")


def next_sequence(
    db: Session,
    *,
    clinic_id: int,
    doc_type: NumberDocType,
    prefix: str = "",
    reset_period: NumberResetPeriod = NumberResetPeriod.NONE,
    padding: int = 4,
    now: Optional[datetime] = None,
) -> int:
    """
    Take the next counter value for (clinic, doc_type, prefix).

    The series row is locked FOR UPDATE, so concurrent callers serialise on
    it; the caller's transaction decides whether the number is consumed.
    """
    now = now or datetime.utcnow()
    pk = _period_key(now, reset_period)

    row = (db.query(NumberSeries).filter(
        NumberSeries.clinic_id == clinic_id,
        NumberSeries.doc_type == doc_type.value,
        NumberSeries.prefix == prefix,
        NumberSeries.is_active.is_(True),
    ).with_for_update().first())

    if not row:
        row = NumberSeries(
            clinic_id=clinic_id,
            doc_type=doc_type.value,
            prefix=prefix,
            reset_period=reset_period.value,
            padding=padding,
            next_number=1,
            last_period_key=pk,
            is_active=True,
        )
        db.add(row)
        db.flush()

    # reset logic
    if reset_period != NumberResetPeriod.NONE and row.last_period_key != pk:
        row.last_period_key = pk
        row.next_number = 1

    n = int(row.next_number or 1)
    row.next_number = n + 1
    db.flush()
    return n


def next_document_number(
    db: Session,
    *,
    clinic_id: int,
    doc_type: NumberDocType,
    prefix: str,
    reset_period: NumberResetPeriod = NumberResetPeriod.MONTH,
    padding: int = 4,
    now: Optional[datetime] = None,
) -> str:
    """INV2610-0001 style numbers: prefix + period stamp + '-' + counter."""
    now = now or datetime.utcnow()
    n = next_sequence(
        db,
        clinic_id=clinic_id,
        doc_type=doc_type,
        prefix=prefix,
        reset_period=reset_period,
        padding=padding,
        now=now,
    )
    return f"{prefix}{_stamp(now, reset_period)}-{str(n).zfill(padding)}"
