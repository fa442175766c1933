# FILE: clinic/services/staff_hr.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.models.billing import NumberDocType, NumberResetPeriod
from clinic.models.staff import (
    Attendance,
    AttendanceStatus,
    Leave,
    LeaveBalance,
    LeaveStatus,
    LeaveType,
    Staff,
)
from clinic.services.billing_math import money2
from clinic.services.numbers import next_sequence
from clinic.utils.dates import daterange, parse_hhmm

logger = logging.getLogger(__name__)

ROLE_PREFIX = {
    "DOCTOR": "DOC",
    "RECEPTIONIST": "REC",
    "THERAPIST": "THR",
    "PHARMACIST": "PHR",
    "LAB_TECHNICIAN": "LAB",
    "NURSE": "NUR",
    "MANAGER": "MGR",
}

# LeaveType -> (total column, used column)
BALANCE_COLUMNS = {
    LeaveType.SICK.value: ("sick_total", "sick_used"),
    LeaveType.CASUAL.value: ("casual_total", "casual_used"),
    LeaveType.EARNED.value: ("earned_total", "earned_used"),
}


def employee_id_prefix(role: Optional[str]) -> str:
    return ROLE_PREFIX.get((role or "").upper(), "EMP")


def next_employee_id(db: Session, *, clinic_id: int, role: str,
                     now: Optional[datetime] = None) -> str:
    """DOC260001: role prefix, two-digit year, counter reset yearly per prefix."""
    now = now or datetime.utcnow()
    prefix = employee_id_prefix(role)
    n = next_sequence(db,
                      clinic_id=clinic_id,
                      doc_type=NumberDocType.EMPLOYEE,
                      prefix=prefix,
                      reset_period=NumberResetPeriod.YEAR,
                      now=now)
    return f"{prefix}{now:%y}{n:04d}"


# ---------------------------------------------------------------------
#  Attendance
# ---------------------------------------------------------------------


def hours_between(clock_in: Optional[str], clock_out: Optional[str]) -> Optional[Decimal]:
    """Worked hours for HH:MM strings; None unless both are valid and ordered."""
    start = parse_hhmm(clock_in)
    end = parse_hhmm(clock_out)
    if not start or not end or end <= start:
        return None
    return money2(Decimal((end - start).seconds) / Decimal(3600))


def upsert_attendance(db: Session, *, staff: Staff, day: date, status: str,
                      clock_in: Optional[str] = None,
                      clock_out: Optional[str] = None,
                      notes: Optional[str] = None) -> Attendance:
    row = db.query(Attendance).filter(Attendance.staff_id == staff.id,
                                      Attendance.date == day).first()
    if not row:
        row = Attendance(clinic_id=staff.clinic_id, staff_id=staff.id, date=day)
        db.add(row)
    row.status = status
    row.clock_in = clock_in
    row.clock_out = clock_out
    row.total_hours = hours_between(clock_in, clock_out)
    row.notes = notes
    return row


def attendance_summary(rows: Iterable[Attendance]) -> Dict[str, object]:
    counts = {s.value: 0 for s in AttendanceStatus}
    hours = Decimal("0.00")
    for r in rows:
        counts[r.status] = counts.get(r.status, 0) + 1
        if r.total_hours is not None:
            hours += money2(r.total_hours)
    return {
        "present": counts[AttendanceStatus.PRESENT.value],
        "absent": counts[AttendanceStatus.ABSENT.value],
        "half_day": counts[AttendanceStatus.HALF_DAY.value],
        "leave": counts[AttendanceStatus.LEAVE.value],
        "total_hours": str(hours),
    }


# ---------------------------------------------------------------------
#  Leaves
# ---------------------------------------------------------------------


def leave_days(start: date, end: date) -> int:
    return (end - start).days + 1


def get_balance(db: Session, *, staff_id: int, year: int,
                for_update: bool = False) -> LeaveBalance:
    q = db.query(LeaveBalance).filter(LeaveBalance.staff_id == staff_id,
                                      LeaveBalance.year == year)
    if for_update:
        q = q.with_for_update()
    bal = q.first()
    if not bal:
        bal = LeaveBalance(staff_id=staff_id,
                           year=year,
                           sick_total=12,
                           sick_used=0,
                           casual_total=12,
                           casual_used=0,
                           earned_total=15,
                           earned_used=0,
                           unpaid_used=0)
        db.add(bal)
        db.flush()
    return bal


def available_days(bal: LeaveBalance, leave_type: str) -> Optional[int]:
    """Remaining days of a type; None for UNPAID, which has no cap."""
    cols = BALANCE_COLUMNS.get(leave_type)
    if not cols:
        return None
    total_col, used_col = cols
    return int(getattr(bal, total_col) or 0) - int(getattr(bal, used_col) or 0)


def check_new_leave(db: Session, *, staff: Staff, leave_type: str, start: date,
                    end: date) -> int:
    if end < start:
        raise HTTPException(status_code=400,
                            detail="End date must be on or after start date")
    days = leave_days(start, end)

    bal = get_balance(db, staff_id=staff.id, year=start.year)
    left = available_days(bal, leave_type)
    if left is not None and days > left:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient {leave_type.lower()} leave balance. Available: {left} days")

    overlapping = db.query(Leave.id).filter(
        Leave.staff_id == staff.id,
        Leave.status.in_([LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value]),
        Leave.start_date <= end,
        Leave.end_date >= start,
    ).first()
    if overlapping:
        raise HTTPException(status_code=400,
                            detail="Leave request overlaps an existing leave")
    return days


def approve_leave(db: Session, *, leave: Leave, reviewer_id: int,
                  notes: Optional[str] = None) -> Leave:
    """Consume the balance and mark each day as LEAVE attendance."""
    if leave.status != LeaveStatus.PENDING.value:
        raise HTTPException(status_code=400,
                            detail="Only pending leaves can be reviewed")

    bal = get_balance(db,
                      staff_id=leave.staff_id,
                      year=leave.start_date.year,
                      for_update=True)
    left = available_days(bal, leave.leave_type)
    if left is not None:
        if leave.total_days > left:
            raise HTTPException(status_code=400,
                                detail="Insufficient leave balance")
        used_col = BALANCE_COLUMNS[leave.leave_type][1]
        setattr(bal, used_col, int(getattr(bal, used_col) or 0) + leave.total_days)
    else:
        bal.unpaid_used = int(bal.unpaid_used or 0) + leave.total_days

    for day in daterange(leave.start_date, leave.end_date):
        upsert_attendance(db,
                          staff=leave.staff,
                          day=day,
                          status=AttendanceStatus.LEAVE.value,
                          notes=f"{leave.leave_type} leave")

    leave.status = LeaveStatus.APPROVED.value
    leave.reviewed_by = reviewer_id
    leave.reviewed_at = datetime.utcnow()
    leave.review_notes = notes
    return leave


def reject_leave(leave: Leave, *, reviewer_id: int,
                 notes: Optional[str] = None) -> Leave:
    if leave.status != LeaveStatus.PENDING.value:
        raise HTTPException(status_code=400,
                            detail="Only pending leaves can be reviewed")
    leave.status = LeaveStatus.REJECTED.value
    leave.reviewed_by = reviewer_id
    leave.reviewed_at = datetime.utcnow()
    leave.review_notes = notes
    return leave


# ---------------------------------------------------------------------
#  Payroll
# ---------------------------------------------------------------------


def payroll_amounts(*, basic_salary, allowances=0, hra=0, other_earnings=0,
                    working_days: int = 30, days_absent: int = 0,
                    other_deductions=0) -> Dict[str, Decimal]:
    gross = (money2(basic_salary) + money2(allowances) + money2(hra) +
             money2(other_earnings))
    per_day = gross / Decimal(working_days or 30)
    absence = money2(per_day * Decimal(days_absent or 0))
    net = money2(gross - absence - money2(other_deductions))
    return {
        "gross_salary": money2(gross),
        "per_day": money2(per_day),
        "absence_deduction": absence,
        "net_salary": net,
    }
