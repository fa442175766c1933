# FILE: clinic/services/dashboard_service.py
from __future__ import annotations

from collections import Counter
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from clinic.core.config import settings
from clinic.core.rbac import role_of
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.patient import Patient
from clinic.models.pharmacy import Medicine
from clinic.models.staff import Attendance, AttendanceStatus, Staff
from clinic.models.therapy import TherapyPlan, TherapyPlanStatus
from clinic.models.user import User, UserRole
from clinic.services.finance_reports import month_income

HIDDEN_TODAY = (AppointmentStatus.CANCELLED.value, AppointmentStatus.DECLINED.value)
MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep",
                "Oct", "Nov", "Dec"]

# ---------- Helpers: formatting ----------


def format_currency(amount, symbol: Optional[str] = None) -> str:
    """Whole-rupee amount with Indian digit grouping: 1234567 -> ₹12,34,567."""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    n = int(Decimal(amount or 0).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if n < 0 else ""
    digits = str(abs(n))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}{symbol}{digits}"


def format_time_12h(value: str) -> str:
    """'14:30' -> '2:30 PM'; values already carrying AM/PM pass through."""
    v = (value or "").strip()
    if ":" not in v or "AM" in v.upper() or "PM" in v.upper():
        return v
    try:
        hours, minutes = v.split(":")[:2]
        hour = int(hours)
    except ValueError:
        return v
    ampm = "PM" if hour >= 12 else "AM"
    display = hour - 12 if hour > 12 else (12 if hour == 0 else hour)
    return f"{display}:{minutes} {ampm}"


# ---------- Widgets ----------


def _staff_on_duty(db: Session, clinic_id: int, today: date) -> int:
    present = db.query(Attendance).filter(
        Attendance.clinic_id == clinic_id,
        Attendance.date == today,
        Attendance.status.in_([AttendanceStatus.PRESENT.value,
                               AttendanceStatus.HALF_DAY.value]),
    ).count()
    if present:
        return present
    return db.query(Staff).filter(Staff.clinic_id == clinic_id,
                                  Staff.status == "ACTIVE").count()


def dashboard_stats(db: Session, *, user: User,
                    today: Optional[date] = None) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard cards.

    STAFF sees no medicine, therapy or staff figures; DOCTOR sees no staff or
    revenue figures; OWNER sees everything.
    """
    today = today or date.today()
    clinic_id = user.clinic_id
    role = role_of(user)

    out: Dict[str, Any] = {
        "total_patients": db.query(Patient).filter(Patient.clinic_id == clinic_id).count(),
        "today_appointments": db.query(Appointment).filter(
            Appointment.clinic_id == clinic_id,
            Appointment.appointment_date == today,
            Appointment.status.notin_(HIDDEN_TODAY),
        ).count(),
        "pending_requests": db.query(Appointment).filter(
            Appointment.clinic_id == clinic_id,
            Appointment.status == AppointmentStatus.PENDING_APPROVAL.value,
        ).count(),
        "medicines_stock": None,
        "low_stock_medicines": None,
        "therapy_assignments": None,
        "total_staff": None,
        "total_revenue": None,
    }

    if role in (UserRole.OWNER.value, UserRole.DOCTOR.value):
        meds = db.query(Medicine).filter(Medicine.clinic_id == clinic_id)
        out["medicines_stock"] = meds.filter(Medicine.current_stock > 0).count()
        out["low_stock_medicines"] = meds.filter(
            Medicine.current_stock > 0,
            Medicine.current_stock <= Medicine.reorder_level).count()
        out["therapy_assignments"] = db.query(TherapyPlan).filter(
            TherapyPlan.clinic_id == clinic_id,
            TherapyPlan.status == TherapyPlanStatus.ACTIVE.value).count()

    if role == UserRole.OWNER.value:
        out["total_staff"] = _staff_on_duty(db, clinic_id, today)

    if role in (UserRole.OWNER.value, UserRole.STAFF.value):
        out["total_revenue"] = format_currency(
            month_income(db, clinic_id=clinic_id, today=today))

    return out


def today_appointments(db: Session, *, clinic_id: int,
                       today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    rows = (db.query(Appointment).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.appointment_date == today,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).order_by(Appointment.appointment_time.asc(), Appointment.id.asc()).all())
    return [{
        "id": a.id,
        "patient_name": (a.patient.full_name if a.patient else None)
        or a.guest_name or "Guest",
        "time": format_time_12h(a.appointment_time),
        "type": a.reason or "General Consultation",
        "status": a.status.lower(),
    } for a in rows]


def constitution_chart(db: Session, *, clinic_id: int) -> Dict[str, Any]:
    rows = (db.query(Patient.constitution_type, func.count(Patient.id)).filter(
        Patient.clinic_id == clinic_id).group_by(Patient.constitution_type).all())
    counts = {(k or "UNKNOWN"): int(n) for k, n in rows}
    labels = sorted(counts)
    return {"labels": labels, "data": [counts[k] for k in labels]}


def patient_flow_chart(db: Session, *, clinic_id: int,
                       year: Optional[int] = None) -> Dict[str, Any]:
    """New registrations per month and repeat visits (every appointment after
    a patient's first one in the year)."""
    year = year or date.today().year
    new_patients = [0] * 12
    follow_ups = [0] * 12

    for (created,) in db.query(Patient.created_at).filter(
            Patient.clinic_id == clinic_id):
        if created and created.year == year:
            new_patients[created.month - 1] += 1

    visits = (db.query(Appointment.patient_id, Appointment.appointment_date).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.patient_id.isnot(None),
        Appointment.appointment_date >= date(year, 1, 1),
        Appointment.appointment_date <= date(year, 12, 31),
        Appointment.status.notin_(HIDDEN_TODAY),
    ).order_by(Appointment.appointment_date.asc()).all())
    seen: Counter = Counter()
    for patient_id, day in visits:
        if seen[patient_id]:
            follow_ups[day.month - 1] += 1
        seen[patient_id] += 1

    return {"labels": MONTH_LABELS, "new_patients": new_patients,
            "follow_ups": follow_ups}
