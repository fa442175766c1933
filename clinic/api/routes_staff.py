# clinic/api/routes_staff.py
import calendar
import logging
from collections import Counter
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from clinic.api.deps import current_user, get_db, owner_user
from clinic.core.rbac import role_of
from clinic.core.security import hash_password
from clinic.models.billing import Expense, NumberDocType
from clinic.models.staff import (
    Attendance,
    Leave,
    LeaveStatus,
    Payroll,
    Staff,
)
from clinic.models.user import User, UserRole
from clinic.schemas.staff import (
    AttendanceBulkIn,
    AttendanceIn,
    AttendanceOut,
    LeaveCreate,
    LeaveOut,
    LeaveReviewIn,
    MyLeaveCreate,
    PayrollCreate,
    PayrollOut,
    PayrollPayIn,
    StaffCreate,
    StaffLoginIn,
    StaffOut,
    StaffUpdate,
)
from clinic.services.billing_math import money2
from clinic.services.numbers import next_document_number
from clinic.services.staff_hr import (
    BALANCE_COLUMNS,
    approve_leave,
    attendance_summary,
    check_new_leave,
    get_balance,
    next_employee_id,
    payroll_amounts,
    reject_leave,
    upsert_attendance,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_staff(db: Session, clinic_id: int, staff_id: int) -> Staff:
    s = db.query(Staff).filter(Staff.id == staff_id,
                               Staff.clinic_id == clinic_id).first()
    if not s:
        raise HTTPException(status_code=404, detail="Staff not found")
    return s


def _month_bounds(month: int, year: int):
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _login_role(staff_role: str) -> str:
    return UserRole.DOCTOR.value if staff_role == "DOCTOR" else UserRole.STAFF.value


def _create_login(db: Session, staff: Staff, password: str) -> User:
    if db.query(User.id).filter(User.email == staff.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    u = User(
        clinic_id=staff.clinic_id,
        name=staff.full_name,
        email=staff.email,
        phone=staff.phone,
        password_hash=hash_password(password),
        role=_login_role(staff.role),
        is_active=True,
    )
    db.add(u)
    db.flush()
    staff.user_id = u.id
    return u


# ---------------------------------------------------------------------
#  Attendance
# ---------------------------------------------------------------------


@router.post("/attendance", response_model=AttendanceOut)
def mark_attendance(
        payload: AttendanceIn,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    staff = _get_staff(db, user.clinic_id, payload.staff_id)
    row = upsert_attendance(db,
                            staff=staff,
                            day=payload.date,
                            status=payload.status,
                            clock_in=payload.clock_in,
                            clock_out=payload.clock_out,
                            notes=payload.notes)
    db.commit()
    db.refresh(row)
    return row


@router.post("/attendance/bulk")
def mark_attendance_bulk(
        payload: AttendanceBulkIn,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    try:
        rows = []
        for rec in payload.records:
            staff = _get_staff(db, user.clinic_id, rec.staff_id)
            rows.append(
                upsert_attendance(db,
                                  staff=staff,
                                  day=rec.date,
                                  status=rec.status,
                                  clock_in=rec.clock_in,
                                  clock_out=rec.clock_out,
                                  notes=rec.notes))
            db.flush()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"count": len(rows), "message": "Attendance saved"}


@router.get("/attendance")
def list_attendance(
        date_: Optional[date] = Query(None, alias="date"),
        staff_id: Optional[int] = Query(None),
        month: Optional[int] = Query(None, ge=1, le=12),
        year: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    q = db.query(Attendance).filter(Attendance.clinic_id == user.clinic_id)
    if date_:
        q = q.filter(Attendance.date == date_)
    if staff_id:
        q = q.filter(Attendance.staff_id == staff_id)
    if month and year:
        lo, hi = _month_bounds(month, year)
        q = q.filter(Attendance.date >= lo, Attendance.date <= hi)
    rows = q.order_by(Attendance.date.asc(), Attendance.staff_id.asc()).all()
    return {
        "attendance": [AttendanceOut.model_validate(r) for r in rows],
        "summary": attendance_summary(rows),
    }


@router.get("/attendance/summary")
def attendance_month_summary(
        staff_id: int = Query(...),
        month: int = Query(..., ge=1, le=12),
        year: int = Query(...),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    staff = _get_staff(db, user.clinic_id, staff_id)
    lo, hi = _month_bounds(month, year)
    rows = db.query(Attendance).filter(Attendance.staff_id == staff.id,
                                       Attendance.date >= lo,
                                       Attendance.date <= hi).all()
    out = attendance_summary(rows)
    out.update({"staff_id": staff.id, "month": month, "year": year,
                "total_days": len(rows)})
    return out


# ---------------------------------------------------------------------
#  Leaves
# ---------------------------------------------------------------------


@router.get("/leaves")
def list_leaves(
        status: Optional[str] = Query(None),
        staff_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    q = db.query(Leave).filter(Leave.clinic_id == user.clinic_id)
    if status and status.upper() != "ALL":
        q = q.filter(Leave.status == status.upper())
    if staff_id:
        q = q.filter(Leave.staff_id == staff_id)
    rows = q.order_by(Leave.created_at.desc(), Leave.id.desc()).all()
    return {"leaves": [LeaveOut.model_validate(r) for r in rows]}


@router.post("/leaves", response_model=LeaveOut, status_code=201)
def create_leave(
        payload: LeaveCreate,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    staff = _get_staff(db, user.clinic_id, payload.staff_id)
    days = check_new_leave(db,
                           staff=staff,
                           leave_type=payload.leave_type,
                           start=payload.start_date,
                           end=payload.end_date)
    leave = Leave(
        clinic_id=user.clinic_id,
        staff_id=staff.id,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        total_days=days,
        reason=payload.reason,
        status=LeaveStatus.PENDING.value,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def _get_leave(db: Session, clinic_id: int, leave_id: int) -> Leave:
    leave = db.query(Leave).filter(Leave.id == leave_id,
                                   Leave.clinic_id == clinic_id).first()
    if not leave:
        raise HTTPException(status_code=404, detail="Leave not found")
    return leave


@router.post("/leaves/{leave_id}/approve", response_model=LeaveOut)
def approve_leave_route(
        leave_id: int,
        payload: Optional[LeaveReviewIn] = None,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    leave = _get_leave(db, user.clinic_id, leave_id)
    try:
        approve_leave(db,
                      leave=leave,
                      reviewer_id=user.id,
                      notes=payload.notes if payload else None)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)
    logger.info("leave %s approved (%s days)", leave.id, leave.total_days)
    return leave


@router.post("/leaves/{leave_id}/reject", response_model=LeaveOut)
def reject_leave_route(
        leave_id: int,
        payload: Optional[LeaveReviewIn] = None,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    leave = _get_leave(db, user.clinic_id, leave_id)
    reject_leave(leave, reviewer_id=user.id, notes=payload.notes if payload else None)
    db.commit()
    db.refresh(leave)
    return leave


def _balance_out(bal) -> Dict[str, Any]:
    out: Dict[str, Any] = {"staff_id": bal.staff_id, "year": bal.year}
    for leave_type, (total_col, used_col) in BALANCE_COLUMNS.items():
        total = int(getattr(bal, total_col) or 0)
        used = int(getattr(bal, used_col) or 0)
        out[leave_type.lower()] = {"total": total, "used": used, "available": total - used}
    out["unpaid"] = {"used": int(bal.unpaid_used or 0)}
    return out


@router.get("/leaves/balance/{staff_id}")
def leave_balance(
        staff_id: int,
        year: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    staff = _get_staff(db, user.clinic_id, staff_id)
    bal = get_balance(db, staff_id=staff.id, year=year or date.today().year)
    db.commit()
    return _balance_out(bal)


# ---------------------------------------------------------------------
#  Self service (doctor / staff logins)
# ---------------------------------------------------------------------


def own_staff(user: User = Depends(current_user),
              db: Session = Depends(get_db)) -> Staff:
    if role_of(user) not in (UserRole.DOCTOR.value, UserRole.STAFF.value):
        raise HTTPException(status_code=403, detail="Access denied")
    s = db.query(Staff).filter(Staff.user_id == user.id,
                               Staff.clinic_id == user.clinic_id).first()
    if not s:
        raise HTTPException(status_code=404, detail="Staff profile not found")
    return s


@router.get("/my-profile")
def my_profile(
        staff: Staff = Depends(own_staff),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    bal = get_balance(db, staff_id=staff.id, year=date.today().year)
    db.commit()
    return {"staff": StaffOut.model_validate(staff), "leave_balance": _balance_out(bal)}


@router.get("/my-leaves")
def my_leaves(
        status: Optional[str] = Query(None),
        staff: Staff = Depends(own_staff),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    q = db.query(Leave).filter(Leave.staff_id == staff.id)
    if status and status.upper() != "ALL":
        q = q.filter(Leave.status == status.upper())
    rows = q.order_by(Leave.created_at.desc(), Leave.id.desc()).all()
    bal = get_balance(db, staff_id=staff.id, year=date.today().year)
    db.commit()
    return {
        "leaves": [LeaveOut.model_validate(r) for r in rows],
        "leave_balance": _balance_out(bal),
    }


@router.post("/my-leaves", status_code=201)
def apply_my_leave(
        payload: MyLeaveCreate,
        staff: Staff = Depends(own_staff),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if payload.start_date < date.today():
        raise HTTPException(status_code=400,
                            detail="Cannot apply leave for past dates")
    emergency = payload.leave_type == "EMERGENCY"
    leave_type = "SICK" if emergency else payload.leave_type

    try:
        days = check_new_leave(db,
                               staff=staff,
                               leave_type=leave_type,
                               start=payload.start_date,
                               end=payload.end_date)
        leave = Leave(
            clinic_id=staff.clinic_id,
            staff=staff,
            leave_type=leave_type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            total_days=days,
            reason=payload.reason,
            status=LeaveStatus.PENDING.value,
        )
        db.add(leave)
        db.flush()
        if emergency:
            approve_leave(db,
                          leave=leave,
                          reviewer_id=staff.user_id,
                          notes="Auto-approved (Emergency Leave)")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)

    if emergency:
        logger.info("emergency leave %s auto-approved for staff %s", leave.id, staff.id)
        message = "Emergency leave approved automatically"
    else:
        message = "Leave request submitted. Awaiting approval."
    return {"leave": LeaveOut.model_validate(leave), "message": message}


# ---------------------------------------------------------------------
#  Payroll
# ---------------------------------------------------------------------


@router.get("/payroll")
def list_payroll(
        month: Optional[int] = Query(None, ge=1, le=12),
        year: Optional[int] = Query(None),
        status: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    q = db.query(Payroll).filter(Payroll.clinic_id == user.clinic_id)
    if month:
        q = q.filter(Payroll.month == month)
    if year:
        q = q.filter(Payroll.year == year)
    if status and status.upper() != "ALL":
        q = q.filter(Payroll.status == status.upper())
    rows = q.order_by(Payroll.year.desc(), Payroll.month.desc(), Payroll.id.desc()).all()

    gross = net = pending = Decimal("0.00")
    for p in rows:
        gross += money2(p.gross_salary)
        net += money2(p.net_salary)
        if p.status != "PAID":
            pending += money2(p.net_salary)
    return {
        "payrolls": [PayrollOut.model_validate(p) for p in rows],
        "stats": {
            "count": len(rows),
            "total_gross": str(gross),
            "total_net": str(net),
            "pending_amount": str(pending),
        },
    }


@router.post("/payroll", response_model=PayrollOut, status_code=201)
def create_payroll(
        payload: PayrollCreate,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    staff = _get_staff(db, user.clinic_id, payload.staff_id)
    exists = db.query(Payroll.id).filter(Payroll.staff_id == staff.id,
                                         Payroll.month == payload.month,
                                         Payroll.year == payload.year).first()
    if exists:
        raise HTTPException(status_code=400,
                            detail="Payroll already exists for this month")

    days_present = payload.days_present
    days_absent = payload.days_absent
    if days_present is None or days_absent is None:
        lo, hi = _month_bounds(payload.month, payload.year)
        marked = attendance_summary(
            db.query(Attendance).filter(Attendance.staff_id == staff.id,
                                        Attendance.date >= lo,
                                        Attendance.date <= hi).all())
        if days_present is None:
            days_present = marked["present"]
        if days_absent is None:
            days_absent = marked["absent"]

    amounts = payroll_amounts(basic_salary=staff.basic_salary,
                              allowances=payload.allowances,
                              hra=payload.hra,
                              other_earnings=payload.other_earnings,
                              working_days=payload.working_days,
                              days_absent=days_absent,
                              other_deductions=payload.other_deductions)

    p = Payroll(
        clinic_id=user.clinic_id,
        payroll_number=next_document_number(db,
                                            clinic_id=user.clinic_id,
                                            doc_type=NumberDocType.PAYROLL,
                                            prefix="PRL"),
        staff_id=staff.id,
        month=payload.month,
        year=payload.year,
        basic_salary=money2(staff.basic_salary),
        allowances=money2(payload.allowances),
        hra=money2(payload.hra),
        other_earnings=money2(payload.other_earnings),
        gross_salary=amounts["gross_salary"],
        working_days=payload.working_days,
        days_present=days_present,
        days_absent=days_absent,
        absence_deduction=amounts["absence_deduction"],
        other_deductions=money2(payload.other_deductions),
        net_salary=amounts["net_salary"],
        status="PENDING",
        notes=payload.notes,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@router.post("/payroll/{payroll_id}/pay")
def pay_payroll(
        payroll_id: int,
        payload: Optional[PayrollPayIn] = None,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    payload = payload or PayrollPayIn()
    p = (db.query(Payroll).filter(Payroll.id == payroll_id,
                                  Payroll.clinic_id == user.clinic_id).with_for_update().first())
    if not p:
        raise HTTPException(status_code=404, detail="Payroll not found")
    if p.status == "PAID":
        raise HTTPException(status_code=400, detail="Payroll already paid")

    try:
        p.status = "PAID"
        p.paid_at = payload.paid_at or datetime.utcnow()
        p.payment_method = payload.payment_method
        staff = p.staff
        exp = Expense(
            clinic_id=user.clinic_id,
            expense_number=f"SAL-{p.payroll_number}",
            category="SALARY",
            subcategory=f"{staff.role} Salary",
            description=f"Salary for {staff.full_name} - "
            f"{calendar.month_name[p.month]} {p.year}",
            amount=money2(p.net_salary),
            expense_date=p.paid_at.date(),
            vendor_name=staff.full_name,
            payment_method=p.payment_method,
            payment_status="PAID",
            payroll_id=p.id,
            added_by=user.id,
        )
        db.add(exp)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(p)
    logger.info("payroll %s paid, expense %s", p.payroll_number, exp.expense_number)
    return {
        "payroll": PayrollOut.model_validate(p),
        "expense_number": exp.expense_number,
        "message": "Payroll marked as paid successfully",
    }


# ---------------------------------------------------------------------
#  Staff
# ---------------------------------------------------------------------


@router.get("")
def list_staff(
        status: Optional[str] = Query(None),
        role: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    base = db.query(Staff).filter(Staff.clinic_id == user.clinic_id)
    q = base
    if status and status.upper() != "ALL":
        q = q.filter(Staff.status == status.upper())
    if role and role.upper() != "ALL":
        q = q.filter(Staff.role == role.upper())
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter((Staff.first_name.ilike(like)) | (Staff.last_name.ilike(like))
                     | (Staff.email.ilike(like)) | (Staff.employee_id.ilike(like)))
    rows = q.order_by(Staff.first_name.asc(), Staff.last_name.asc()).all()

    everyone = base.all()
    salary = Decimal("0.00")
    for s in everyone:
        if s.status == "ACTIVE":
            salary += money2(s.basic_salary)
    return {
        "staff": [StaffOut.model_validate(s) for s in rows],
        "stats": {
            "total": len(everyone),
            "by_status": dict(Counter(s.status for s in everyone)),
            "by_role": dict(Counter(s.role for s in everyone)),
            "total_salary": str(salary),
        },
    }


@router.post("", response_model=StaffOut, status_code=201)
def create_staff(
        payload: StaffCreate,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    email = str(payload.email).strip().lower()
    dup = db.query(Staff.id).filter(Staff.clinic_id == user.clinic_id,
                                    Staff.email == email).first()
    if dup:
        raise HTTPException(status_code=400,
                            detail="Staff with this email already exists")

    try:
        s = Staff(
            clinic_id=user.clinic_id,
            employee_id=next_employee_id(db, clinic_id=user.clinic_id,
                                         role=payload.role),
            email=email,
            status="ACTIVE",
            **payload.model_dump(exclude={"email", "can_login", "password"}),
        )
        db.add(s)
        db.flush()
        if payload.can_login:
            _create_login(db, s, payload.password)
        get_balance(db, staff_id=s.id, year=date.today().year)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(s)
    logger.info("staff %s created clinic=%s", s.employee_id, user.clinic_id)
    return s


@router.get("/{staff_id}", response_model=StaffOut)
def get_staff(
        staff_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    return _get_staff(db, user.clinic_id, staff_id)


@router.put("/{staff_id}", response_model=StaffOut)
def update_staff(
        staff_id: int,
        payload: StaffUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    s = _get_staff(db, user.clinic_id, staff_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(s, k, v)
    if s.user and payload.role:
        s.user.role = _login_role(s.role)
    if s.user and payload.status:
        s.user.is_active = s.status == "ACTIVE"
    db.commit()
    db.refresh(s)
    return s


@router.delete("/{staff_id}")
def delete_staff(
        staff_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
):
    s = _get_staff(db, user.clinic_id, staff_id)
    if s.user_id == user.id:
        raise HTTPException(status_code=400,
                            detail="You cannot delete your own staff record")
    try:
        payroll_ids = [p.id for p in s.payrolls]
        if payroll_ids:
            db.query(Expense).filter(Expense.payroll_id.in_(payroll_ids)).update(
                {Expense.payroll_id: None}, synchronize_session=False)
        login = s.user
        db.delete(s)
        db.flush()
        if login:
            db.delete(login)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"message": "Staff deleted successfully"}


@router.post("/{staff_id}/create-login", status_code=201)
def create_staff_login(
        staff_id: int,
        payload: StaffLoginIn,
        db: Session = Depends(get_db),
        user: User = Depends(owner_user),
) -> Dict[str, Any]:
    s = _get_staff(db, user.clinic_id, staff_id)
    if s.user_id:
        raise HTTPException(status_code=400, detail="Staff already has a login")
    try:
        u = _create_login(db, s, payload.password)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"message": "Login created", "user_id": u.id, "email": u.email,
            "role": u.role}
