# FILE: clinic/schemas/staff.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

StaffRole = Literal["DOCTOR", "RECEPTIONIST", "THERAPIST", "PHARMACIST",
                    "LAB_TECHNICIAN", "NURSE", "MANAGER", "OTHER"]
StaffStatus = Literal["ACTIVE", "ON_LEAVE", "INACTIVE", "TERMINATED"]
AttendanceStatusIn = Literal["PRESENT", "ABSENT", "HALF_DAY", "LEAVE"]
Day = date
HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class StaffCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    email: EmailStr
    phone: str = Field(min_length=5, max_length=30)
    role: StaffRole
    department: Optional[str] = None
    qualification: Optional[str] = None
    joining_date: date
    address: Optional[str] = None
    basic_salary: Decimal = Field(ge=0)
    can_login: bool = False
    password: Optional[str] = None

    @model_validator(mode="after")
    def _login_password(self):
        if self.can_login and len(self.password or "") < 6:
            raise ValueError("Password must be at least 6 characters")
        return self


class StaffUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    phone: Optional[str] = Field(default=None, min_length=5, max_length=30)
    role: Optional[StaffRole] = None
    department: Optional[str] = None
    qualification: Optional[str] = None
    address: Optional[str] = None
    basic_salary: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[StaffStatus] = None


class StaffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    role: str
    department: Optional[str] = None
    qualification: Optional[str] = None
    joining_date: date
    address: Optional[str] = None
    basic_salary: Decimal
    status: str
    user_id: Optional[int] = None
    created_at: datetime


class AttendanceIn(BaseModel):
    staff_id: int
    date: Day
    status: AttendanceStatusIn = "PRESENT"
    clock_in: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    clock_out: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=500)


class AttendanceBulkIn(BaseModel):
    records: List[AttendanceIn] = Field(min_length=1)


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int
    date: Day
    status: str
    clock_in: Optional[str] = None
    clock_out: Optional[str] = None
    total_hours: Optional[Decimal] = None
    notes: Optional[str] = None


class LeaveCreate(BaseModel):
    staff_id: int
    leave_type: Literal["SICK", "CASUAL", "EARNED", "UNPAID"]
    start_date: date
    end_date: date
    reason: Optional[str] = None


class MyLeaveCreate(BaseModel):
    # EMERGENCY is booked as SICK and approved on submission
    leave_type: Literal["SICK", "CASUAL", "EARNED", "UNPAID", "EMERGENCY"]
    start_date: date
    end_date: date
    reason: Optional[str] = Field(default=None, max_length=500)


class LeaveReviewIn(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=500)


class LeaveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int
    leave_type: str
    start_date: date
    end_date: date
    total_days: int
    reason: Optional[str] = None
    status: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime


class PayrollCreate(BaseModel):
    staff_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    allowances: Decimal = Field(default=Decimal("0"), ge=0)
    hra: Decimal = Field(default=Decimal("0"), ge=0)
    other_earnings: Decimal = Field(default=Decimal("0"), ge=0)
    working_days: int = Field(default=30, gt=0, le=31)
    days_present: Optional[int] = Field(default=None, ge=0)
    days_absent: Optional[int] = Field(default=None, ge=0)
    other_deductions: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class PayrollPayIn(BaseModel):
    payment_method: str = "BANK_TRANSFER"
    paid_at: Optional[datetime] = None


class PayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payroll_number: str
    staff_id: int
    month: int
    year: int
    basic_salary: Decimal
    allowances: Decimal
    hra: Decimal
    other_earnings: Decimal
    gross_salary: Decimal
    working_days: int
    days_present: int
    days_absent: int
    absence_deduction: Decimal
    other_deductions: Decimal
    net_salary: Decimal
    status: str
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None


class StaffLoginIn(BaseModel):
    password: str = Field(min_length=6)
