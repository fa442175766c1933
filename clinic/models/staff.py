import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class LeaveType(str, enum.Enum):
    SICK = "SICK"
    CASUAL = "CASUAL"
    EARNED = "EARNED"
    UNPAID = "UNPAID"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    LEAVE = "LEAVE"


class Staff(Base):
    __tablename__ = "staff"
    __table_args__ = (
        UniqueConstraint("clinic_id", "email", name="uq_staff_email"),
        UniqueConstraint("clinic_id", "employee_id", name="uq_staff_empid"),
    )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    employee_id = Column(String(20), nullable=False)

    first_name = Column(String(80), nullable=False)
    last_name = Column(String(80), nullable=False)
    email = Column(String(191), nullable=False)
    phone = Column(String(30), nullable=False)
    # DOCTOR | RECEPTIONIST | THERAPIST | PHARMACIST | LAB_TECHNICIAN | NURSE | MANAGER | OTHER
    role = Column(String(30), nullable=False)
    department = Column(String(80), nullable=True)
    qualification = Column(String(191), nullable=True)
    joining_date = Column(Date, nullable=False)
    address = Column(Text, nullable=True)

    basic_salary = Column(Numeric(12, 2), nullable=False)
    # ACTIVE | ON_LEAVE | INACTIVE | TERMINATED
    status = Column(String(16), default="ACTIVE", nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="staff")
    attendance = relationship("Attendance",
                              back_populates="staff",
                              cascade="all, delete-orphan")
    leaves = relationship("Leave",
                          back_populates="staff",
                          cascade="all, delete-orphan")
    leave_balances = relationship("LeaveBalance",
                                  back_populates="staff",
                                  cascade="all, delete-orphan")
    payrolls = relationship("Payroll",
                            back_populates="staff",
                            cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("staff_id",
                                       "date",
                                       name="uq_attendance_day"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    staff_id = Column(Integer,
                      ForeignKey("staff.id", ondelete="CASCADE"),
                      nullable=False,
                      index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(16), nullable=False)
    clock_in = Column(String(5), nullable=True)  # HH:MM
    clock_out = Column(String(5), nullable=True)
    total_hours = Column(Numeric(5, 2), nullable=True)
    notes = Column(String(500), nullable=True)

    staff = relationship("Staff", back_populates="attendance")


class Leave(Base):
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    staff_id = Column(Integer,
                      ForeignKey("staff.id", ondelete="CASCADE"),
                      nullable=False,
                      index=True)
    leave_type = Column(String(10), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(10),
                    default=LeaveStatus.PENDING.value,
                    nullable=False)

    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    staff = relationship("Staff", back_populates="leaves")


class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (UniqueConstraint("staff_id",
                                       "year",
                                       name="uq_leave_balance_year"), )

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer,
                      ForeignKey("staff.id", ondelete="CASCADE"),
                      nullable=False)
    year = Column(Integer, nullable=False)

    sick_total = Column(Integer, default=12, nullable=False)
    sick_used = Column(Integer, default=0, nullable=False)
    casual_total = Column(Integer, default=12, nullable=False)
    casual_used = Column(Integer, default=0, nullable=False)
    earned_total = Column(Integer, default=15, nullable=False)
    earned_used = Column(Integer, default=0, nullable=False)
    unpaid_used = Column(Integer, default=0, nullable=False)

    staff = relationship("Staff", back_populates="leave_balances")


class Payroll(Base):
    __tablename__ = "payrolls"
    __table_args__ = (UniqueConstraint("staff_id",
                                       "month",
                                       "year",
                                       name="uq_payroll_period"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    payroll_number = Column(String(32), nullable=False)
    staff_id = Column(Integer,
                      ForeignKey("staff.id", ondelete="CASCADE"),
                      nullable=False,
                      index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    basic_salary = Column(Numeric(12, 2), nullable=False)
    allowances = Column(Numeric(12, 2), default=0, nullable=False)
    hra = Column(Numeric(12, 2), default=0, nullable=False)
    other_earnings = Column(Numeric(12, 2), default=0, nullable=False)
    gross_salary = Column(Numeric(12, 2), nullable=False)

    working_days = Column(Integer, default=30, nullable=False)
    days_present = Column(Integer, default=0, nullable=False)
    days_absent = Column(Integer, default=0, nullable=False)
    absence_deduction = Column(Numeric(12, 2), default=0, nullable=False)
    other_deductions = Column(Numeric(12, 2), default=0, nullable=False)
    net_salary = Column(Numeric(12, 2), nullable=False)

    # PENDING | PAID
    status = Column(String(10), default="PENDING", nullable=False)
    payment_method = Column(String(20), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    staff = relationship("Staff", back_populates="payrolls")
