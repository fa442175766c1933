# clinic/models/__init__.py
from .clinic import Clinic
from .user import User, UserRole
from .patient import Patient, format_patient_id
from .appointment import Appointment, AppointmentStatus
from .billing import (
    Bill,
    BillItem,
    BillStatus,
    Payment,
    PatientLedger,
    Expense,
    QuickIncome,
    PaymentConfirmation,
    NumberSeries,
)
from .pharmacy import Category, Medicine, StockTransaction
from .prescription import Prescription, PrescriptionMedicine
from .therapy import TherapyPlan, TherapySession
from .diet import DietPlan
from .staff import Staff, Attendance, Leave, LeaveBalance, Payroll
from .social import SocialAccount, SocialPost, PlatformPost
from .error_log import ErrorLog

__all__ = [
    "Clinic",
    "User",
    "UserRole",
    "Patient",
    "format_patient_id",
    "Appointment",
    "AppointmentStatus",
    "Bill",
    "BillItem",
    "BillStatus",
    "Payment",
    "PatientLedger",
    "Expense",
    "QuickIncome",
    "PaymentConfirmation",
    "NumberSeries",
    "Category",
    "Medicine",
    "StockTransaction",
    "Prescription",
    "PrescriptionMedicine",
    "TherapyPlan",
    "TherapySession",
    "DietPlan",
    "Staff",
    "Attendance",
    "Leave",
    "LeaveBalance",
    "Payroll",
    "SocialAccount",
    "SocialPost",
    "PlatformPost",
    "ErrorLog",
]
