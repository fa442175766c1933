# FILE: clinic/models/billing.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    Date,
    DateTime,
    Index,
    ForeignKey,
    UniqueConstraint,
    Text,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class BillStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"


class BillItemType(str, enum.Enum):
    CONSULTATION = "CONSULTATION"
    MEDICINE = "MEDICINE"
    THERAPY = "THERAPY"
    PROCEDURE = "PROCEDURE"
    OTHER = "OTHER"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


class LedgerTxnType(str, enum.Enum):
    BILL = "BILL"
    PAYMENT = "PAYMENT"
    ADJUSTMENT = "ADJUSTMENT"


class NumberDocType(str, enum.Enum):
    BILL = "BILL"
    PAYMENT = "PAYMENT"
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    PAYROLL = "PAYROLL"
    THERAPY_PLAN = "THERAPY_PLAN"
    DIET_PLAN = "DIET_PLAN"
    PATIENT = "PATIENT"
    PRESCRIPTION = "PRESCRIPTION"
    EMPLOYEE = "EMPLOYEE"
    CONFIRMATION = "CONFIRMATION"


class NumberResetPeriod(str, enum.Enum):
    NONE = "NONE"
    YEAR = "YEAR"
    MONTH = "MONTH"


class Bill(Base):
    """
    Patient invoice.

    Totals are always derived from the item set:
      total   = subtotal + tax - discount
      balance = total - paid
    paid/balance only move through payments (and item edits on a part-paid bill).
    """

    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint("clinic_id", "bill_number", name="uq_bill_number"),
        Index("ix_bills_clinic_status", "clinic_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    bill_number = Column(String(32), nullable=False, index=True)

    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    prescription_id = Column(Integer,
                             ForeignKey("prescriptions.id"),
                             nullable=True)
    appointment_id = Column(Integer,
                            ForeignKey("appointments.id"),
                            nullable=True)

    # sum(qty * unit_price) over items
    subtotal = Column(Numeric(12, 2), default=0, nullable=False)
    # header discount as entered: a flat amount, else a percentage of subtotal
    header_discount = Column(Numeric(12, 2), default=0, nullable=False)
    discount_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    # line discounts + header discount
    discount_amount = Column(Numeric(12, 2), default=0, nullable=False)
    tax_amount = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)
    paid_amount = Column(Numeric(12, 2), default=0, nullable=False)
    balance_amount = Column(Numeric(12, 2), default=0, nullable=False)

    status = Column(String(16), default=BillStatus.DRAFT.value, nullable=False)
    notes = Column(Text, nullable=True)

    billed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    finalized_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    patient = relationship("Patient", back_populates="bills")
    items = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.id",
    )
    payments = relationship(
        "Payment",
        back_populates="bill",
        order_by="Payment.id",
    )


class BillItem(Base):
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer,
                     ForeignKey("bills.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)

    item_type = Column(String(20),
                       default=BillItemType.OTHER.value,
                       nullable=False)
    item_name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    # medicine / therapy plan the line came from, when known
    reference_id = Column(Integer, nullable=True)

    quantity = Column(Numeric(12, 2), default=1, nullable=False)
    unit_price = Column(Numeric(12, 2), default=0, nullable=False)
    tax_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    tax_amount = Column(Numeric(12, 2), default=0, nullable=False)
    discount_amount = Column(Numeric(12, 2), default=0, nullable=False)
    # qty * unit_price + tax - discount
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)

    bill = relationship("Bill", back_populates="items")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "payment_number",
                                       name="uq_payment_number"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    payment_number = Column(String(32), nullable=False)

    bill_id = Column(Integer,
                     ForeignKey("bills.id"),
                     nullable=False,
                     index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20),
                            default=PaymentMethod.CASH.value,
                            nullable=False)
    transaction_id = Column(String(100), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    payment_status = Column(String(16), default="COMPLETED", nullable=False)

    payment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    received_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    bill = relationship("Bill", back_populates="payments")
    patient = relationship("Patient")


class PatientLedger(Base):
    """
    Append-only running balance per patient.

    balance = previous.balance + debit - credit, where previous is the latest
    row for the same patient by (transaction_date, id). Rows are never updated.
    """

    __tablename__ = "patient_ledger"
    __table_args__ = (Index("ix_ledger_patient_txn", "patient_id",
                            "transaction_date", "id"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)

    transaction_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    # BILL | PAYMENT | ADJUSTMENT
    transaction_type = Column(String(16), nullable=False)
    reference_id = Column(Integer, nullable=True)
    # BILL | PAYMENT | BILL_ADJUSTED | BILL_CANCELLED
    reference_type = Column(String(32), nullable=True)

    debit = Column(Numeric(12, 2), default=0, nullable=False)
    credit = Column(Numeric(12, 2), default=0, nullable=False)
    balance = Column(Numeric(12, 2), default=0, nullable=False)
    description = Column(String(500), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "expense_number",
                                       name="uq_expense_number"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    expense_number = Column(String(40), nullable=False)

    # RENT | SALARY | UTILITIES | SUPPLIES | MEDICINES | MARKETING | OTHER ...
    category = Column(String(40), nullable=False, index=True)
    subcategory = Column(String(80), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False, index=True)

    vendor_name = Column(String(191), nullable=True)
    payment_method = Column(String(20), nullable=True)
    # PAID | PENDING
    payment_status = Column(String(16), default="PAID", nullable=False)
    receipt_url = Column(String(500), nullable=True)

    payroll_id = Column(Integer, ForeignKey("payrolls.id"), nullable=True)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class QuickIncome(Base):
    """Money received outside a bill (walk-in UPI transfers, donations...)."""
    __tablename__ = "quick_income"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "income_number",
                                       name="uq_income_number"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    income_number = Column(String(32), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), default="UPI", nullable=False)
    category = Column(String(40), default="DIRECT_PAYMENT", nullable=False)
    patient_name = Column(String(191), nullable=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    received_date = Column(Date, nullable=False, index=True)

    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PaymentConfirmation(Base):
    """
    A patient's claim, sent from the portal, that they paid outside the
    clinic (bank transfer, UPI). Nothing is booked until staff verify it.
    """
    __tablename__ = "payment_confirmations"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "confirmation_number",
                                       name="uq_confirmation_number"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    confirmation_number = Column(String(32), nullable=False)

    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True)

    patient_name = Column(String(191), nullable=False)
    patient_email = Column(String(191), nullable=False)
    patient_phone = Column(String(30), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    # PENDING_VERIFICATION | VERIFIED | REJECTED
    status = Column(String(24), default="PENDING_VERIFICATION", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    patient = relationship("Patient")


class NumberSeries(Base):
    """Per-clinic document counters; rows are locked while incrementing."""
    __tablename__ = "number_series"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "doc_type",
                                       "prefix",
                                       name="uq_number_series"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    doc_type = Column(String(20), nullable=False)
    prefix = Column(String(32), nullable=False, default="")
    reset_period = Column(String(8),
                          nullable=False,
                          default=NumberResetPeriod.MONTH.value)
    padding = Column(Integer, nullable=False, default=4)
    next_number = Column(Integer, nullable=False, default=1)
    last_period_key = Column(String(10), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
