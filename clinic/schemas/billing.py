# FILE: clinic/schemas/billing.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

ItemType = Literal["CONSULTATION", "MEDICINE", "THERAPY", "PROCEDURE", "OTHER"]
PayMethod = Literal["CASH", "CARD", "UPI", "BANK_TRANSFER", "CHEQUE", "OTHER"]


class PatientMiniOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: Optional[str] = None
    full_name: str
    phone_number: Optional[str] = None


# ---------- Bills ----------


class BillItemIn(BaseModel):
    item_type: ItemType = "OTHER"
    item_name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    reference_id: Optional[int] = None
    quantity: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=2)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    tax_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class BillCreate(BaseModel):
    patient_id: int
    items: List[BillItemIn]
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    prescription_id: Optional[int] = None
    appointment_id: Optional[int] = None
    notes: Optional[str] = None
    status: Literal["DRAFT", "PENDING"] = "DRAFT"

    @field_validator("items")
    @classmethod
    def _items_required(cls, v: List[BillItemIn]) -> List[BillItemIn]:
        if not v:
            raise ValueError("Bill items are required")
        return v


class BillUpdate(BaseModel):
    items: Optional[List[BillItemIn]] = None
    discount_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    notes: Optional[str] = None
    # PAID / PARTIAL come from payments, CANCELLED from the cancel route
    status: Optional[Literal["DRAFT", "PENDING", "OVERDUE"]] = None
    finalize: bool = False

    @field_validator("items")
    @classmethod
    def _items_not_empty(cls, v: Optional[List[BillItemIn]]):
        if v is not None and not v:
            raise ValueError("Bill items are required")
        return v


class BillItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_type: str
    item_name: str
    description: Optional[str] = None
    reference_id: Optional[int] = None
    quantity: Decimal
    unit_price: Decimal
    tax_percentage: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payment_number: str
    bill_id: int
    patient_id: int
    amount: Decimal
    payment_method: str
    transaction_id: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    payment_status: str
    payment_date: datetime
    received_by: Optional[int] = None


class BillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bill_number: str
    patient_id: int
    prescription_id: Optional[int] = None
    appointment_id: Optional[int] = None
    subtotal: Decimal
    header_discount: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: str
    notes: Optional[str] = None
    billed_by: Optional[int] = None
    finalized_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientMiniOut] = None
    items: List[BillItemOut] = []


class BillDetailOut(BillOut):
    payments: List[PaymentOut] = []


class BillPaymentResult(BaseModel):
    payment: PaymentOut
    bill: BillOut


# ---------- Payments ----------


class PaymentCreate(BaseModel):
    bill_id: int
    amount: Decimal = Field(decimal_places=2)
    payment_method: PayMethod = "CASH"
    transaction_id: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None


# ---------- Ledger ----------


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    transaction_date: datetime
    transaction_type: str
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    debit: Decimal
    credit: Decimal
    balance: Decimal
    description: Optional[str] = None


# ---------- Expenses / quick income ----------


class ExpenseCreate(BaseModel):
    category: str = Field(min_length=1, max_length=40)
    subcategory: Optional[str] = None
    description: Optional[str] = None
    amount: Decimal = Field(gt=0, decimal_places=2)
    expense_date: date
    vendor_name: Optional[str] = None
    payment_method: Optional[PayMethod] = None
    payment_status: Literal["PAID", "PENDING"] = "PAID"
    receipt_url: Optional[str] = None


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    expense_number: str
    category: str
    subcategory: Optional[str] = None
    description: Optional[str] = None
    amount: Decimal
    expense_date: date
    vendor_name: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str
    receipt_url: Optional[str] = None
    payroll_id: Optional[int] = None
    added_by: Optional[int] = None
    approved_by: Optional[int] = None
    created_at: datetime


class QuickIncomeCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    received_date: date
    payment_method: PayMethod = "UPI"
    category: str = "DIRECT_PAYMENT"
    patient_name: Optional[str] = None
    patient_id: Optional[int] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class QuickIncomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    income_number: str
    amount: Decimal
    payment_method: str
    category: str
    patient_name: Optional[str] = None
    patient_id: Optional[int] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    received_date: date
    recorded_by: Optional[int] = None
    created_at: datetime


# ---------- Portal payment confirmations ----------


class PaymentConfirmationIn(BaseModel):
    name: str = Field(min_length=1, max_length=191)
    email: EmailStr
    phone: str = Field(min_length=5, max_length=30)
    amount: Decimal = Field(gt=0, decimal_places=2)
    bill_id: Optional[int] = None
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class PaymentConfirmationReviewIn(BaseModel):
    status: Literal["VERIFIED", "REJECTED"]


class PaymentConfirmationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    confirmation_number: str
    patient_id: int
    bill_id: Optional[int] = None
    patient_name: str
    patient_email: str
    patient_phone: str
    amount: Decimal
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: datetime
