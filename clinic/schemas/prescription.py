# FILE: clinic/schemas/prescription.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

RxStatus = Literal["DRAFT", "FINALIZED", "DISPENSED", "CANCELLED"]


class PrescriptionMedicineIn(BaseModel):
    medicine_id: int
    dosage_morning: Optional[str] = None
    dosage_afternoon: Optional[str] = None
    dosage_evening: Optional[str] = None
    dosage_night: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    duration_unit: str = "DAYS"
    timing: str = "After Food"
    quantity_needed: int = Field(default=1, gt=0)
    unit_type: str = "Strip"
    instructions: Optional[str] = Field(default=None, max_length=500)
    order_index: Optional[int] = None


class PrescriptionCreate(BaseModel):
    patient_id: int
    chief_complaints: str
    symptoms: Optional[str] = None
    diagnosis: Optional[str] = None
    vitals: Optional[Dict[str, Any]] = None
    instructions: Optional[str] = None
    dietary_advice: Optional[str] = None
    follow_up_date: Optional[date] = None
    medicines: List[PrescriptionMedicineIn] = []

    @field_validator("chief_complaints")
    @classmethod
    def _complaints_required(cls, v: str):
        if not (v or "").strip():
            raise ValueError("Patient and chief complaints are required")
        return v.strip()


class PrescriptionUpdate(BaseModel):
    chief_complaints: Optional[str] = None
    symptoms: Optional[str] = None
    diagnosis: Optional[str] = None
    vitals: Optional[Dict[str, Any]] = None
    instructions: Optional[str] = None
    dietary_advice: Optional[str] = None
    follow_up_date: Optional[date] = None
    status: Optional[Literal["DRAFT", "FINALIZED", "CANCELLED"]] = None
    medicines: Optional[List[PrescriptionMedicineIn]] = None


class MedicineMiniOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: Optional[str] = None
    strength: Optional[str] = None
    current_stock: int


class PrescriptionMedicineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medicine_id: int
    dosage_morning: Optional[str] = None
    dosage_afternoon: Optional[str] = None
    dosage_evening: Optional[str] = None
    dosage_night: Optional[str] = None
    duration: Optional[int] = None
    duration_unit: str
    timing: str
    quantity_needed: int
    unit_type: str
    instructions: Optional[str] = None
    order_index: int
    medicine: Optional[MedicineMiniOut] = None


class RxPatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: str
    full_name: str
    phone_number: str
    age: Optional[int] = None
    gender: Optional[str] = None


class PrescriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prescription_no: int
    patient_id: int
    doctor_id: Optional[int] = None
    chief_complaints: str
    symptoms: Optional[str] = None
    diagnosis: Optional[str] = None
    vitals: Optional[Dict[str, Any]] = None
    instructions: Optional[str] = None
    dietary_advice: Optional[str] = None
    follow_up_date: Optional[date] = None
    status: str
    dispensed_at: Optional[datetime] = None
    created_at: datetime
    patient: Optional[RxPatientOut] = None
    medicines: List[PrescriptionMedicineOut] = []
