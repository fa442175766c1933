# FILE: clinic/schemas/therapy.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Frequency = Literal["DAILY", "ALTERNATE_DAYS", "WEEKLY"]
PlanStatus = Literal["ACTIVE", "COMPLETED", "CANCELLED", "ON_HOLD"]
SessionStatus = Literal["SCHEDULED", "COMPLETED", "MISSED", "CANCELLED",
                        "RESCHEDULED"]


class TherapyPlanCreate(BaseModel):
    patient_id: int
    therapy_types: List[str]
    start_date: date
    duration: int = Field(gt=0, le=365)
    frequency: Frequency
    session_times: Optional[List[str]] = None
    price_per_session: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None

    @field_validator("therapy_types")
    @classmethod
    def _types_required(cls, v: List[str]):
        cleaned = [t.strip() for t in v if t and t.strip()]
        if not cleaned:
            raise ValueError("At least one therapy type must be selected")
        return cleaned


class TherapyPlanUpdate(BaseModel):
    status: Optional[PlanStatus] = None
    bill_id: Optional[int] = None
    notes: Optional[str] = None


class TherapySessionUpdate(BaseModel):
    status: Optional[SessionStatus] = None
    completed_at: Optional[datetime] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    observations: Optional[str] = None
    vitals: Optional[Dict[str, Any]] = None
    patient_feedback: Optional[str] = None
    discomfort: Optional[str] = None


class TherapySessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    session_number: int
    therapy_type: str
    scheduled_date: date
    scheduled_time: str
    status: str
    duration_minutes: Optional[int] = None
    observations: Optional[str] = None
    vitals: Optional[Dict[str, Any]] = None
    patient_feedback: Optional[str] = None
    discomfort: Optional[str] = None
    rescheduled_from: Optional[date] = None
    rescheduled_to: Optional[date] = None
    completed_at: Optional[datetime] = None


class TherapyPatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone_number: str
    age: Optional[int] = None
    gender: Optional[str] = None
    constitution_type: Optional[str] = None


class TherapyPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_number: str
    patient_id: int
    doctor_id: Optional[int] = None
    therapy_types: List[str]
    start_date: date
    end_date: date
    duration: int
    frequency: str
    session_times: Optional[List[str]] = None
    total_sessions: int
    completed_sessions: int
    price_per_session: Decimal
    total_amount: Decimal
    status: str
    bill_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    patient: Optional[TherapyPatientOut] = None
