# FILE: clinic/schemas/appointment.py
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

StaffStatus = Literal["SCHEDULED", "CONFIRMED", "COMPLETED", "CANCELLED",
                      "NO_SHOW"]


class AppointmentCreate(BaseModel):
    patient_id: Optional[int] = None
    guest_name: Optional[str] = Field(default=None, max_length=191)
    guest_phone: Optional[str] = Field(default=None, max_length=30)
    appointment_date: date
    appointment_time: str = Field(min_length=1, max_length=20)
    duration: int = Field(default=30, gt=0, le=480)
    reason: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _patient_or_guest(self):
        if not self.patient_id and not (self.guest_name or "").strip():
            raise ValueError("Either patient_id or guest_name is required")
        return self


class AppointmentStatusIn(BaseModel):
    status: StaffStatus


class AppointmentRespondIn(BaseModel):
    """Clinic answer to a portal request."""
    action: Literal["approve", "decline", "propose"]
    alternative_date: Optional[date] = None
    alternative_time: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None


class AppointmentRequestIn(BaseModel):
    appointment_date: date
    appointment_time: str = Field(min_length=1, max_length=20)
    reason: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None


class PatientRespondIn(BaseModel):
    action: Literal["accept", "decline"]


class AppointmentPatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: str
    full_name: str
    phone_number: str


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: Optional[int] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    appointment_date: date
    appointment_time: str
    duration: int
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: str
    alternative_date: Optional[date] = None
    alternative_time: Optional[str] = None
    created_at: datetime
    patient: Optional[AppointmentPatientOut] = None
