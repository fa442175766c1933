# FILE: clinic/schemas/patient.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class PatientBase(BaseModel):
    email: Optional[EmailStr] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    constitution_type: Optional[str] = None
    medical_history: Optional[str] = None
    allergies: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        # the UI posts "" for an empty field
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PatientCreate(PatientBase):
    full_name: str = Field(min_length=1, max_length=191)
    phone_number: str = Field(min_length=5, max_length=30)


class PatientUpdate(PatientBase):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=191)
    phone_number: Optional[str] = Field(default=None, min_length=5, max_length=30)


class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_no: int
    registration_id: str
    full_name: str
    phone_number: str
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    constitution_type: Optional[str] = None
    medical_history: Optional[str] = None
    allergies: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
