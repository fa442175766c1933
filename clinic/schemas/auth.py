from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PatientLoginIn(BaseModel):
    login_method: Literal["email", "phone"] = "email"
    email: Optional[str] = None
    phone: Optional[str] = None
    patient_id: Optional[str] = None  # "P000001"
    password: Optional[str] = None


class RegisterIn(BaseModel):
    full_name: str = Field(min_length=1, max_length=191)
    email: EmailStr
    password: str
    phone_number: str = Field(min_length=5, max_length=30)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    clinic_id: Optional[int] = None


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    clinic_id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    role: Literal["OWNER", "DOCTOR", "STAFF"] = "STAFF"


class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Literal["OWNER", "DOCTOR", "STAFF"]] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=8)
