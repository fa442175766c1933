# FILE: clinic/schemas/diet.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

Constitution = Literal["VATA", "PITTA", "KAPHA", "TRIDOSHA", "VATA_PITTA",
                       "PITTA_KAPHA", "VATA_KAPHA"]
Season = Literal["SPRING", "SUMMER", "MONSOON", "AUTUMN", "WINTER"]


class DietPlanCreate(BaseModel):
    patient_id: int
    constitution: Constitution
    season: Optional[Season] = None
    morning_meal: Optional[List[str]] = None
    lunch_meal: Optional[List[str]] = None
    evening_meal: Optional[List[str]] = None
    guidelines: Optional[str] = None
    restrictions: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class DietPlanUpdate(BaseModel):
    season: Optional[Season] = None
    morning_meal: Optional[List[str]] = None
    lunch_meal: Optional[List[str]] = None
    evening_meal: Optional[List[str]] = None
    guidelines: Optional[str] = None
    restrictions: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    status: Optional[Literal["ACTIVE", "COMPLETED", "CANCELLED"]] = None


class DietPatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone_number: str
    constitution_type: Optional[str] = None


class DietPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_number: str
    patient_id: int
    doctor_id: Optional[int] = None
    constitution: str
    season: str
    morning_meal: Optional[List[str]] = None
    lunch_meal: Optional[List[str]] = None
    evening_meal: Optional[List[str]] = None
    guidelines: Optional[str] = None
    restrictions: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    status: str
    created_at: datetime
    patient: Optional[DietPatientOut] = None
