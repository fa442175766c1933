# clinic/services/patient_accounts.py
from __future__ import annotations

import re
from typing import Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.core.security import hash_password
from clinic.models.billing import NumberDocType
from clinic.models.patient import Patient
from clinic.models.user import User, UserRole
from clinic.services.numbers import next_sequence

_PATIENT_ID_RE = re.compile(r"^P(\d{1,9})$", re.IGNORECASE)


def digits(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def parse_patient_id(value: Optional[str]) -> Optional[int]:
    """'P000001' -> 1; anything else -> None."""
    m = _PATIENT_ID_RE.match((value or "").strip())
    return int(m.group(1)) if m else None


def default_patient_password(phone: Optional[str], registration_id: str) -> str:
    return f"{digits(phone)[-4:]}{registration_id}"


def password_hint(phone: Optional[str], registration_id: str) -> str:
    return f"{digits(phone)[-4:]} + {registration_id}"


def next_registration_no(db: Session, clinic_id: int) -> int:
    return next_sequence(db,
                         clinic_id=clinic_id,
                         doc_type=NumberDocType.PATIENT,
                         padding=6)


def create_patient_login(db: Session, patient: Patient) -> Tuple[User, str]:
    """
    Portal user for an existing patient, password = last 4 phone digits +
    registration id. Flushes only; the caller commits.
    """
    if patient.user_id:
        raise HTTPException(status_code=400,
                            detail="Patient already has a login")
    if not patient.email:
        raise HTTPException(status_code=400,
                            detail="Patient email is required to create a login")
    email = patient.email.strip().lower()
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=400,
                            detail="Email already registered")

    password = default_patient_password(patient.phone_number,
                                        patient.registration_id)
    user = User(
        clinic_id=patient.clinic_id,
        name=patient.full_name,
        email=email,
        phone=patient.phone_number,
        password_hash=hash_password(password),
        role=UserRole.PATIENT.value,
        is_active=True,
    )
    db.add(user)
    db.flush()
    patient.user_id = user.id
    return user, password
