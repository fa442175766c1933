# clinic/api/routes_patients.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from clinic.api.deps import clinic_user, get_db
from clinic.core.security import hash_password
from clinic.models.billing import Bill
from clinic.models.patient import Patient
from clinic.models.user import User
from clinic.schemas.patient import PatientCreate, PatientOut, PatientUpdate
from clinic.services.patient_accounts import (
    create_patient_login,
    default_patient_password,
    next_registration_no,
    parse_patient_id,
    password_hint,
)
from clinic.utils.dates import compute_age

logger = logging.getLogger(__name__)

router = APIRouter()


def get_patient(db: Session, clinic_id: int, patient_id: int) -> Patient:
    p = db.query(Patient).filter(Patient.id == patient_id,
                                 Patient.clinic_id == clinic_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Patient not found")
    return p


def _phone_taken(db: Session, clinic_id: int, phone: str,
                 exclude_id: Optional[int] = None) -> bool:
    q = db.query(Patient.id).filter(Patient.clinic_id == clinic_id,
                                    Patient.phone_number == phone)
    if exclude_id:
        q = q.filter(Patient.id != exclude_id)
    return q.first() is not None


@router.get("", response_model=List[PatientOut])
def list_patients(
        search: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    q = db.query(Patient).filter(Patient.clinic_id == user.clinic_id)
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(Patient.full_name.ilike(like), Patient.phone_number.ilike(like),
                Patient.email.ilike(like)))
    return q.order_by(Patient.full_name.asc()).limit(50).all()


@router.get("/search", response_model=List[PatientOut])
def search_patients(
        q: str = Query(""),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    term = (q or "").strip()
    if len(term) < 2:
        return []

    like = f"%{term}%"
    conds = [
        Patient.full_name.ilike(like),
        Patient.phone_number.ilike(like),
        Patient.email.ilike(like),
    ]
    reg_no = int(term) if term.isdigit() else parse_patient_id(term)
    if reg_no is not None:
        conds.append(Patient.registration_no == reg_no)

    return (db.query(Patient).filter(Patient.clinic_id == user.clinic_id,
                                     or_(*conds)).order_by(
                                         Patient.full_name.asc()).limit(10).all())


@router.post("", response_model=PatientOut, status_code=201)
def create_patient(
        payload: PatientCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    if _phone_taken(db, user.clinic_id, payload.phone_number):
        raise HTTPException(status_code=400,
                            detail="A patient with this phone number already exists")

    data = payload.model_dump()
    if data.get("date_of_birth") and data.get("age") is None:
        data["age"] = compute_age(data["date_of_birth"])
    if data.get("email"):
        data["email"] = str(data["email"]).lower()

    p = Patient(clinic_id=user.clinic_id,
                registration_no=next_registration_no(db, user.clinic_id),
                **data)
    db.add(p)
    db.commit()
    db.refresh(p)
    logger.info("patient created clinic=%s %s", user.clinic_id, p.registration_id)
    return p


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient_route(
        patient_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return get_patient(db, user.clinic_id, patient_id)


@router.patch("/{patient_id}", response_model=PatientOut)
def update_patient(
        patient_id: int,
        payload: PatientUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    p = get_patient(db, user.clinic_id, patient_id)
    data = payload.model_dump(exclude_unset=True)

    phone = data.get("phone_number")
    if phone and phone != p.phone_number and _phone_taken(
            db, user.clinic_id, phone, exclude_id=p.id):
        raise HTTPException(
            status_code=400,
            detail="Phone number already registered to another patient")

    if "date_of_birth" in data and "age" not in data:
        data["age"] = compute_age(data["date_of_birth"])
    if data.get("email"):
        data["email"] = str(data["email"]).lower()

    for k, v in data.items():
        setattr(p, k, v)
    db.commit()
    db.refresh(p)
    return p


@router.delete("/{patient_id}")
def delete_patient(
        patient_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    p = get_patient(db, user.clinic_id, patient_id)
    if db.query(Bill.id).filter(Bill.patient_id == p.id).first():
        raise HTTPException(status_code=400,
                            detail="Cannot delete a patient with bills")
    login = p.user
    db.delete(p)
    if login:
        db.delete(login)
    db.commit()
    return {"message": "Patient deleted"}


# ---------------------------------------------------------------------
#  Portal login management
# ---------------------------------------------------------------------


@router.post("/{patient_id}/create-login", status_code=201)
def create_login(
        patient_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    p = get_patient(db, user.clinic_id, patient_id)
    try:
        login, password = create_patient_login(db, p)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {
        "message": "Patient login created",
        "login_info": {
            "email": login.email,
            "patient_id": p.registration_id,
            "default_password": password,
            "password_hint": password_hint(p.phone_number, p.registration_id),
        },
    }


@router.post("/{patient_id}/reset-password")
def reset_password(
        patient_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    p = get_patient(db, user.clinic_id, patient_id)
    if not p.user:
        raise HTTPException(status_code=400,
                            detail="Patient does not have a login")
    password = default_patient_password(p.phone_number, p.registration_id)
    p.user.password_hash = hash_password(password)
    db.commit()
    return {
        "message": "Password reset to default",
        "default_password": password,
        "password_hint": password_hint(p.phone_number, p.registration_id),
    }
