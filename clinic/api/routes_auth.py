# clinic/api/routes_auth.py
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from clinic.api.deps import current_user, get_db
from clinic.core.config import settings
from clinic.core.security import hash_password, verify_password
from clinic.models.clinic import Clinic
from clinic.models.patient import Patient
from clinic.models.user import User, UserRole
from clinic.schemas.auth import (
    ChangePasswordIn,
    LoginIn,
    PatientLoginIn,
    RegisterIn,
    UserOut,
)
from clinic.services.patient_accounts import digits, next_registration_no, parse_patient_id
from clinic.utils.dates import compute_age
from clinic.utils.jwt import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD = 8


def _patient_id_for(db: Session, user: User) -> Optional[int]:
    if user.role != UserRole.PATIENT.value:
        return None
    row = db.query(Patient.id).filter(Patient.user_id == user.id).first()
    return row[0] if row else None


def _user_payload(db: Session, user: User) -> Dict[str, Any]:
    data = UserOut.model_validate(user).model_dump(mode="json")
    data["patient_id"] = _patient_id_for(db, user)
    return data


def _issue_session(db: Session, user: User, response: Response) -> Dict[str, Any]:
    patient_id = _patient_id_for(db, user)
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        clinic_id=user.clinic_id,
        patient_id=patient_id,
    )
    user.last_login_at = datetime.utcnow()
    db.commit()

    # NOTE: set AUTH_COOKIE_SECURE=true when running behind HTTPS.
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return {
        "user": _user_payload(db, user),
        "token": token,
        "redirect_to": "/patient-portal"
        if user.role == UserRole.PATIENT.value else "/dashboard",
    }


def _check_active(user: User) -> None:
    if not user.is_active:
        raise HTTPException(status_code=403,
                            detail="Account is deactivated. Contact the clinic.")


# ---------------------------------------------------------------------
#  Login / logout
# ---------------------------------------------------------------------


@router.post("/login")
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400,
                            detail="Email and password are required")

    user = db.query(User).filter(
        User.email == payload.email.strip().lower()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("failed login for %s", payload.email)
        raise HTTPException(status_code=401,
                            detail="Invalid email or password")
    _check_active(user)
    return _issue_session(db, user, response)


@router.post("/patient-login")
def patient_login(payload: PatientLoginIn,
                  response: Response,
                  db: Session = Depends(get_db)):
    """
    Portal login by email, or by phone + patient id (P000001) + password.
    """
    if not payload.password:
        raise HTTPException(status_code=400, detail="Password is required")

    user: Optional[User] = None
    if payload.login_method == "email":
        if not payload.email:
            raise HTTPException(status_code=400, detail="Email is required")
        user = db.query(User).filter(
            User.email == payload.email.strip().lower()).first()
    else:
        if not payload.phone or not payload.patient_id:
            raise HTTPException(
                status_code=400,
                detail="Phone number and patient ID are required")
        reg_no = parse_patient_id(payload.patient_id)
        phone10 = digits(payload.phone)[-10:]
        if reg_no is not None and phone10:
            candidates = db.query(Patient).filter(
                Patient.registration_no == reg_no,
                Patient.user_id.isnot(None),
            ).all()
            for p in candidates:
                if digits(p.phone_number)[-10:] == phone10:
                    user = p.user
                    break

    if (not user or user.role != UserRole.PATIENT.value
            or not verify_password(payload.password, user.password_hash)):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    _check_active(user)
    return _issue_session(db, user, response)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME, path="/")
    return {"message": "Logged out"}


# ---------------------------------------------------------------------
#  Patient self-registration
# ---------------------------------------------------------------------


@router.post("/register", status_code=201)
def register(payload: RegisterIn,
             response: Response,
             db: Session = Depends(get_db)):
    if len(payload.password) < MIN_PASSWORD:
        raise HTTPException(
            status_code=400,
            detail="Password must be at least 8 characters long")

    email = str(payload.email).strip().lower()
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    if payload.clinic_id:
        clinic = db.get(Clinic, payload.clinic_id)
    else:
        clinic = db.query(Clinic).order_by(Clinic.id.asc()).first()
    if not clinic:
        raise HTTPException(status_code=400, detail="Clinic not configured")

    try:
        user = User(
            clinic_id=clinic.id,
            name=payload.full_name.strip(),
            email=email,
            phone=payload.phone_number,
            password_hash=hash_password(payload.password),
            role=UserRole.PATIENT.value,
            is_active=True,
        )
        db.add(user)
        db.flush()

        patient = Patient(
            clinic_id=clinic.id,
            registration_no=next_registration_no(db, clinic.id),
            full_name=payload.full_name.strip(),
            phone_number=payload.phone_number,
            email=email,
            date_of_birth=payload.date_of_birth,
            age=compute_age(payload.date_of_birth),
            gender=payload.gender,
            blood_group=payload.blood_group,
            address=payload.address,
            user_id=user.id,
        )
        db.add(patient)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("patient self-registered clinic=%s patient=%s", clinic.id,
                patient.registration_id)
    out = _issue_session(db, user, response)
    out["patient"] = {
        "id": patient.id,
        "registration_id": patient.registration_id,
        "full_name": patient.full_name,
    }
    return out


# ---------------------------------------------------------------------
#  Current user
# ---------------------------------------------------------------------


@router.get("/me")
def me(user: User = Depends(current_user), db: Session = Depends(get_db)):
    db.refresh(user)
    return {"user": _user_payload(db, user)}


@router.post("/change-password")
def change_password(payload: ChangePasswordIn,
                    user: User = Depends(current_user),
                    db: Session = Depends(get_db)):
    if len(payload.new_password or "") < MIN_PASSWORD:
        raise HTTPException(
            status_code=400,
            detail="New password must be at least 8 characters long")
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400,
                            detail="Current password is incorrect")
    user.password_hash = hash_password(payload.new_password)
    db.commit()
    return {"message": "Password changed successfully"}
