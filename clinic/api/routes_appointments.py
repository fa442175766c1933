# clinic/api/routes_appointments.py
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from clinic.api.deps import clinic_user, get_db
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.patient import Patient
from clinic.models.user import User
from clinic.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentRespondIn,
    AppointmentStatusIn,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_appt(db: Session, clinic_id: int, appt_id: int) -> Appointment:
    a = db.query(Appointment).filter(Appointment.id == appt_id,
                                     Appointment.clinic_id == clinic_id).first()
    if not a:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return a


@router.post("", response_model=AppointmentOut, status_code=201)
def create_appointment(
        payload: AppointmentCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    if payload.patient_id:
        found = db.query(Patient.id).filter(
            Patient.id == payload.patient_id,
            Patient.clinic_id == user.clinic_id).first()
        if not found:
            raise HTTPException(status_code=404, detail="Patient not found")

    a = Appointment(
        clinic_id=user.clinic_id,
        patient_id=payload.patient_id,
        guest_name=None if payload.patient_id else payload.guest_name.strip(),
        guest_phone=None if payload.patient_id else payload.guest_phone,
        appointment_date=payload.appointment_date,
        appointment_time=payload.appointment_time,
        duration=payload.duration,
        reason=payload.reason,
        notes=payload.notes,
        status=AppointmentStatus.SCHEDULED.value,
        created_by=user.id,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


@router.get("", response_model=List[AppointmentOut])
def list_appointments(
        date_: Optional[date] = Query(None, alias="date"),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        status: Optional[str] = Query(None),
        patient_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    q = (db.query(Appointment).options(joinedload(Appointment.patient)).filter(
        Appointment.clinic_id == user.clinic_id))
    if date_:
        q = q.filter(Appointment.appointment_date == date_)
    if from_date:
        q = q.filter(Appointment.appointment_date >= from_date)
    if to_date:
        q = q.filter(Appointment.appointment_date <= to_date)
    if status and status.upper() != "ALL":
        q = q.filter(Appointment.status == status.upper())
    if patient_id:
        q = q.filter(Appointment.patient_id == patient_id)
    return q.order_by(Appointment.appointment_date.asc(),
                      Appointment.appointment_time.asc(),
                      Appointment.id.asc()).all()


@router.get("/{appt_id}", response_model=AppointmentOut)
def get_appointment(
        appt_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    return _get_appt(db, user.clinic_id, appt_id)


@router.patch("/{appt_id}/status", response_model=AppointmentOut)
def update_status(
        appt_id: int,
        payload: AppointmentStatusIn,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    a = _get_appt(db, user.clinic_id, appt_id)
    a.status = payload.status
    db.commit()
    db.refresh(a)
    return a


@router.post("/{appt_id}/respond", response_model=AppointmentOut)
def respond_to_request(
        appt_id: int,
        payload: AppointmentRespondIn,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    a = _get_appt(db, user.clinic_id, appt_id)
    if a.status != AppointmentStatus.PENDING_APPROVAL.value:
        raise HTTPException(status_code=400,
                            detail="Appointment is not awaiting approval")

    if payload.action == "approve":
        a.status = AppointmentStatus.SCHEDULED.value
    elif payload.action == "decline":
        a.status = AppointmentStatus.DECLINED.value
    else:
        if not payload.alternative_date or not payload.alternative_time:
            raise HTTPException(
                status_code=400,
                detail="Alternative date and time are required")
        a.status = AppointmentStatus.ALTERNATIVE_PROPOSED.value
        a.alternative_date = payload.alternative_date
        a.alternative_time = payload.alternative_time

    if payload.notes:
        a.notes = f"{a.notes}\n{payload.notes}" if a.notes else payload.notes

    db.commit()
    db.refresh(a)
    logger.info("appointment %s %s by user=%s", a.id, payload.action, user.id)
    return a
