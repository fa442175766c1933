# clinic/api/routes_patient_portal.py
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from clinic.api.deps import get_db, patient_user
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.billing import Bill, BillStatus, NumberDocType, PaymentConfirmation
from clinic.models.diet import DietPlan
from clinic.models.patient import Patient
from clinic.models.therapy import TherapyPlan, TherapyPlanStatus
from clinic.models.user import User
from clinic.schemas.appointment import (
    AppointmentOut,
    AppointmentRequestIn,
    PatientRespondIn,
)
from clinic.schemas.billing import (
    BillDetailOut,
    PaymentConfirmationIn,
    PaymentConfirmationOut,
)
from clinic.schemas.diet import DietPlanOut
from clinic.schemas.patient import PatientOut
from clinic.schemas.therapy import TherapyPlanOut
from clinic.services.billing_math import money2
from clinic.services.numbers import next_document_number

logger = logging.getLogger(__name__)

router = APIRouter()


def own_patient(user: User = Depends(patient_user),
                db: Session = Depends(get_db)) -> Patient:
    p = db.query(Patient).filter(Patient.user_id == user.id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Patient record not found")
    return p


def _own_bills(db: Session, patient: Patient):
    return (db.query(Bill).options(selectinload(Bill.items),
                                   selectinload(Bill.payments)).filter(
                                       Bill.patient_id == patient.id,
                                       Bill.status != BillStatus.DRAFT.value).order_by(
                                           Bill.created_at.desc(),
                                           Bill.id.desc()).all())


@router.get("/dashboard")
def dashboard(
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    appts = (db.query(Appointment).filter(
        Appointment.patient_id == patient.id).order_by(
            Appointment.appointment_date.desc(),
            Appointment.id.desc()).limit(20).all())

    bills = _own_bills(db, patient)
    total_billed = total_paid = outstanding = Decimal("0.00")
    for b in bills:
        if b.status == BillStatus.CANCELLED.value:
            continue
        total_billed += money2(b.total_amount)
        total_paid += money2(b.paid_amount)
        outstanding += money2(b.balance_amount)

    therapy = (db.query(TherapyPlan).filter(
        TherapyPlan.patient_id == patient.id,
        TherapyPlan.status == TherapyPlanStatus.ACTIVE.value).all())
    diet = (db.query(DietPlan).filter(DietPlan.patient_id == patient.id,
                                      DietPlan.status == "ACTIVE").all())

    return {
        "patient": PatientOut.model_validate(patient),
        "appointments": [AppointmentOut.model_validate(a) for a in appts],
        "bills": [BillDetailOut.model_validate(b) for b in bills],
        "billing_summary": {
            "total_billed": str(total_billed),
            "total_paid": str(total_paid),
            "outstanding": str(outstanding),
        },
        "therapy_plans": [TherapyPlanOut.model_validate(t) for t in therapy],
        "diet_plans": [DietPlanOut.model_validate(d) for d in diet],
    }


@router.get("/bills")
def my_bills(
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return {
        "bills": [BillDetailOut.model_validate(b) for b in _own_bills(db, patient)]
    }


# ---------------------------------------------------------------------
#  Payment confirmations
# ---------------------------------------------------------------------


@router.post("/payment-confirmation", status_code=201)
def confirm_payment(
        payload: PaymentConfirmationIn,
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if payload.bill_id is not None:
        bill = db.query(Bill.id).filter(Bill.id == payload.bill_id,
                                        Bill.patient_id == patient.id).first()
        if not bill:
            raise HTTPException(status_code=404, detail="Bill not found")

    row = PaymentConfirmation(
        clinic_id=patient.clinic_id,
        confirmation_number=next_document_number(
            db,
            clinic_id=patient.clinic_id,
            doc_type=NumberDocType.CONFIRMATION,
            prefix="CNF"),
        patient_id=patient.id,
        bill_id=payload.bill_id,
        patient_name=payload.name.strip(),
        patient_email=str(payload.email).lower(),
        patient_phone=payload.phone.strip(),
        amount=money2(payload.amount),
        transaction_id=payload.transaction_id,
        notes=payload.notes,
        status="PENDING_VERIFICATION",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("payment confirmation %s from %s for %s",
                row.confirmation_number, patient.registration_id, row.amount)
    return {
        "message": "Payment confirmation submitted successfully",
        "confirmation_number": row.confirmation_number,
        "confirmation": PaymentConfirmationOut.model_validate(row),
    }


@router.get("/payment-confirmations")
def my_payment_confirmations(
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    rows = (db.query(PaymentConfirmation).filter(
        PaymentConfirmation.patient_id == patient.id).order_by(
            PaymentConfirmation.created_at.desc(),
            PaymentConfirmation.id.desc()).all())
    return {"confirmations": [PaymentConfirmationOut.model_validate(r) for r in rows]}


# ---------------------------------------------------------------------
#  Appointment requests
# ---------------------------------------------------------------------


@router.post("/appointments/request", response_model=AppointmentOut,
             status_code=201)
def request_appointment(
        payload: AppointmentRequestIn,
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
):
    if payload.appointment_date < date.today():
        raise HTTPException(status_code=400,
                            detail="Appointment date cannot be in the past")
    a = Appointment(
        clinic_id=patient.clinic_id,
        patient_id=patient.id,
        appointment_date=payload.appointment_date,
        appointment_time=payload.appointment_time,
        duration=30,
        reason=payload.reason,
        notes=payload.notes,
        status=AppointmentStatus.PENDING_APPROVAL.value,
        created_by=patient.user_id,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    logger.info("appointment request %s from %s", a.id, patient.registration_id)
    return a


@router.get("/appointments/requests")
def my_requests(
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    rows = (db.query(Appointment).filter(
        Appointment.patient_id == patient.id,
        Appointment.status.in_([
            AppointmentStatus.PENDING_APPROVAL.value,
            AppointmentStatus.ALTERNATIVE_PROPOSED.value,
            AppointmentStatus.DECLINED.value,
        ])).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all())
    return {"requests": [AppointmentOut.model_validate(a) for a in rows]}


@router.get("/appointments/pending-count")
def pending_count(
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, int]:
    n = db.query(Appointment).filter(
        Appointment.patient_id == patient.id,
        Appointment.status == AppointmentStatus.ALTERNATIVE_PROPOSED.value,
    ).count()
    return {"pending_actions": n}


@router.post("/appointments/{appt_id}/respond")
def respond_to_alternative(
        appt_id: int,
        payload: PatientRespondIn,
        patient: Patient = Depends(own_patient),
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    a = db.get(Appointment, appt_id)
    if not a:
        raise HTTPException(status_code=404, detail="Appointment not found")
    if a.patient_id != patient.id:
        raise HTTPException(status_code=403, detail="Not your appointment")
    if a.status != AppointmentStatus.ALTERNATIVE_PROPOSED.value:
        raise HTTPException(
            status_code=400,
            detail="This appointment is not awaiting your response")

    stamp = date.today().isoformat()
    if payload.action == "accept":
        a.status = AppointmentStatus.SCHEDULED.value
        if a.alternative_date:
            a.appointment_date = a.alternative_date
        if a.alternative_time:
            a.appointment_time = a.alternative_time
        note = f"[Alternative accepted by patient on {stamp}]"
        message = "Appointment confirmed! See you then."
    else:
        a.status = AppointmentStatus.CANCELLED.value
        note = f"[Alternative declined by patient on {stamp}]"
        message = "Appointment declined. You can request a new time anytime."
    a.notes = f"{a.notes}\n{note}" if a.notes else note

    db.commit()
    db.refresh(a)
    return {
        "success": True,
        "message": message,
        "appointment": AppointmentOut.model_validate(a),
    }
