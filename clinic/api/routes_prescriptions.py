# clinic/api/routes_prescriptions.py
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from clinic.api.deps import clinic_user, get_db
from clinic.core.rbac import require_module
from clinic.models.billing import NumberDocType
from clinic.models.patient import Patient
from clinic.models.pharmacy import Medicine
from clinic.models.prescription import (
    Prescription,
    PrescriptionMedicine,
    PrescriptionStatus,
)
from clinic.models.user import User
from clinic.schemas.prescription import (
    PrescriptionCreate,
    PrescriptionOut,
    PrescriptionUpdate,
)
from clinic.services.numbers import next_sequence
from clinic.services.prescriptions import build_lines, dispense

router = APIRouter()


def rx_user(user: User = Depends(clinic_user)) -> User:
    require_module(user, "prescriptions")
    return user


def _get_rx(db: Session, clinic_id: int, rx_id: int) -> Prescription:
    rx = (db.query(Prescription).options(
        joinedload(Prescription.patient),
        selectinload(Prescription.medicines).joinedload(
            PrescriptionMedicine.medicine)).filter(
                Prescription.id == rx_id,
                Prescription.clinic_id == clinic_id).first())
    if not rx:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return rx


@router.post("", response_model=PrescriptionOut, status_code=201)
def create_prescription(
        payload: PrescriptionCreate,
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
):
    patient = db.query(Patient).filter(
        Patient.id == payload.patient_id,
        Patient.clinic_id == user.clinic_id).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    try:
        rx = Prescription(
            clinic_id=user.clinic_id,
            prescription_no=next_sequence(db,
                                          clinic_id=user.clinic_id,
                                          doc_type=NumberDocType.PRESCRIPTION),
            patient_id=patient.id,
            doctor_id=user.id,
            status=PrescriptionStatus.DRAFT.value,
            **payload.model_dump(exclude={"patient_id", "medicines"}),
        )
        rx.medicines.extend(
            build_lines(db, clinic_id=user.clinic_id, items=payload.medicines))
        db.add(rx)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _get_rx(db, user.clinic_id, rx.id)


@router.get("")
def list_prescriptions(
        patient_id: Optional[int] = Query(None),
        status: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=200),
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
) -> Dict[str, Any]:
    q = (db.query(Prescription).join(Patient,
                                     Patient.id == Prescription.patient_id).filter(
                                         Prescription.clinic_id == user.clinic_id))
    if patient_id:
        q = q.filter(Prescription.patient_id == patient_id)
    if status and status.lower() != "all":
        q = q.filter(Prescription.status == status.upper())
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(Patient.full_name.ilike(like), Patient.phone_number.ilike(like),
                Prescription.chief_complaints.ilike(like),
                Prescription.diagnosis.ilike(like)))
    if from_date:
        q = q.filter(Prescription.created_at >= datetime.combine(from_date, time.min))
    if to_date:
        q = q.filter(Prescription.created_at < datetime.combine(
            to_date + timedelta(days=1), time.min))

    total = q.count()
    rows = (q.options(
        joinedload(Prescription.patient),
        selectinload(Prescription.medicines).joinedload(
            PrescriptionMedicine.medicine)).order_by(
                Prescription.created_at.desc(),
                Prescription.id.desc()).offset((page - 1) * limit).limit(limit).all())
    return {
        "prescriptions": [PrescriptionOut.model_validate(r) for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.get("/stats")
def prescription_stats(
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
) -> Dict[str, Any]:
    base = db.query(Prescription).filter(Prescription.clinic_id == user.clinic_id)
    today = date.today()
    day_start = datetime.combine(today, time.min)

    counts = dict(
        db.query(Prescription.status, func.count(Prescription.id)).filter(
            Prescription.clinic_id == user.clinic_id).group_by(
                Prescription.status).all())
    breakdown = {s.value.lower(): int(counts.get(s.value, 0)) for s in PrescriptionStatus}

    follow_ups = base.filter(
        Prescription.follow_up_date >= today,
        Prescription.follow_up_date <= today + timedelta(days=7),
        Prescription.status != PrescriptionStatus.CANCELLED.value,
    ).count()

    top = (db.query(Medicine.id, Medicine.name,
                    func.count(PrescriptionMedicine.id).label("n")).join(
                        PrescriptionMedicine,
                        PrescriptionMedicine.medicine_id == Medicine.id).filter(
                            Medicine.clinic_id == user.clinic_id).group_by(
                                Medicine.id, Medicine.name).order_by(
                                    func.count(PrescriptionMedicine.id).desc()).limit(10).all())

    trend = []
    for i in range(6, -1, -1):
        d = today - timedelta(days=i)
        lo = datetime.combine(d, time.min)
        trend.append({
            "date": d.isoformat(),
            "count": base.filter(Prescription.created_at >= lo,
                                 Prescription.created_at < lo + timedelta(days=1)).count(),
        })

    return {
        "overview": {
            "total": base.count(),
            "today": base.filter(Prescription.created_at >= day_start).count(),
            "pending_dispense": breakdown["finalized"],
            "upcoming_follow_ups": follow_ups,
        },
        "status_breakdown": breakdown,
        "most_prescribed_medicines": [{
            "medicine_id": mid,
            "medicine_name": name,
            "count": int(n),
        } for mid, name, n in top],
        "trend": trend,
    }


@router.get("/patient/{patient_id}")
def patient_history(
        patient_id: int,
        limit: int = Query(10, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
) -> Dict[str, Any]:
    patient = db.query(Patient).filter(Patient.id == patient_id,
                                       Patient.clinic_id == user.clinic_id).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    rows = (db.query(Prescription).options(
        selectinload(Prescription.medicines).joinedload(
            PrescriptionMedicine.medicine)).filter(
                Prescription.patient_id == patient.id).order_by(
                    Prescription.created_at.desc(),
                    Prescription.id.desc()).limit(limit).all())
    return {
        "patient": {
            "id": patient.id,
            "registration_id": patient.registration_id,
            "full_name": patient.full_name,
            "age": patient.age,
            "gender": patient.gender,
            "constitution_type": patient.constitution_type,
        },
        "prescriptions": [PrescriptionOut.model_validate(r) for r in rows],
    }


@router.get("/{rx_id}", response_model=PrescriptionOut)
def get_prescription(
        rx_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
):
    return _get_rx(db, user.clinic_id, rx_id)


@router.put("/{rx_id}", response_model=PrescriptionOut)
def update_prescription(
        rx_id: int,
        payload: PrescriptionUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(rx_user),
):
    rx = _get_rx(db, user.clinic_id, rx_id)
    if rx.status == PrescriptionStatus.DISPENSED.value:
        raise HTTPException(status_code=400,
                            detail="Dispensed prescriptions cannot be edited")

    data = payload.model_dump(exclude_unset=True, exclude={"medicines"})
    try:
        for k, v in data.items():
            setattr(rx, k, v)
        if payload.medicines is not None:
            rx.medicines.clear()
            db.flush()
            rx.medicines.extend(
                build_lines(db, clinic_id=user.clinic_id, items=payload.medicines))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return _get_rx(db, user.clinic_id, rx_id)


@router.post("/{rx_id}/dispense", response_model=PrescriptionOut)
def dispense_prescription(
        rx_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    # any clinic role may dispense
    rx = _get_rx(db, user.clinic_id, rx_id)
    dispense(db, rx=rx, user=user)
    db.expire_all()
    return _get_rx(db, user.clinic_id, rx_id)
