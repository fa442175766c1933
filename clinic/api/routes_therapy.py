# clinic/api/routes_therapy.py
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload, selectinload

from clinic.api.deps import clinic_user, get_db
from clinic.core.rbac import require_module
from clinic.models.billing import Bill, NumberDocType
from clinic.models.patient import Patient
from clinic.models.therapy import (
    TherapyPlan,
    TherapyPlanStatus,
    TherapySession,
    TherapySessionStatus,
)
from clinic.models.user import User
from clinic.schemas.therapy import (
    TherapyPlanCreate,
    TherapyPlanOut,
    TherapyPlanUpdate,
    TherapySessionOut,
    TherapySessionUpdate,
)
from clinic.services.numbers import next_document_number
from clinic.services.therapy_schedule import (
    apply_session_update,
    build_sessions,
    plan_end_date,
    plan_is_finished,
    plan_stats,
    plan_totals,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def therapy_user(user: User = Depends(clinic_user)) -> User:
    require_module(user, "therapy")
    return user


def _get_plan(db: Session, clinic_id: int, plan_id: int) -> TherapyPlan:
    plan = (db.query(TherapyPlan).options(
        joinedload(TherapyPlan.patient),
        selectinload(TherapyPlan.sessions)).filter(
            TherapyPlan.id == plan_id,
            TherapyPlan.clinic_id == clinic_id).first())
    if not plan:
        raise HTTPException(status_code=404, detail="Therapy plan not found")
    return plan


def _plan_payload(plan: TherapyPlan, with_sessions: bool = False) -> Dict[str, Any]:
    out = TherapyPlanOut.model_validate(plan).model_dump(mode="json")
    out["stats"] = plan_stats(plan)
    if with_sessions:
        ordered = sorted(plan.sessions,
                         key=lambda s: (s.scheduled_date, s.session_number))
        out["sessions"] = [
            TherapySessionOut.model_validate(s).model_dump(mode="json")
            for s in ordered
        ]
    return out


# ---------------------------------------------------------------------
#  Plans
# ---------------------------------------------------------------------


@router.post("/plans", status_code=201)
def create_plan(
        payload: TherapyPlanCreate,
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    patient = db.query(Patient).filter(
        Patient.id == payload.patient_id,
        Patient.clinic_id == user.clinic_id).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    total_sessions, total_amount = plan_totals(
        therapy_types=payload.therapy_types,
        duration=payload.duration,
        frequency=payload.frequency,
        price_per_session=payload.price_per_session,
    )

    try:
        plan = TherapyPlan(
            clinic_id=user.clinic_id,
            plan_number=next_document_number(
                db,
                clinic_id=user.clinic_id,
                doc_type=NumberDocType.THERAPY_PLAN,
                prefix="TP",
            ),
            patient_id=patient.id,
            doctor_id=user.id,
            therapy_types=payload.therapy_types,
            start_date=payload.start_date,
            end_date=plan_end_date(payload.start_date, payload.duration,
                                   payload.frequency),
            duration=payload.duration,
            frequency=payload.frequency,
            session_times=payload.session_times,
            total_sessions=total_sessions,
            completed_sessions=0,
            price_per_session=payload.price_per_session,
            total_amount=total_amount,
            status=TherapyPlanStatus.ACTIVE.value,
            notes=payload.notes,
        )
        plan.sessions.extend(
            build_sessions(
                therapy_types=payload.therapy_types,
                start=payload.start_date,
                duration=payload.duration,
                frequency=payload.frequency,
                session_times=payload.session_times,
            ))
        db.add(plan)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("therapy plan %s created with %s sessions", plan.plan_number,
                plan.total_sessions)
    return {"plan": _plan_payload(_get_plan(db, user.clinic_id, plan.id), True)}


@router.get("/plans")
def list_plans(
        status: str = Query("ACTIVE"),
        patient_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    q = (db.query(TherapyPlan).options(
        joinedload(TherapyPlan.patient),
        selectinload(TherapyPlan.sessions)).filter(
            TherapyPlan.clinic_id == user.clinic_id))
    if status and status.upper() != "ALL":
        q = q.filter(TherapyPlan.status == status.upper())
    if patient_id:
        q = q.filter(TherapyPlan.patient_id == patient_id)
    plans = q.order_by(TherapyPlan.created_at.desc(), TherapyPlan.id.desc()).all()
    return {"plans": [_plan_payload(p) for p in plans]}


@router.get("/plans/{plan_id}")
def get_plan(
        plan_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    return {"plan": _plan_payload(_get_plan(db, user.clinic_id, plan_id), True)}


@router.put("/plans/{plan_id}")
def update_plan(
        plan_id: int,
        payload: TherapyPlanUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    plan = _get_plan(db, user.clinic_id, plan_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("bill_id"):
        found = db.query(Bill.id).filter(Bill.id == data["bill_id"],
                                         Bill.clinic_id == user.clinic_id).first()
        if not found:
            raise HTTPException(status_code=404, detail="Bill not found")

    for k in ("status", "bill_id", "notes"):
        if data.get(k) is not None:
            setattr(plan, k, data[k])
    db.commit()
    return {"plan": _plan_payload(_get_plan(db, user.clinic_id, plan_id), True)}


@router.delete("/plans/{plan_id}")
def cancel_plan(
        plan_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    plan = _get_plan(db, user.clinic_id, plan_id)
    plan.status = TherapyPlanStatus.CANCELLED.value
    db.commit()
    return {"success": True}


# ---------------------------------------------------------------------
#  Sessions
# ---------------------------------------------------------------------


@router.put("/sessions/{session_id}")
def update_session(
        session_id: int,
        payload: TherapySessionUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(therapy_user),
) -> Dict[str, Any]:
    session = (db.query(TherapySession).join(TherapyPlan).filter(
        TherapySession.id == session_id,
        TherapyPlan.clinic_id == user.clinic_id).first())
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    data = payload.model_dump(exclude_unset=True)
    apply_session_update(session, data)
    if data.get("status") == TherapySessionStatus.COMPLETED.value:
        session.therapist_id = user.id
    db.flush()

    plan = session.plan
    plan.completed_sessions = sum(
        1 for s in plan.sessions
        if s.status == TherapySessionStatus.COMPLETED.value)
    if plan.status == TherapyPlanStatus.ACTIVE.value and plan_is_finished(plan):
        plan.status = TherapyPlanStatus.COMPLETED.value
        logger.info("therapy plan %s completed", plan.plan_number)

    db.commit()
    db.refresh(session)
    return {"session": TherapySessionOut.model_validate(session)}
