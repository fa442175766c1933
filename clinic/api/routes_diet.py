# clinic/api/routes_diet.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from clinic.api.deps import clinic_user, get_db
from clinic.core.rbac import require_module
from clinic.models.billing import NumberDocType
from clinic.models.diet import DietPlan
from clinic.models.patient import Patient
from clinic.models.user import User
from clinic.schemas.diet import DietPlanCreate, DietPlanOut, DietPlanUpdate
from clinic.services.diet_templates import current_season, fill_plan_fields, get_template
from clinic.services.numbers import next_document_number

router = APIRouter()


def diet_user(user: User = Depends(clinic_user)) -> User:
    require_module(user, "diet")
    return user


def _get_plan(db: Session, clinic_id: int, plan_id: int) -> DietPlan:
    plan = (db.query(DietPlan).options(joinedload(DietPlan.patient)).filter(
        DietPlan.id == plan_id, DietPlan.clinic_id == clinic_id).first())
    if not plan:
        raise HTTPException(status_code=404, detail="Diet plan not found")
    return plan


@router.get("/templates")
def template(
        constitution: str = Query("TRIDOSHA"),
        season: Optional[str] = Query(None),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    season = (season or current_season()).upper()
    return {
        "constitution": constitution.upper(),
        "season": season,
        "template": get_template(constitution, season),
    }


@router.post("/plans", status_code=201)
def create_plan(
        payload: DietPlanCreate,
        db: Session = Depends(get_db),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    patient = db.query(Patient).filter(
        Patient.id == payload.patient_id,
        Patient.clinic_id == user.clinic_id).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    fields = fill_plan_fields(
        constitution=payload.constitution,
        season=payload.season,
        fields=payload.model_dump(exclude={"patient_id", "constitution", "season"}),
    )
    plan = DietPlan(
        clinic_id=user.clinic_id,
        plan_number=next_document_number(db,
                                         clinic_id=user.clinic_id,
                                         doc_type=NumberDocType.DIET_PLAN,
                                         prefix="DP"),
        patient_id=patient.id,
        doctor_id=user.id,
        constitution=payload.constitution,
        status="ACTIVE",
        **fields,
    )
    db.add(plan)
    db.commit()
    return {"plan": DietPlanOut.model_validate(_get_plan(db, user.clinic_id, plan.id))}


@router.get("/plans")
def list_plans(
        status: str = Query("ACTIVE"),
        patient_id: Optional[int] = Query(None),
        constitution: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    q = (db.query(DietPlan).options(joinedload(DietPlan.patient)).filter(
        DietPlan.clinic_id == user.clinic_id))
    if status and status.upper() != "ALL":
        q = q.filter(DietPlan.status == status.upper())
    if patient_id:
        q = q.filter(DietPlan.patient_id == patient_id)
    if constitution:
        q = q.filter(DietPlan.constitution == constitution.upper())
    plans = q.order_by(DietPlan.created_at.desc(), DietPlan.id.desc()).all()
    return {"plans": [DietPlanOut.model_validate(p) for p in plans]}


@router.get("/plans/{plan_id}")
def get_plan(
        plan_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    return {"plan": DietPlanOut.model_validate(_get_plan(db, user.clinic_id, plan_id))}


@router.put("/plans/{plan_id}")
def update_plan(
        plan_id: int,
        payload: DietPlanUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    plan = _get_plan(db, user.clinic_id, plan_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(plan, k, v)
    db.commit()
    db.refresh(plan)
    return {"plan": DietPlanOut.model_validate(plan)}


@router.delete("/plans/{plan_id}")
def delete_plan(
        plan_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(diet_user),
) -> Dict[str, Any]:
    plan = _get_plan(db, user.clinic_id, plan_id)
    plan.status = "CANCELLED"
    db.commit()
    return {"success": True}
