# clinic/api/routes_dashboard.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic.api.deps import clinic_user, get_db
from clinic.models.user import User
from clinic.services.dashboard_service import (
    constitution_chart,
    dashboard_stats,
    patient_flow_chart,
    today_appointments,
)

router = APIRouter()


@router.get("/stats")
def stats(db: Session = Depends(get_db),
          user: User = Depends(clinic_user)) -> Dict[str, Any]:
    return dashboard_stats(db, user=user)


@router.get("/appointments")
def appointments_today(db: Session = Depends(get_db),
                       user: User = Depends(clinic_user)) -> List[Dict[str, Any]]:
    return today_appointments(db, clinic_id=user.clinic_id)


@router.get("/charts/constitution")
def chart_constitution(db: Session = Depends(get_db),
                       user: User = Depends(clinic_user)) -> Dict[str, Any]:
    return constitution_chart(db, clinic_id=user.clinic_id)


@router.get("/charts/patient-flow")
def chart_patient_flow(year: Optional[int] = Query(None),
                       db: Session = Depends(get_db),
                       user: User = Depends(clinic_user)) -> Dict[str, Any]:
    return patient_flow_chart(db, clinic_id=user.clinic_id, year=year)
