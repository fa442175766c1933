# clinic/services/therapy_schedule.py
from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from clinic.models.therapy import (
    TherapyFrequency,
    TherapyPlan,
    TherapySession,
    TherapySessionStatus,
)
from clinic.services.billing_math import money2

DEFAULT_SESSION_TIME = "10:00 AM"

# days between two sessions of the same therapy
STEP_DAYS = {
    TherapyFrequency.DAILY.value: 1,
    TherapyFrequency.ALTERNATE_DAYS.value: 2,
    TherapyFrequency.WEEKLY.value: 7,
}


def sessions_per_type(duration: int, frequency: str) -> int:
    if frequency == TherapyFrequency.ALTERNATE_DAYS.value:
        return math.ceil(duration / 2)
    return duration


def plan_end_date(start: date, duration: int, frequency: str) -> date:
    if frequency == TherapyFrequency.ALTERNATE_DAYS.value:
        return start + timedelta(days=duration * 2 - 1)
    if frequency == TherapyFrequency.WEEKLY.value:
        return start + timedelta(days=duration * 7 - 1)
    return start + timedelta(days=duration - 1)


def plan_totals(*, therapy_types: Sequence[str], duration: int, frequency: str,
                price_per_session) -> Tuple[int, Decimal]:
    """(total sessions, total amount) across every therapy type."""
    per_type = sessions_per_type(duration, frequency)
    total = per_type * len(therapy_types)
    return total, money2(money2(price_per_session) * total)


def build_sessions(*, therapy_types: Sequence[str], start: date, duration: int,
                   frequency: str,
                   session_times: Optional[Sequence[str]] = None
                   ) -> List[TherapySession]:
    """
    Sessions for every therapy type, each starting on the plan start date.

    Numbering is global across types and starts at 1; times cycle through
    session_times.
    """
    per_type = sessions_per_type(duration, frequency)
    step = timedelta(days=STEP_DAYS.get(frequency, 1))
    times = [t for t in (session_times or []) if t] or [DEFAULT_SESSION_TIME]

    out: List[TherapySession] = []
    number = 1
    for therapy_type in therapy_types:
        current = start
        for i in range(per_type):
            out.append(
                TherapySession(
                    session_number=number,
                    therapy_type=therapy_type,
                    scheduled_date=current,
                    scheduled_time=times[i % len(times)],
                    status=TherapySessionStatus.SCHEDULED.value,
                ))
            number += 1
            current = current + step
    return out


def plan_stats(plan: TherapyPlan, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    sessions = list(plan.sessions)
    completed = sum(1 for s in sessions
                    if s.status == TherapySessionStatus.COMPLETED.value)
    missed = sum(1 for s in sessions
                 if s.status == TherapySessionStatus.MISSED.value)
    upcoming = sorted(
        (s for s in sessions if s.status == TherapySessionStatus.SCHEDULED.value
         and s.scheduled_date >= today),
        key=lambda s: (s.scheduled_date, s.session_number),
    )
    total = plan.total_sessions or 0
    nxt = upcoming[0] if upcoming else None
    return {
        "completed": completed,
        "upcoming": len(upcoming),
        "missed": missed,
        "total": total,
        "percentage": round(completed * 100 / total, 2) if total else 0,
        "next_session": {
            "id": nxt.id,
            "session_number": nxt.session_number,
            "therapy_type": nxt.therapy_type,
            "scheduled_date": nxt.scheduled_date.isoformat(),
            "scheduled_time": nxt.scheduled_time,
        } if nxt else None,
    }


def apply_session_update(session: TherapySession, data: Dict[str, Any],
                         now: Optional[datetime] = None) -> None:
    """Status side effects for a session edit; data is the exclude_unset dump."""
    now = now or datetime.utcnow()
    status = data.get("status")
    if status:
        session.status = status
        if status == TherapySessionStatus.COMPLETED.value:
            session.completed_at = data.get("completed_at") or now
        if status == TherapySessionStatus.RESCHEDULED.value and data.get(
                "scheduled_date"):
            session.rescheduled_from = session.scheduled_date
            session.rescheduled_to = data["scheduled_date"]
            session.scheduled_date = data["scheduled_date"]
            if data.get("scheduled_time"):
                session.scheduled_time = data["scheduled_time"]

    for field in ("duration_minutes", "observations", "vitals",
                  "patient_feedback", "discomfort"):
        if data.get(field) is not None:
            setattr(session, field, data[field])


def plan_is_finished(plan: TherapyPlan) -> bool:
    """Every session either completed or cancelled."""
    done = (TherapySessionStatus.COMPLETED.value,
            TherapySessionStatus.CANCELLED.value)
    sessions = list(plan.sessions)
    return bool(sessions) and all(s.status in done for s in sessions)
