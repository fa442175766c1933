"""Therapy plan scheduling and session tracking."""

from datetime import date, timedelta
from decimal import Decimal

from clinic.models.therapy import TherapyPlan, TherapySession
from clinic.services.therapy_schedule import (
    apply_session_update,
    build_sessions,
    plan_end_date,
    plan_is_finished,
    plan_stats,
    plan_totals,
    sessions_per_type,
)

START = date(2026, 3, 2)


class TestScheduleMath:

    def test_sessions_per_type(self):
        assert sessions_per_type(7, "DAILY") == 7
        assert sessions_per_type(7, "ALTERNATE_DAYS") == 4
        assert sessions_per_type(3, "WEEKLY") == 3

    def test_end_dates(self):
        assert plan_end_date(START, 7, "DAILY") == date(2026, 3, 8)
        assert plan_end_date(START, 7, "ALTERNATE_DAYS") == date(2026, 3, 15)
        assert plan_end_date(START, 2, "WEEKLY") == date(2026, 3, 15)

    def test_totals_span_all_types(self):
        total, amount = plan_totals(therapy_types=["Abhyanga", "Shirodhara"],
                                    duration=5,
                                    frequency="ALTERNATE_DAYS",
                                    price_per_session="1500")
        assert total == 6
        assert amount == Decimal("9000.00")


class TestBuildSessions:

    def test_numbering_is_global_and_dates_step(self):
        sessions = build_sessions(therapy_types=["Abhyanga", "Shirodhara"],
                                  start=START,
                                  duration=3,
                                  frequency="ALTERNATE_DAYS")
        assert [s.session_number for s in sessions] == [1, 2, 3, 4]
        assert [s.therapy_type for s in sessions] == [
            "Abhyanga", "Abhyanga", "Shirodhara", "Shirodhara"
        ]
        assert [s.scheduled_date for s in sessions] == [
            START, START + timedelta(days=2), START, START + timedelta(days=2)
        ]
        assert {s.scheduled_time for s in sessions} == {"10:00 AM"}

    def test_times_cycle(self):
        sessions = build_sessions(therapy_types=["Basti"],
                                  start=START,
                                  duration=3,
                                  frequency="DAILY",
                                  session_times=["09:00 AM", "05:00 PM"])
        assert [s.scheduled_time for s in sessions] == [
            "09:00 AM", "05:00 PM", "09:00 AM"
        ]


class TestSessionUpdates:

    def _plan(self, statuses):
        plan = TherapyPlan(total_sessions=len(statuses))
        for i, st in enumerate(statuses, start=1):
            plan.sessions.append(
                TherapySession(id=i,
                               session_number=i,
                               therapy_type="Abhyanga",
                               scheduled_date=START + timedelta(days=i),
                               scheduled_time="10:00 AM",
                               status=st))
        return plan

    def test_reschedule_keeps_history(self):
        s = TherapySession(scheduled_date=START, status="SCHEDULED")
        new_day = START + timedelta(days=3)
        apply_session_update(s, {"status": "RESCHEDULED", "scheduled_date": new_day})
        assert s.rescheduled_from == START
        assert s.rescheduled_to == new_day
        assert s.scheduled_date == new_day

    def test_completed_stamps_time(self):
        s = TherapySession(scheduled_date=START, status="SCHEDULED")
        apply_session_update(s, {"status": "COMPLETED", "observations": "ok"})
        assert s.completed_at is not None
        assert s.observations == "ok"

    def test_stats(self):
        plan = self._plan(["COMPLETED", "MISSED", "SCHEDULED", "SCHEDULED"])
        stats = plan_stats(plan, today=START)
        assert stats["completed"] == 1
        assert stats["missed"] == 1
        assert stats["upcoming"] == 2
        assert stats["percentage"] == 25.0
        assert stats["next_session"]["session_number"] == 3

    def test_finished_when_completed_or_cancelled(self):
        assert plan_is_finished(self._plan(["COMPLETED", "CANCELLED"]))
        assert not plan_is_finished(self._plan(["COMPLETED", "SCHEDULED"]))


class TestTherapyApi:

    def _create(self, client, patient_id):
        resp = client.post("/api/therapy/plans",
                           json={"patient_id": patient_id,
                                 "therapy_types": ["Abhyanga"],
                                 "start_date": date.today().isoformat(),
                                 "duration": 2,
                                 "frequency": "DAILY",
                                 "price_per_session": "1200"})
        assert resp.status_code == 201, resp.text
        return resp.json()["plan"]

    def test_create_plan(self, doctor_client, patient):
        plan = self._create(doctor_client, patient.id)
        assert plan["plan_number"].startswith("TP")
        assert plan["total_sessions"] == 2
        assert plan["total_amount"] == "2400.00"
        assert len(plan["sessions"]) == 2
        assert plan["stats"]["upcoming"] == 2

    def test_completing_every_session_completes_plan(self, doctor_client, patient):
        plan = self._create(doctor_client, patient.id)
        for s in plan["sessions"]:
            resp = doctor_client.put(f"/api/therapy/sessions/{s['id']}",
                                     json={"status": "COMPLETED"})
            assert resp.status_code == 200, resp.text

        detail = doctor_client.get(f"/api/therapy/plans/{plan['id']}").json()["plan"]
        assert detail["status"] == "COMPLETED"
        assert detail["completed_sessions"] == 2

    def test_cancel_plan(self, doctor_client, patient):
        plan = self._create(doctor_client, patient.id)
        resp = doctor_client.delete(f"/api/therapy/plans/{plan['id']}")
        assert resp.json() == {"success": True}
        active = doctor_client.get("/api/therapy/plans").json()["plans"]
        assert active == []

    def test_types_required(self, doctor_client, patient):
        resp = doctor_client.post("/api/therapy/plans",
                                  json={"patient_id": patient.id,
                                        "therapy_types": [" "],
                                        "start_date": "2026-01-01",
                                        "duration": 2,
                                        "frequency": "DAILY"})
        assert resp.status_code == 400
        assert "At least one therapy type must be selected" in resp.json()["error"]

    def test_staff_blocked(self, staff_client, patient):
        assert staff_client.get("/api/therapy/plans").status_code == 403
