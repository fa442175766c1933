"""Staff records, attendance, leave and payroll."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from clinic.services.staff_hr import (
    employee_id_prefix,
    hours_between,
    leave_days,
    payroll_amounts,
)

YEAR = date.today().year


def _staff(client, email="meera@gmail.com", role="THERAPIST", **extra):
    body = {
        "first_name": "Meera",
        "last_name": "Nair",
        "email": email,
        "phone": "9000011111",
        "role": role,
        "joining_date": f"{YEAR}-01-01",
        "basic_salary": "30000",
    }
    body.update(extra)
    resp = client.post("/api/staff", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _leave(client, staff_id, start, end, leave_type="SICK"):
    return client.post("/api/staff/leaves",
                       json={"staff_id": staff_id, "leave_type": leave_type,
                             "start_date": start, "end_date": end})


class TestHrMath:

    def test_hours_between(self):
        assert hours_between("09:00", "17:30") == Decimal("8.50")
        assert hours_between("17:00", "09:00") is None
        assert hours_between("09:00", None) is None

    def test_leave_days_inclusive(self):
        assert leave_days(date(2026, 3, 1), date(2026, 3, 1)) == 1
        assert leave_days(date(2026, 3, 1), date(2026, 3, 5)) == 5

    def test_payroll_amounts(self):
        out = payroll_amounts(basic_salary="30000", allowances="2000", hra="4000",
                              working_days=30, days_absent=2,
                              other_deductions="500")
        assert out["gross_salary"] == Decimal("36000.00")
        assert out["per_day"] == Decimal("1200.00")
        assert out["absence_deduction"] == Decimal("2400.00")
        assert out["net_salary"] == Decimal("33100.00")

    @pytest.mark.parametrize("role,prefix", [
        ("DOCTOR", "DOC"),
        ("therapist", "THR"),
        ("OTHER", "EMP"),
    ])
    def test_employee_prefix(self, role, prefix):
        assert employee_id_prefix(role) == prefix


class TestStaffRecords:

    def test_employee_ids_count_per_role(self, owner_client):
        yy = f"{YEAR % 100:02d}"
        first = _staff(owner_client)
        second = _staff(owner_client, email="arun@gmail.com")
        doc = _staff(owner_client, email="dr.rao@gmail.com", role="DOCTOR")
        assert first["employee_id"] == f"THR{yy}0001"
        assert second["employee_id"] == f"THR{yy}0002"
        assert doc["employee_id"] == f"DOC{yy}0001"

    def test_duplicate_email(self, owner_client):
        _staff(owner_client)
        resp = owner_client.post("/api/staff",
                                 json={"first_name": "M", "last_name": "N",
                                       "email": "meera@gmail.com",
                                       "phone": "9000011111",
                                       "role": "NURSE",
                                       "joining_date": f"{YEAR}-01-01",
                                       "basic_salary": "1"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Staff with this email already exists"

    def test_login_needs_password(self, owner_client):
        resp = owner_client.post("/api/staff",
                                 json={"first_name": "M", "last_name": "N",
                                       "email": "m@gmail.com", "phone": "90000",
                                       "role": "NURSE",
                                       "joining_date": f"{YEAR}-01-01",
                                       "basic_salary": "1", "can_login": True,
                                       "password": "123"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Password must be at least 6 characters"

    def test_doctor_login_is_created(self, owner_client, anon_client):
        staff = _staff(owner_client, email="dr.rao@gmail.com", role="DOCTOR",
                       can_login=True, password="doctor-pass")
        assert staff["user_id"] is not None
        resp = anon_client.post("/api/auth/login",
                                json={"email": "dr.rao@gmail.com",
                                      "password": "doctor-pass"})
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "DOCTOR"

    def test_list_stats(self, owner_client):
        _staff(owner_client)
        other = _staff(owner_client, email="arun@gmail.com", basic_salary="20000")
        owner_client.put(f"/api/staff/{other['id']}", json={"status": "INACTIVE"})
        stats = owner_client.get("/api/staff").json()["stats"]
        assert stats["total"] == 2
        assert stats["by_status"] == {"ACTIVE": 1, "INACTIVE": 1}
        assert stats["total_salary"] == "30000.00"

    def test_owner_only(self, doctor_client):
        assert doctor_client.get("/api/staff").status_code == 403


class TestAttendanceAndLeave:

    def test_attendance_hours_and_summary(self, owner_client):
        staff = _staff(owner_client)
        resp = owner_client.post("/api/staff/attendance",
                                 json={"staff_id": staff["id"],
                                       "date": f"{YEAR}-02-02",
                                       "clock_in": "09:00",
                                       "clock_out": "13:30"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["total_hours"] == "4.50"

        summary = owner_client.get("/api/staff/attendance/summary",
                                   params={"staff_id": staff["id"],
                                           "month": 2, "year": YEAR}).json()
        assert summary["present"] == 1
        assert summary["total_hours"] == "4.50"

    def test_bad_clock_format(self, owner_client):
        staff = _staff(owner_client)
        resp = owner_client.post("/api/staff/attendance",
                                 json={"staff_id": staff["id"],
                                       "date": f"{YEAR}-02-02",
                                       "clock_in": "9am"})
        assert resp.status_code == 400

    def test_approve_consumes_balance_and_marks_days(self, owner_client):
        staff = _staff(owner_client)
        leave = _leave(owner_client, staff["id"], f"{YEAR}-03-02",
                       f"{YEAR}-03-04").json()
        assert leave["status"] == "PENDING"
        assert leave["total_days"] == 3

        resp = owner_client.post(f"/api/staff/leaves/{leave['id']}/approve")
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "APPROVED"

        bal = owner_client.get(f"/api/staff/leaves/balance/{staff['id']}",
                               params={"year": YEAR}).json()
        assert bal["sick"] == {"total": 12, "used": 3, "available": 9}

        marked = owner_client.get("/api/staff/attendance",
                                  params={"staff_id": staff["id"], "month": 3,
                                          "year": YEAR}).json()
        assert marked["summary"]["leave"] == 3

        again = owner_client.post(f"/api/staff/leaves/{leave['id']}/approve")
        assert again.status_code == 400
        assert again.json()["error"] == "Only pending leaves can be reviewed"

    def test_overlap_rejected(self, owner_client):
        staff = _staff(owner_client)
        _leave(owner_client, staff["id"], f"{YEAR}-04-01", f"{YEAR}-04-03")
        resp = _leave(owner_client, staff["id"], f"{YEAR}-04-03", f"{YEAR}-04-05",
                      leave_type="CASUAL")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Leave request overlaps an existing leave"

    def test_balance_exceeded(self, owner_client):
        staff = _staff(owner_client)
        resp = _leave(owner_client, staff["id"], f"{YEAR}-05-01", f"{YEAR}-05-13")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Insufficient sick leave balance. Available: 12 days"

    def test_unpaid_has_no_cap(self, owner_client):
        staff = _staff(owner_client)
        resp = _leave(owner_client, staff["id"], f"{YEAR}-06-01", f"{YEAR}-06-20",
                      leave_type="UNPAID")
        assert resp.status_code == 201


class TestPayroll:

    def test_days_default_from_attendance(self, owner_client):
        staff = _staff(owner_client)
        owner_client.post("/api/staff/attendance/bulk",
                          json={"records": [
                              {"staff_id": staff["id"], "date": f"{YEAR}-07-01",
                               "status": "PRESENT"},
                              {"staff_id": staff["id"], "date": f"{YEAR}-07-02",
                               "status": "ABSENT"},
                          ]})
        resp = owner_client.post("/api/staff/payroll",
                                 json={"staff_id": staff["id"], "month": 7,
                                       "year": YEAR})
        assert resp.status_code == 201, resp.text
        p = resp.json()
        assert p["payroll_number"].startswith("PRL")
        assert p["days_present"] == 1
        assert p["days_absent"] == 1
        assert p["gross_salary"] == "30000.00"
        assert p["absence_deduction"] == "1000.00"
        assert p["net_salary"] == "29000.00"

    def test_one_payroll_per_month(self, owner_client):
        staff = _staff(owner_client)
        body = {"staff_id": staff["id"], "month": 8, "year": YEAR,
                "days_present": 30, "days_absent": 0}
        owner_client.post("/api/staff/payroll", json=body)
        resp = owner_client.post("/api/staff/payroll", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Payroll already exists for this month"

    def test_pay_books_salary_expense(self, owner_client):
        staff = _staff(owner_client)
        p = owner_client.post("/api/staff/payroll",
                              json={"staff_id": staff["id"], "month": 9,
                                    "year": YEAR, "days_present": 30,
                                    "days_absent": 0}).json()

        resp = owner_client.post(f"/api/staff/payroll/{p['id']}/pay")
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["payroll"]["status"] == "PAID"
        assert body["expense_number"] == f"SAL-{p['payroll_number']}"

        expenses = owner_client.get("/api/billing/expenses",
                                    params={"category": "salary"}).json()
        assert expenses["stats"]["total_amount"] == "30000.00"
        assert expenses["expenses"][0]["payroll_id"] == p["id"]

        again = owner_client.post(f"/api/staff/payroll/{p['id']}/pay")
        assert again.status_code == 400
        assert again.json()["error"] == "Payroll already paid"

        listing = owner_client.get("/api/staff/payroll").json()
        assert listing["stats"]["pending_amount"] == "0.00"

    def test_delete_staff_keeps_expense(self, owner_client):
        staff = _staff(owner_client)
        p = owner_client.post("/api/staff/payroll",
                              json={"staff_id": staff["id"], "month": 10,
                                    "year": YEAR, "days_present": 30,
                                    "days_absent": 0}).json()
        owner_client.post(f"/api/staff/payroll/{p['id']}/pay")

        resp = owner_client.delete(f"/api/staff/{staff['id']}")
        assert resp.status_code == 200
        expenses = owner_client.get("/api/billing/expenses").json()["expenses"]
        assert len(expenses) == 1
        assert expenses[0]["payroll_id"] is None


def _self_service(owner_client, anon_client, email="vaidya@gmail.com",
                  role="DOCTOR"):
    """A staff record with its own login; returns (staff, logged-in client)."""
    staff = _staff(owner_client, email=email, role=role, can_login=True,
                   password="staff-pass")
    login = anon_client.post("/api/auth/login",
                             json={"email": email, "password": "staff-pass"})
    assert login.status_code == 200, login.text
    anon_client.headers.update({"Authorization": f"Bearer {login.json()['token']}"})
    return staff, anon_client


class TestSelfService:

    def test_my_profile(self, owner_client, anon_client):
        staff, me = _self_service(owner_client, anon_client)
        resp = me.get("/api/staff/my-profile")
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["staff"]["id"] == staff["id"]
        assert body["staff"]["employee_id"] == staff["employee_id"]
        assert body["leave_balance"]["sick"] == {"total": 12, "used": 0,
                                                 "available": 12}
        assert body["leave_balance"]["earned"]["total"] == 15

    def test_login_without_staff_record(self, doctor_client):
        resp = doctor_client.get("/api/staff/my-profile")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Staff profile not found"

    def test_owner_and_patient_refused(self, owner_client, portal_client):
        assert owner_client.get("/api/staff/my-leaves").status_code == 403
        assert portal_client.get("/api/staff/my-profile").status_code == 403

    def test_apply_and_list(self, owner_client, anon_client):
        staff, me = _self_service(owner_client, anon_client, role="THERAPIST")
        start = date.today() + timedelta(days=10)
        resp = me.post("/api/staff/my-leaves",
                       json={"leave_type": "CASUAL",
                             "start_date": start.isoformat(),
                             "end_date": (start + timedelta(days=1)).isoformat(),
                             "reason": "Family function"})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["leave"]["status"] == "PENDING"
        assert body["leave"]["staff_id"] == staff["id"]
        assert body["leave"]["total_days"] == 2
        assert body["message"].startswith("Leave request submitted")

        mine = me.get("/api/staff/my-leaves").json()
        assert [lv["id"] for lv in mine["leaves"]] == [body["leave"]["id"]]
        assert me.get("/api/staff/my-leaves",
                      params={"status": "approved"}).json()["leaves"] == []

        # the owner reviews it from the clinic-wide list
        waiting = owner_client.get("/api/staff/leaves",
                                   params={"status": "PENDING"}).json()["leaves"]
        assert len(waiting) == 1

    def test_emergency_leave_is_approved_as_sick(self, owner_client, anon_client):
        _, me = _self_service(owner_client, anon_client)
        today = date.today().isoformat()
        resp = me.post("/api/staff/my-leaves",
                       json={"leave_type": "EMERGENCY",
                             "start_date": today, "end_date": today})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["message"] == "Emergency leave approved automatically"
        assert body["leave"]["leave_type"] == "SICK"
        assert body["leave"]["status"] == "APPROVED"
        assert body["leave"]["review_notes"] == "Auto-approved (Emergency Leave)"

        balance = me.get("/api/staff/my-leaves").json()["leave_balance"]
        assert balance["sick"]["used"] == 1

    def test_past_dates_rejected(self, owner_client, anon_client):
        _, me = _self_service(owner_client, anon_client)
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        resp = me.post("/api/staff/my-leaves",
                       json={"leave_type": "SICK",
                             "start_date": yesterday, "end_date": yesterday})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot apply leave for past dates"

    def test_balance_still_enforced(self, owner_client, anon_client):
        _, me = _self_service(owner_client, anon_client)
        start = date.today() + timedelta(days=3)
        resp = me.post("/api/staff/my-leaves",
                       json={"leave_type": "CASUAL",
                             "start_date": start.isoformat(),
                             "end_date": (start + timedelta(days=12)).isoformat()})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Insufficient casual leave balance")
