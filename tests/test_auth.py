"""Login, registration, session and role gating."""

import pytest

from clinic.core.config import settings
from clinic.core.rbac import can_access, require_module
from clinic.models.user import User

from .conftest import PASSWORD


class TestLogin:

    def test_owner_login(self, anon_client, owner):
        resp = anon_client.post("/api/auth/login",
                                json={"email": "OWNER@test.local",
                                      "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["user"]["role"] == "OWNER"
        assert body["redirect_to"] == "/dashboard"
        assert body["token"]
        assert settings.AUTH_COOKIE_NAME in resp.cookies

    def test_wrong_password(self, anon_client, owner):
        resp = anon_client.post("/api/auth/login",
                                json={"email": "owner@test.local",
                                      "password": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid email or password"}

    def test_missing_fields(self, anon_client, owner):
        resp = anon_client.post("/api/auth/login", json={"email": "owner@test.local"})
        assert resp.status_code == 400

    def test_deactivated(self, anon_client, db, doctor):
        doctor.is_active = False
        db.commit()
        resp = anon_client.post("/api/auth/login",
                                json={"email": "doctor@test.local",
                                      "password": PASSWORD})
        assert resp.status_code == 403


class TestRegistration:

    def _register(self, client, **extra):
        body = {
            "full_name": "Ravi Kumar",
            "email": "ravi.kumar@gmail.com",
            "password": "longenough",
            "phone_number": "+91 98450 12345",
        }
        body.update(extra)
        return client.post("/api/auth/register", json=body)

    def test_creates_patient_and_session(self, anon_client, clinic_row):
        resp = self._register(anon_client)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["patient"]["registration_id"] == "P000001"
        assert body["redirect_to"] == "/patient-portal"
        assert body["user"]["patient_id"] == body["patient"]["id"]

    def test_short_password(self, anon_client, clinic_row):
        resp = self._register(anon_client, password="short")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Password must be at least 8 characters long"

    def test_duplicate_email(self, anon_client, clinic_row):
        self._register(anon_client)
        resp = self._register(anon_client)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Email already registered"

    def test_bad_email(self, anon_client, clinic_row):
        resp = self._register(anon_client, email="not-an-email")
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("email:")

    def test_phone_login(self, anon_client, clinic_row):
        self._register(anon_client)
        resp = anon_client.post("/api/auth/patient-login",
                                json={"login_method": "phone",
                                      "phone": "9845012345",
                                      "patient_id": "p000001",
                                      "password": "longenough"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["user"]["role"] == "PATIENT"

    def test_phone_login_wrong_id(self, anon_client, clinic_row):
        self._register(anon_client)
        resp = anon_client.post("/api/auth/patient-login",
                                json={"login_method": "phone",
                                      "phone": "9845012345",
                                      "patient_id": "P000002",
                                      "password": "longenough"})
        assert resp.status_code == 401


class TestSession:

    def test_me(self, owner_client, owner):
        resp = owner_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "owner@test.local"

    def test_requires_token(self, anon_client):
        resp = anon_client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Not authenticated"

    def test_garbage_token(self, anon_client):
        resp = anon_client.get("/api/auth/me",
                               headers={"Authorization": "Bearer abc.def.ghi"})
        assert resp.status_code == 401

    def test_change_password(self, owner_client, anon_client, owner):
        resp = owner_client.post("/api/auth/change-password",
                                 json={"current_password": PASSWORD,
                                       "new_password": "brand-new-pass"})
        assert resp.status_code == 200
        login = anon_client.post("/api/auth/login",
                                 json={"email": "owner@test.local",
                                       "password": "brand-new-pass"})
        assert login.status_code == 200


class TestUsers:

    def test_owner_creates_user(self, owner_client):
        resp = owner_client.post("/api/users",
                                 json={"name": "New Doc",
                                       "email": "newdoc@gmail.com",
                                       "password": "password1",
                                       "role": "DOCTOR"})
        assert resp.status_code == 201
        assert resp.json()["role"] == "DOCTOR"

    def test_doctor_cannot_manage_users(self, doctor_client):
        assert doctor_client.get("/api/users").status_code == 403

    def test_owner_cannot_demote_self(self, owner_client, owner):
        resp = owner_client.patch(f"/api/users/{owner.id}", json={"role": "STAFF"})
        assert resp.status_code == 400


class TestModuleAccess:

    @pytest.mark.parametrize("role,module,allowed", [
        ("OWNER", "reports", True),
        ("DOCTOR", "prescriptions", True),
        ("DOCTOR", "reports", False),
        ("DOCTOR", "staff", False),
        ("STAFF", "billing", True),
        ("STAFF", "therapy", False),
        ("STAFF", "social", False),
        ("PATIENT", "billing", False),
    ])
    def test_matrix(self, role, module, allowed):
        assert can_access(User(role=role), module) is allowed

    def test_require_module_raises(self):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc:
            require_module(User(role="STAFF"), "diet")
        assert exc.value.status_code == 403
