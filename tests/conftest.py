"""Shared fixtures: in-memory database, seeded clinic and per-role clients."""

import os

# must be set before clinic.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CRON_SECRET"] = "cron-test-secret"

import pytest
from fastapi.testclient import TestClient

import clinic.models  # noqa: E402,F401
from clinic.core.security import hash_password
from clinic.db.base import Base
from clinic.db.session import SessionLocal, engine
from clinic.main import app
from clinic.models.clinic import Clinic
from clinic.models.patient import Patient
from clinic.models.user import User, UserRole
from clinic.services.patient_accounts import next_registration_no
from clinic.utils.jwt import create_access_token

PASSWORD = "secret-pass-1"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def clinic_row(db):
    c = Clinic(name="Test Clinic")
    db.add(c)
    db.commit()
    return c


def _make_user(db, clinic_row, role, email):
    u = User(
        clinic_id=clinic_row.id,
        name=f"{role.title()} User",
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=True,
    )
    db.add(u)
    db.commit()
    return u


@pytest.fixture()
def owner(db, clinic_row):
    return _make_user(db, clinic_row, UserRole.OWNER.value, "owner@test.local")


@pytest.fixture()
def doctor(db, clinic_row):
    return _make_user(db, clinic_row, UserRole.DOCTOR.value, "doctor@test.local")


@pytest.fixture()
def staff_user(db, clinic_row):
    return _make_user(db, clinic_row, UserRole.STAFF.value, "staff@test.local")


@pytest.fixture()
def patient(db, clinic_row):
    p = Patient(
        clinic_id=clinic_row.id,
        registration_no=next_registration_no(db, clinic_row.id),
        full_name="Asha Menon",
        phone_number="9876543210",
        constitution_type="VATA",
    )
    db.add(p)
    db.commit()
    return p


def token_for(user, patient_id=None):
    return create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        clinic_id=user.clinic_id,
        patient_id=patient_id,
    )


def client_for(user, patient_id=None):
    client = TestClient(app)
    client.headers.update(
        {"Authorization": f"Bearer {token_for(user, patient_id)}"})
    return client


@pytest.fixture()
def anon_client(db):
    return TestClient(app)


@pytest.fixture()
def owner_client(owner):
    return client_for(owner)


@pytest.fixture()
def doctor_client(doctor):
    return client_for(doctor)


@pytest.fixture()
def staff_client(staff_user):
    return client_for(staff_user)


@pytest.fixture()
def portal_user(db, clinic_row, patient):
    u = _make_user(db, clinic_row, UserRole.PATIENT.value, "asha@test.local")
    patient.user_id = u.id
    db.commit()
    return u


@pytest.fixture()
def portal_client(portal_user, patient):
    return client_for(portal_user, patient_id=patient.id)
