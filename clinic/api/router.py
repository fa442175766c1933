# clinic/api/router.py
from fastapi import APIRouter

from clinic.api import (
    # Core
    routes_auth,
    routes_users,

    # Patients / appointments
    routes_patients,
    routes_appointments,
    routes_patient_portal,

    # Billing
    routes_billing,
    routes_billing_finance,

    # Clinical
    routes_pharmacy,
    routes_prescriptions,
    routes_therapy,
    routes_diet,

    # Back office
    routes_staff,
    routes_dashboard,
    routes_social,
)

api_router = APIRouter()

# ---- Core
api_router.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(routes_users.router, prefix="/users", tags=["users"])

# ---- Patients / appointments
api_router.include_router(routes_patients.router,
                          prefix="/patients",
                          tags=["patients"])
api_router.include_router(routes_appointments.router,
                          prefix="/appointments",
                          tags=["appointments"])
api_router.include_router(routes_patient_portal.router,
                          prefix="/patient-portal",
                          tags=["patient-portal"])

# ---- Billing
api_router.include_router(routes_billing.router,
                          prefix="/billing",
                          tags=["billing"])
api_router.include_router(routes_billing_finance.router,
                          prefix="/billing",
                          tags=["billing"])

# ---- Pharmacy (/categories, /medicines)
api_router.include_router(routes_pharmacy.router, tags=["pharmacy"])
api_router.include_router(routes_prescriptions.router,
                          prefix="/prescriptions",
                          tags=["prescriptions"])
api_router.include_router(routes_therapy.router,
                          prefix="/therapy",
                          tags=["therapy"])
api_router.include_router(routes_diet.router, prefix="/diet", tags=["diet"])

# ---- Back office
api_router.include_router(routes_staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(routes_dashboard.router,
                          prefix="/dashboard",
                          tags=["dashboard"])
api_router.include_router(routes_social.router,
                          prefix="/social",
                          tags=["social"])
