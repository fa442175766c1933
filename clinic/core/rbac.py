from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Set

from fastapi import HTTPException, status

from clinic.models.user import UserRole

# Modules each role may NOT open. OWNER is unrestricted; PATIENT is handled
# separately because it only ever reaches the portal.
BLOCKED_MODULES: Dict[str, Set[str]] = {
    UserRole.STAFF.value: {
        "prescriptions",
        "therapy",
        "diet",
        "reports",
        "social",
        "staff",
        "users",
    },
    UserRole.DOCTOR.value: {
        "staff",
        "users",
        "reports",
    },
}

CLINIC_ROLES = {
    UserRole.OWNER.value,
    UserRole.DOCTOR.value,
    UserRole.STAFF.value,
}


def role_of(user: Any) -> str:
    r = getattr(user, "role", None)
    if hasattr(r, "value"):
        r = r.value
    return str(r or "").upper()


def is_owner(user: Any) -> bool:
    return role_of(user) == UserRole.OWNER.value


def can_access(user: Any, module: str) -> bool:
    role = role_of(user)
    if role == UserRole.OWNER.value:
        return True
    if role not in CLINIC_ROLES:
        return False
    return module not in BLOCKED_MODULES.get(role, set())


def require_module(user: Any, module: str) -> None:
    if not can_access(user, module):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail=f"Access denied: {module}")


def require_roles(user: Any,
                  roles: Iterable[str],
                  message: Optional[str] = None) -> None:
    allowed = {str(getattr(r, "value", r)).upper() for r in roles}
    if role_of(user) not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=message or "Access denied",
        )
