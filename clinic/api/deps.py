# clinic/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from clinic.core.config import settings
from clinic.core.rbac import CLINIC_ROLES, role_of
from clinic.db.session import SessionLocal
from clinic.models.user import User, UserRole
from clinic.utils.jwt import decode_token


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _raw_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    # Cookie first (browser), bearer header as fallback (API clients)
    return (request.cookies.get(settings.AUTH_COOKIE_NAME)
            or _extract_bearer(authorization))


def current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    raw = _raw_token(request, authorization)
    if not raw:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = decode_token(raw)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user: Optional[User] = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    if payload.get("clinic_id") != user.clinic_id:
        raise HTTPException(status_code=401, detail="Invalid token scope")
    return user


def clinic_user(user: User = Depends(current_user)) -> User:
    """Any clinic-side account (OWNER, DOCTOR, STAFF)."""
    if role_of(user) not in CLINIC_ROLES:
        raise HTTPException(status_code=403, detail="Access denied")
    return user


def owner_user(user: User = Depends(current_user)) -> User:
    if role_of(user) != UserRole.OWNER.value:
        raise HTTPException(status_code=403,
                            detail="Access denied. Owner only.")
    return user


def patient_user(user: User = Depends(current_user)) -> User:
    if role_of(user) != UserRole.PATIENT.value:
        raise HTTPException(status_code=403,
                            detail="Access denied. Patients only.")
    return user
