# clinic/utils/jwt.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from clinic.core.config import settings


def create_access_token(
    *,
    user_id: int,
    email: str,
    name: str,
    role: str,
    clinic_id: int,
    patient_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.utcnow()
    delta = expires_delta or timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "role": role,
        "clinic_id": clinic_id,  # clinic scope for every query
        "patient_id": patient_id,
        "iat": now,
        "exp": now + delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(raw_token: str) -> Optional[dict]:
    try:
        return jwt.decode(raw_token,
                          settings.JWT_SECRET,
                          algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
