# clinic/core/security.py
from passlib.context import CryptContext

from clinic.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def verify_password(raw: str, hashed: str) -> bool:
    """
    Safe wrapper around passlib verify: malformed hashes count as a mismatch.
    """
    if not raw or not hashed:
        return False
    try:
        return pwd_context.verify(raw, hashed)
    except ValueError:
        return False
