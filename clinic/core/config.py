# clinic/core/config.py
import os
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Clinic Management API")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- Database ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "clinic_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "clinic")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # Full URL wins over the MySQL parts (sqlite for local runs)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))
    AUTH_COOKIE_NAME: str = os.getenv("AUTH_COOKIE_NAME", "auth-token")
    AUTH_COOKIE_SECURE: bool = _flag("AUTH_COOKIE_SECURE")

    # Shared secret for the external scheduler hitting /social/cron/*
    CRON_SECRET: str = os.getenv("CRON_SECRET", "")

    # ---------- Billing flags ----------
    BILLING_LEDGER_ON_CREATE: bool = _flag("BILLING_LEDGER_ON_CREATE")
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

    # ---------- Seed ----------
    DEFAULT_CLINIC_NAME: str = os.getenv("DEFAULT_CLINIC_NAME",
                                         "Ayurveda Clinic")
    DEFAULT_OWNER_EMAIL: str = os.getenv("DEFAULT_OWNER_EMAIL",
                                         "owner@clinic.local")
    DEFAULT_OWNER_PASSWORD: str = os.getenv("DEFAULT_OWNER_PASSWORD",
                                            "ChangeMe@123")

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+{self.DB_DRIVER}://{quote_plus(self.MYSQL_USER)}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DB}?charset=utf8mb4"
        )


settings = Settings()
