import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class UserRole(str, enum.Enum):
    OWNER = "OWNER"
    DOCTOR = "DOCTOR"
    STAFF = "STAFF"
    PATIENT = "PATIENT"


class User(Base):
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(191), unique=True,
                   nullable=False)  # <= 191 for utf8mb4 unique index
    phone = Column(String(30), nullable=True)
    password_hash = Column(String(255), nullable=False)

    # OWNER | DOCTOR | STAFF | PATIENT
    role = Column(String(16), nullable=False, default=UserRole.STAFF.value)
    is_active = Column(Boolean, default=True, nullable=False)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    clinic = relationship("Clinic")
    patient = relationship("Patient", back_populates="user", uselist=False)
    staff = relationship("Staff", back_populates="user", uselist=False)
