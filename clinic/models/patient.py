from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


def format_patient_id(registration_no: int) -> str:
    return f"P{int(registration_no or 0):06d}"


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        UniqueConstraint("clinic_id",
                         "registration_no",
                         name="uq_patient_clinic_regno"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)

    # Per-clinic running number, shown as P000001
    registration_no = Column(Integer, nullable=False)

    full_name = Column(String(191), nullable=False, index=True)
    phone_number = Column(String(30), nullable=False, index=True)
    email = Column(String(191), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)
    blood_group = Column(String(8), nullable=True)
    address = Column(Text, nullable=True)

    # VATA | PITTA | KAPHA | VATA_PITTA | ... (free text from the UI)
    constitution_type = Column(String(32), nullable=True)
    medical_history = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)

    # Portal login, if one was created
    user_id = Column(Integer,
                     ForeignKey("users.id"),
                     nullable=True,
                     unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    user = relationship("User", back_populates="patient")
    bills = relationship("Bill", back_populates="patient")

    @property
    def registration_id(self) -> str:
        return format_patient_id(self.registration_no)
