from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Text,
    JSON,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class DietPlan(Base):
    __tablename__ = "diet_plans"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    plan_number = Column(String(32), nullable=False, index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # VATA | PITTA | KAPHA | TRIDOSHA
    constitution = Column(String(16), nullable=False)
    # SPRING | SUMMER | MONSOON | AUTUMN | WINTER
    season = Column(String(16), nullable=False)

    # lists of strings
    morning_meal = Column(JSON, nullable=True)
    lunch_meal = Column(JSON, nullable=True)
    evening_meal = Column(JSON, nullable=True)
    # newline separated
    guidelines = Column(Text, nullable=True)
    restrictions = Column(Text, nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    # ACTIVE | COMPLETED | CANCELLED
    status = Column(String(16), default="ACTIVE", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    patient = relationship("Patient")
