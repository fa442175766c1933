import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Text,
    JSON,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class TherapyFrequency(str, enum.Enum):
    DAILY = "DAILY"
    ALTERNATE_DAYS = "ALTERNATE_DAYS"
    WEEKLY = "WEEKLY"


class TherapyPlanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class TherapySessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class TherapyPlan(Base):
    __tablename__ = "therapy_plans"

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

    # ["ABHYANGA", "SHIRODHARA"]
    therapy_types = Column(JSON, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    # sessions per therapy type
    duration = Column(Integer, nullable=False)
    frequency = Column(String(20), nullable=False)
    session_times = Column(JSON, nullable=True)

    total_sessions = Column(Integer, nullable=False)
    completed_sessions = Column(Integer, default=0, nullable=False)
    price_per_session = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)

    status = Column(String(16),
                    default=TherapyPlanStatus.ACTIVE.value,
                    nullable=False)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    patient = relationship("Patient")
    sessions = relationship(
        "TherapySession",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="TherapySession.session_number",
    )


class TherapySession(Base):
    __tablename__ = "therapy_sessions"

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer,
                     ForeignKey("therapy_plans.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)
    session_number = Column(Integer, nullable=False)
    therapy_type = Column(String(60), nullable=False)

    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(20), nullable=False)
    status = Column(String(16),
                    default=TherapySessionStatus.SCHEDULED.value,
                    nullable=False)

    duration_minutes = Column(Integer, nullable=True)
    observations = Column(Text, nullable=True)
    vitals = Column(JSON, nullable=True)
    patient_feedback = Column(Text, nullable=True)
    discomfort = Column(Text, nullable=True)

    rescheduled_from = Column(Date, nullable=True)
    rescheduled_to = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    plan = relationship("TherapyPlan", back_populates="sessions")
