import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class AppointmentStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ALTERNATIVE_PROPOSED = "ALTERNATIVE_PROPOSED"
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DECLINED = "DECLINED"
    NO_SHOW = "NO_SHOW"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)

    # Either a registered patient or a walk-in guest
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=True,
                        index=True)
    guest_name = Column(String(191), nullable=True)
    guest_phone = Column(String(30), nullable=True)

    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(20), nullable=False)  # "10:30 AM"
    duration = Column(Integer, default=30, nullable=False)  # minutes
    reason = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(24),
                    default=AppointmentStatus.SCHEDULED.value,
                    nullable=False)

    # Set when the clinic proposes another slot for a portal request
    alternative_date = Column(Date, nullable=True)
    alternative_time = Column(String(20), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    patient = relationship("Patient")
