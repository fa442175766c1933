import enum
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
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class PrescriptionStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    DISPENSED = "DISPENSED"
    CANCELLED = "CANCELLED"


class Prescription(Base):
    __tablename__ = "prescriptions"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "prescription_no",
                                       name="uq_prescription_no"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    prescription_no = Column(Integer, nullable=False)

    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    chief_complaints = Column(Text, nullable=False)
    symptoms = Column(Text, nullable=True)
    diagnosis = Column(Text, nullable=True)
    # {"bp": "120/80", "pulse": 72, ...}
    vitals = Column(JSON, nullable=True)
    instructions = Column(Text, nullable=True)
    dietary_advice = Column(Text, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    status = Column(String(16),
                    default=PrescriptionStatus.DRAFT.value,
                    nullable=False)
    dispensed_at = Column(DateTime, nullable=True)
    dispensed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    patient = relationship("Patient")
    medicines = relationship(
        "PrescriptionMedicine",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionMedicine.order_index",
    )


class PrescriptionMedicine(Base):
    __tablename__ = "prescription_medicines"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer,
                             ForeignKey("prescriptions.id",
                                        ondelete="CASCADE"),
                             nullable=False,
                             index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)

    dosage_morning = Column(String(20), nullable=True)
    dosage_afternoon = Column(String(20), nullable=True)
    dosage_evening = Column(String(20), nullable=True)
    dosage_night = Column(String(20), nullable=True)
    duration = Column(Integer, nullable=True)
    duration_unit = Column(String(10), default="DAYS", nullable=False)
    timing = Column(String(40), default="After Food", nullable=False)
    quantity_needed = Column(Integer, default=1, nullable=False)
    unit_type = Column(String(20), default="Strip", nullable=False)
    instructions = Column(String(500), nullable=True)
    order_index = Column(Integer, default=0, nullable=False)

    prescription = relationship("Prescription", back_populates="medicines")
    medicine = relationship("Medicine")
