"""
Prescription Model - Medications prescribed by a doctor.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, JSON, Text, func
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class PrescriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Prescription(Base):
    """
    Prescription Model - Stores prescriptions

    Fields:
    - prescription_number: Generated RX-YYYYMMDD-NNNN identifier
    - patient_id / doctor_id / medical_record_id: Who and what it was written for
    - medications: List of medication entries (name, dosage, frequency, duration, route, ...)
    - valid_until: After this date an active prescription counts as expired
    - status: active until cancelled, completed or expired
    """
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    prescription_number = Column(String, unique=True, index=True, nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    medical_record_id = Column(Integer, ForeignKey("medical_records.id", ondelete="SET NULL"), nullable=True)
    prescription_date = Column(DateTime(timezone=True), nullable=False)
    medications = Column(JSON, nullable=False)
    diagnosis = Column(Text, nullable=True)
    general_instructions = Column(Text, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    status = Column(Enum(PrescriptionStatus, name="prescription_status"), default=PrescriptionStatus.ACTIVE)
    cancellation_reason = Column(String, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    patient = relationship("Patient")

    def __repr__(self):
        """String representation of the Prescription model"""
        return f"<Prescription(id={self.id}, number='{self.prescription_number}', status='{self.status}')>"
