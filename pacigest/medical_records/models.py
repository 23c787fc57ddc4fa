"""
Medical Record Model - Consultation notes written by a doctor for a patient.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Text, func
from sqlalchemy.orm import relationship

from ..database import Base


class MedicalRecord(Base):
    """
    Medical Record Model - Stores patient medical records

    Fields:
    - patient_id / doctor_id: Patient and authoring doctor
    - appointment_id: Appointment the consultation came from (optional)
    - consultation_date: When the consultation took place
    - reason / symptoms / vital_signs: What was observed
    - diagnosis / icd_code / treatment / notes: What was concluded
    - is_active / deleted_at: Soft delete marker
    """
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    consultation_date = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String, nullable=False)
    symptoms = Column(JSON, default=list)
    vital_signs = Column(JSON, default=dict)
    diagnosis = Column(Text, nullable=False)
    icd_code = Column(String, nullable=True)
    treatment = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    patient = relationship("Patient")

    def __repr__(self):
        """String representation of the MedicalRecord model"""
        return f"<MedicalRecord(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id})>"

    @property
    def bmi(self):
        """Body mass index from weight (kg) and height (cm), when both were taken."""
        vitals = self.vital_signs or {}
        weight, height = vitals.get("weight"), vitals.get("height")
        if not weight or not height:
            return None
        meters = height / 100
        return round(weight / (meters * meters), 2)
