"""
Appointment Model - Scheduled slots between a doctor and a patient.

Status moves forward only: scheduled -> confirmed -> completed, with
cancellation allowed before completion. Cancelled and completed are final.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Numeric, Text, func
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class AppointmentStatus(str, enum.Enum):
    """Enum for appointment status"""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AppointmentType(str, enum.Enum):
    FIRST_VISIT = "first_visit"
    FOLLOW_UP = "follow_up"
    URGENT = "urgent"
    CHECK_UP = "check_up"
    SURGERY = "surgery"
    OTHER = "other"


class Appointment(Base):
    """
    Appointment Model - Stores appointment information

    Fields:
    - appointment_number: Generated APT-YYYYMMDD-NNNN identifier
    - patient_id / doctor_id / created_by: Who the appointment is for, with, and by
    - scheduled_at / duration_minutes: When and how long
    - status: Current status of the appointment
    - confirmed_* / cancelled_* / completed_at: Transition audit trail
    - reminder_24h_sent_at / reminder_2h_sent_at: Set once the reminder went out
    - is_active / deleted_at: Soft delete marker
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_number = Column(String, unique=True, index=True, nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, default=30)
    appointment_type = Column(Enum(AppointmentType, name="appointment_type"), default=AppointmentType.FOLLOW_UP)
    reason = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    consultation_fee = Column(Numeric(10, 2), default=0)
    status = Column(
        Enum(AppointmentStatus, name="appointment_status"), default=AppointmentStatus.SCHEDULED, index=True
    )

    confirmed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    reminder_24h_sent_at = Column(DateTime(timezone=True), nullable=True)
    reminder_2h_sent_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    patient = relationship("Patient")
    doctor = relationship("User", foreign_keys=[doctor_id])

    def __repr__(self):
        """String representation of the Appointment model"""
        return f"<Appointment(id={self.id}, number='{self.appointment_number}', status='{self.status}')>"
