"""
Appointment Schemas - Pydantic models for appointment data validation and serialization.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from decimal import Decimal

from ..core.validators import reject_null
from .models import AppointmentStatus, AppointmentType


class AppointmentCreate(BaseModel):
    """
    Appointment Creation Schema

    Fields:
    - patient_id: Patient linked to the acting doctor
    - scheduled_at: Start time (naive values are read as UTC)
    - duration_minutes: 15 to 240 minutes, 30 by default
    - appointment_type: Kind of visit
    - reason: Reason for the visit
    - consultation_fee: Defaults to the doctor's fee
    """
    patient_id: int
    scheduled_at: datetime
    duration_minutes: int = Field(30, ge=15, le=240)
    appointment_type: AppointmentType = AppointmentType.FOLLOW_UP
    reason: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = None
    consultation_fee: Optional[Decimal] = Field(None, ge=0)


class AppointmentUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=240)
    appointment_type: Optional[AppointmentType] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=500)
    notes: Optional[str] = None
    consultation_fee: Optional[Decimal] = Field(None, ge=0)

    @field_validator("scheduled_at", "duration_minutes", "appointment_type", "reason")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class CancelAppointmentRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_number: str
    patient_id: int
    doctor_id: int
    created_by: Optional[int] = None
    scheduled_at: datetime
    duration_minutes: int
    appointment_type: AppointmentType
    reason: str
    notes: Optional[str] = None
    consultation_fee: Optional[Decimal] = None
    status: AppointmentStatus
    confirmed_by: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    reminder_24h_sent_at: Optional[datetime] = None
    reminder_2h_sent_at: Optional[datetime] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
