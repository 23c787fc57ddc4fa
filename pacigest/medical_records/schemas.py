"""
Medical Record Schemas - Pydantic models for consultation records.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime

from ..core.validators import reject_null


class VitalSigns(BaseModel):
    """
    Vital signs taken during the consultation

    Fields:
    - blood_pressure: e.g. "120/80"
    - heart_rate: beats per minute
    - temperature: degrees Celsius
    - weight: kilograms
    - height: centimetres
    - oxygen_saturation: percent
    - respiratory_rate: breaths per minute
    """
    blood_pressure: Optional[str] = Field(None, pattern=r"^\d{2,3}/\d{2,3}$")
    heart_rate: Optional[int] = Field(None, ge=20, le=300)
    temperature: Optional[float] = Field(None, ge=30, le=45)
    weight: Optional[float] = Field(None, gt=0, le=500)
    height: Optional[float] = Field(None, gt=0, le=300)
    oxygen_saturation: Optional[int] = Field(None, ge=0, le=100)
    respiratory_rate: Optional[int] = Field(None, ge=0, le=100)


class MedicalRecordCreate(BaseModel):
    patient_id: int
    appointment_id: Optional[int] = None
    consultation_date: Optional[datetime] = None
    reason: str = Field(..., min_length=1, max_length=500)
    symptoms: List[str] = Field(default_factory=list)
    vital_signs: VitalSigns = Field(default_factory=VitalSigns)
    diagnosis: str = Field(..., min_length=1)
    icd_code: Optional[str] = Field(None, max_length=20)
    treatment: Optional[str] = None
    notes: Optional[str] = None


class MedicalRecordUpdate(BaseModel):
    consultation_date: Optional[datetime] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=500)
    symptoms: Optional[List[str]] = None
    vital_signs: Optional[VitalSigns] = None
    diagnosis: Optional[str] = Field(None, min_length=1)
    icd_code: Optional[str] = Field(None, max_length=20)
    treatment: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("consultation_date", "reason", "diagnosis")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class MedicalRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    appointment_id: Optional[int] = None
    consultation_date: datetime
    reason: str
    symptoms: Optional[List[str]] = None
    vital_signs: Optional[VitalSigns] = None
    bmi: Optional[float] = None
    diagnosis: str
    icd_code: Optional[str] = None
    treatment: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
