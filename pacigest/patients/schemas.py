"""
Patient Schemas - Pydantic models for patient data validation and serialization.
"""
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from datetime import date, datetime

from ..core.validators import reject_null
from .models import Gender, PatientStatus

# Fields staff may change without the clinical editing capability
CONTACT_FIELDS = frozenset({"email", "phone", "address", "emergency_contact_name", "emergency_contact_phone"})


class PatientBase(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    emergency_contact_name: Optional[str] = Field(None, max_length=150)
    emergency_contact_phone: Optional[str] = Field(None, max_length=30)
    blood_type: Optional[str] = Field(None, pattern=r"^(A|B|AB|O)[+-]$")
    allergies: List[str] = Field(default_factory=list)
    chronic_diseases: List[str] = Field(default_factory=list)
    family_history: Optional[str] = None
    notes: Optional[str] = None


class PatientCreate(PatientBase):
    """
    Patient Creation Schema

    Fields:
    - first_name / last_name / date_of_birth / gender: Required demographics
    - everything else: Optional contact details and clinical profile
    """
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: Gender


class PatientUpdate(BaseModel):
    """Partial update; only the fields sent are changed"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    emergency_contact_name: Optional[str] = Field(None, max_length=150)
    emergency_contact_phone: Optional[str] = Field(None, max_length=30)
    blood_type: Optional[str] = Field(None, pattern=r"^(A|B|AB|O)[+-]$")
    allergies: Optional[List[str]] = None
    chronic_diseases: Optional[List[str]] = None
    family_history: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PatientStatus] = None

    @field_validator("first_name", "last_name", "date_of_birth", "gender", "status", "allergies", "chronic_diseases")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class PatientResponse(PatientBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medical_record_number: str
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    allergies: Optional[List[str]] = None
    chronic_diseases: Optional[List[str]] = None
    status: PatientStatus
    is_active: bool
    deleted_at: Optional[datetime] = None
    doctor_ids: List[int] = []
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
