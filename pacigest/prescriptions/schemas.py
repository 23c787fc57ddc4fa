"""
Prescription Schemas - Pydantic models for prescriptions and their medications.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
import enum

from ..core.validators import reject_null
from .models import PrescriptionStatus


class AdministrationRoute(str, enum.Enum):
    ORAL = "oral"
    INTRAVENOUS = "intravenous"
    INTRAMUSCULAR = "intramuscular"
    SUBCUTANEOUS = "subcutaneous"
    TOPICAL = "topical"
    INHALED = "inhaled"
    RECTAL = "rectal"
    OPHTHALMIC = "ophthalmic"
    OTIC = "otic"
    OTHER = "other"


class Medication(BaseModel):
    """
    One prescribed medication

    Fields:
    - name: Medication name
    - dosage: Amount per dose (e.g. "500 mg")
    - frequency: How often (e.g. "every 8 hours")
    - duration: For how long (e.g. "7 days")
    - route: Administration route
    - instructions: Extra instructions (optional)
    - quantity: Units to dispense (optional)
    """
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    duration: str = Field(..., min_length=1, max_length=100)
    route: AdministrationRoute = AdministrationRoute.ORAL
    instructions: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=1)


class PrescriptionCreate(BaseModel):
    patient_id: int
    medical_record_id: Optional[int] = None
    prescription_date: Optional[datetime] = None
    medications: List[Medication] = Field(..., min_length=1)
    diagnosis: Optional[str] = None
    general_instructions: Optional[str] = None
    valid_until: Optional[datetime] = None


class PrescriptionUpdate(BaseModel):
    medications: Optional[List[Medication]] = Field(None, min_length=1)
    diagnosis: Optional[str] = None
    general_instructions: Optional[str] = None
    valid_until: Optional[datetime] = None

    @field_validator("medications")
    @classmethod
    def medications_not_null(cls, value):
        return reject_null(value)


class CancelPrescriptionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prescription_number: str
    patient_id: int
    doctor_id: int
    medical_record_id: Optional[int] = None
    prescription_date: datetime
    medications: List[Medication]
    diagnosis: Optional[str] = None
    general_instructions: Optional[str] = None
    valid_until: Optional[datetime] = None
    status: PrescriptionStatus
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
