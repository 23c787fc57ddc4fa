"""
Staff Schemas - Accounts a doctor creates for assistants.
"""
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..core.permissions import validate_staff_grant
from ..core.validators import reject_null


class StaffCreate(BaseModel):
    """
    Staff Creation Schema

    Fields:
    - email / first_name / last_name / phone: Staff identity
    - permissions: Capability names to grant; the staff defaults when omitted
    """
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    permissions: Optional[List[str]] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return sorted(capability.value for capability in validate_staff_grant(value))


class StaffUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("first_name", "last_name", "permissions", "is_active", mode="before")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return sorted(capability.value for capability in validate_staff_grant(value))
