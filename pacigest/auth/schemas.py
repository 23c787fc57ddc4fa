"""
Auth Schemas - Pydantic models for registration, login and account management.
"""
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from datetime import datetime
from decimal import Decimal

from ..core.permissions import Role
from ..core.validators import reject_null
from .models import SubscriptionStatus, SubscriptionPlan

PASSWORD_MIN_LENGTH = 8


class ProfileFields(BaseModel):
    """Profile fields a doctor fills in at registration and may update later"""
    phone: Optional[str] = Field(None, max_length=30)
    specialty: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, max_length=50)
    consultation_fee: Optional[Decimal] = Field(None, ge=0)
    clinic_name: Optional[str] = Field(None, max_length=150)
    language: Optional[str] = Field(None, pattern="^(es|en)$")


class RegisterRequest(ProfileFields):
    """
    Doctor Registration Schema

    Fields:
    - email: Login email (stored lower-cased)
    - password: Plain text password, at least 8 characters
    - first_name / last_name: Doctor's name
    """
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class VerifyEmailRequest(BaseModel):
    user_id: int
    code: str = Field(..., min_length=1, max_length=12)


class EmailRequest(BaseModel):
    """Used by resend-verification and forgot-password"""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(EmailRequest):
    password: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)


class UpdateProfileRequest(ProfileFields):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_null(cls, value):
        return reject_null(value)


class UserResponse(BaseModel):
    """
    User Response Schema - Public view of a user row

    Password, verification and reset hashes are never exposed.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: Optional[Decimal] = None
    clinic_name: Optional[str] = None
    language: Optional[str] = None
    role: Role
    doctor_id: Optional[int] = None
    permissions: Optional[List[str]] = None
    is_active: bool
    email_verified: bool
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_end_date: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int
    email_sent: bool


class TokenResponse(BaseModel):
    """Session token issued at login and after email verification"""
    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserResponse
