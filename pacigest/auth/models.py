"""
User Model - Doctors and the staff accounts they employ.

A single table holds both roles. Staff rows point at their employing doctor
and carry the capability flags that doctor granted. Subscription and trial
state live on doctor rows only.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Numeric, JSON, func
from sqlalchemy.orm import relationship
import enum

from ..database import Base
from ..core.permissions import Role


class SubscriptionStatus(str, enum.Enum):
    """Billing state of a doctor's account"""
    TRIAL = "trial"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SubscriptionPlan(str, enum.Enum):
    """Plans a doctor can pay for"""
    PREMIUM_INDIVIDUAL = "premium_individual"
    VIP_PRACTICE = "vip_practice"
    CORPORATE_PRO = "corporate_pro"
    ENTERPRISE_HEALTH = "enterprise_health"


class User(Base):
    """
    User Model - Stores credentials, profile, permissions and subscription state

    Fields:
    - email: Unique, lower-cased login
    - password_hash: bcrypt hash of the password
    - role: doctor or staff
    - doctor_id: Employing doctor (staff only)
    - permissions: Capability names granted to a staff account
    - email_verified / verification_code_hash / verification_code_expires: email verification state
    - reset_token_hash / reset_token_expires: pending password reset
    - subscription_*: plan, status and window of the doctor's subscription
    - trial_ends_at: End of the free trial started at registration
    - trial_reminder_sent_at / trial_expired_notified_at: scheduler markers
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    specialty = Column(String, nullable=True)
    license_number = Column(String, nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    clinic_name = Column(String, nullable=True)
    language = Column(String, default="es")

    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.DOCTOR)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    permissions = Column(JSON, nullable=True)

    is_active = Column(Boolean, default=True)
    email_verified = Column(Boolean, default=False)
    verification_code_hash = Column(String, nullable=True)
    verification_code_expires = Column(DateTime(timezone=True), nullable=True)
    reset_token_hash = Column(String, nullable=True, index=True)
    reset_token_expires = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)

    subscription_plan = Column(Enum(SubscriptionPlan, name="subscription_plan"), nullable=True)
    subscription_status = Column(
        Enum(SubscriptionStatus, name="subscription_status"), default=SubscriptionStatus.TRIAL
    )
    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_end_date = Column(DateTime(timezone=True), nullable=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    trial_reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    trial_expired_notified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    doctor = relationship("User", remote_side=[id], back_populates="staff")
    staff = relationship("User", back_populates="doctor")

    def __repr__(self):
        """String representation of the User model"""
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def acting_doctor_id(self) -> int:
        """The doctor whose data this user works on: itself, or the employer for staff."""
        if self.role == Role.STAFF:
            return self.doctor_id
        return self.id
