"""
Payment Model - Subscription payments reviewed by billing administrators.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Numeric, Text, func
from sqlalchemy.orm import relationship
import enum

from ..database import Base
from ..auth.models import SubscriptionPlan


class BillingPeriod(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(Base):
    """
    Payment Model - Stores subscription payment requests

    Fields:
    - doctor_id: Doctor paying for the subscription
    - plan / billing_period / number_of_doctors: What is being bought
    - amount / currency: Price computed by the server
    - payment_method / reference_number / user_notes: Transfer details given by the doctor
    - status: pending until approved or rejected
    - review_notes / rejection_reason / reviewed_by / reviewed_at: Review outcome
    - subscription_start_date / subscription_end_date: Window granted on approval
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = Column(Enum(SubscriptionPlan, name="subscription_plan"), nullable=False)
    billing_period = Column(Enum(BillingPeriod, name="billing_period"), nullable=False)
    number_of_doctors = Column(Integer, nullable=False, default=1)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(String, default="bank_transfer")
    reference_number = Column(String, nullable=True)
    user_notes = Column(Text, nullable=True)

    status = Column(Enum(PaymentStatus, name="payment_status"), default=PaymentStatus.PENDING, index=True)
    review_notes = Column(Text, nullable=True)
    rejection_reason = Column(String, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    doctor = relationship("User", foreign_keys=[doctor_id])

    def __repr__(self):
        """String representation of the Payment model"""
        return f"<Payment(id={self.id}, doctor_id={self.doctor_id}, plan='{self.plan}', status='{self.status}')>"
