"""
Payment Schemas - Price quotes, payment requests and reviews.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal

from ..auth.models import SubscriptionPlan
from .models import BillingPeriod, PaymentStatus


class PriceQuote(BaseModel):
    plan: SubscriptionPlan
    billing_period: BillingPeriod
    number_of_doctors: int
    price_per_doctor: Decimal
    months: int
    discount: Decimal
    amount: Decimal


class PaymentRequest(BaseModel):
    """
    Payment Request Schema

    Fields:
    - plan / billing_period / number_of_doctors: What to buy
    - currency: ISO currency code of the transfer
    - payment_method / reference_number / user_notes: Transfer details
    """
    plan: SubscriptionPlan
    billing_period: BillingPeriod
    number_of_doctors: int = Field(1, ge=1)
    currency: str = Field("USD", pattern="^[A-Z]{3}$")
    payment_method: str = Field("bank_transfer", max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    user_notes: Optional[str] = None


class ApprovePaymentRequest(BaseModel):
    review_notes: Optional[str] = None


class RejectPaymentRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    plan: SubscriptionPlan
    billing_period: BillingPeriod
    number_of_doctors: int
    amount: Decimal
    currency: str
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    user_notes: Optional[str] = None
    status: PaymentStatus
    review_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
