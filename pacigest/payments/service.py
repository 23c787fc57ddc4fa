"""
Payment Service - Pricing, payment requests and their review.

Approving a payment activates the doctor's subscription for the paid period.
"""
import calendar
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from sqlalchemy.orm import Session, Query
from fastapi import Request
import logging

from ..auth.models import User, SubscriptionPlan, SubscriptionStatus
from ..config import settings
from ..core.audit_service import create_audit_log
from ..core.clock import utcnow
from ..exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..notifications import templates
from ..notifications.dispatch import deliver
from ..notifications.sender import NotificationSender
from .models import BillingPeriod, Payment, PaymentStatus
from .schemas import PaymentRequest, PriceQuote

# Set up logging
logger = logging.getLogger(__name__)

# Monthly price per doctor and the practice sizes each plan covers (max None = unbounded)
PLAN_RULES = {
    SubscriptionPlan.PREMIUM_INDIVIDUAL: (Decimal("20"), 1, 1),
    SubscriptionPlan.VIP_PRACTICE: (Decimal("20"), 2, 9),
    SubscriptionPlan.CORPORATE_PRO: (Decimal("15"), 10, 50),
    SubscriptionPlan.ENTERPRISE_HEALTH: (Decimal("12"), 51, None),
}

# Billing period -> (months, discount)
PERIOD_RULES = {
    BillingPeriod.MONTHLY: (1, Decimal("0")),
    BillingPeriod.QUARTERLY: (3, Decimal("0.15")),
    BillingPeriod.ANNUAL: (12, Decimal("0.25")),
}


def add_months(value: datetime, months: int) -> datetime:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def validate_plan_size(plan: SubscriptionPlan, number_of_doctors: int) -> None:
    """
    Raises:
        ValidationError: If the practice size does not fit the plan
    """
    _, minimum, maximum = PLAN_RULES[plan]
    if number_of_doctors < minimum or (maximum is not None and number_of_doctors > maximum):
        size = f"{minimum}+" if maximum is None else (f"{minimum}" if minimum == maximum else f"{minimum}-{maximum}")
        message = f"The {plan.value} plan is for {size} doctor(s)"
        raise ValidationError(message, errors=[{"field": "number_of_doctors", "message": message}])


def calculate_price(plan: SubscriptionPlan, billing_period: BillingPeriod, number_of_doctors: int = 1) -> PriceQuote:
    """
    Price of a plan for a billing period.

    Quarterly billing is 15% off three months, annual billing 25% off twelve.
    """
    validate_plan_size(plan, number_of_doctors)
    price_per_doctor = PLAN_RULES[plan][0]
    months, discount = PERIOD_RULES[billing_period]
    amount = price_per_doctor * number_of_doctors * months * (1 - discount)
    return PriceQuote(
        plan=plan,
        billing_period=billing_period,
        number_of_doctors=number_of_doctors,
        price_per_doctor=price_per_doctor,
        months=months,
        discount=discount,
        amount=amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    )


def is_billing_admin(user: User) -> bool:
    return user.email.lower() in {email.lower() for email in settings.billing_admin_emails}


def request_payment(db: Session, data: PaymentRequest, user: User, request: Optional[Request] = None) -> Payment:
    quote = calculate_price(data.plan, data.billing_period, data.number_of_doctors)
    payment = Payment(
        doctor_id=user.acting_doctor_id,
        plan=data.plan,
        billing_period=data.billing_period,
        number_of_doctors=data.number_of_doctors,
        amount=quote.amount,
        currency=data.currency,
        payment_method=data.payment_method,
        reference_number=data.reference_number,
        user_notes=data.user_notes,
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} requested by doctor {payment.doctor_id}: {payment.plan.value} {payment.amount}")
    create_audit_log(
        db,
        action="PAYMENT_REQUESTED",
        user_id=user.id,
        request=request,
        details={"payment_id": payment.id, "plan": payment.plan.value, "amount": str(payment.amount)},
    )
    return payment


def list_my_payments(db: Session, user: User) -> Query:
    return (
        db.query(Payment)
        .filter(Payment.doctor_id == user.acting_doctor_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )


def list_pending_payments(db: Session) -> Query:
    return db.query(Payment).filter(Payment.status == PaymentStatus.PENDING).order_by(Payment.created_at.asc(), Payment.id.asc())


def get_payment(db: Session, payment_id: int, user: User) -> Payment:
    """
    Raises:
        NotFoundError: If the payment does not exist
        ForbiddenError: If it belongs to another doctor and the user is not a billing admin
    """
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    if payment.doctor_id != user.acting_doctor_id and not is_billing_admin(user):
        raise ForbiddenError("You do not have access to this payment")
    return payment


def _get_pending(db: Session, payment_id: int) -> Payment:
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    if payment.status != PaymentStatus.PENDING:
        raise InvalidStateError(f"Payment is already {payment.status.value}", code="PAYMENT_ALREADY_REVIEWED")
    return payment


async def approve_payment(
    db: Session,
    sender: NotificationSender,
    payment_id: int,
    admin: User,
    review_notes: Optional[str] = None,
    request: Optional[Request] = None,
) -> Payment:
    """
    Approve a pending payment and activate the doctor's subscription for the paid period.

    Raises:
        InvalidStateError: If the payment was already reviewed
    """
    payment = _get_pending(db, payment_id)
    now = utcnow()
    months, _ = PERIOD_RULES[payment.billing_period]

    payment.status = PaymentStatus.APPROVED
    payment.review_notes = review_notes
    payment.reviewed_by = admin.id
    payment.reviewed_at = now
    payment.subscription_start_date = now
    payment.subscription_end_date = add_months(now, months)

    doctor = payment.doctor
    doctor.subscription_plan = payment.plan
    doctor.subscription_status = SubscriptionStatus.ACTIVE
    doctor.subscription_start_date = payment.subscription_start_date
    doctor.subscription_end_date = payment.subscription_end_date

    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} approved by {admin.id}; doctor {doctor.id} active until {payment.subscription_end_date}")
    create_audit_log(
        db,
        action="PAYMENT_APPROVED",
        user_id=admin.id,
        request=request,
        details={"payment_id": payment.id, "doctor_id": doctor.id, "plan": payment.plan.value},
    )

    await deliver(
        db,
        sender,
        templates.subscription_activated_email(
            doctor.email, doctor.first_name, payment.plan.value, payment.subscription_end_date
        ),
        user_id=admin.id,
        request=request,
    )
    return payment


def reject_payment(
    db: Session, payment_id: int, admin: User, reason: str, request: Optional[Request] = None
) -> Payment:
    payment = _get_pending(db, payment_id)
    payment.status = PaymentStatus.REJECTED
    payment.rejection_reason = reason
    payment.reviewed_by = admin.id
    payment.reviewed_at = utcnow()
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} rejected by {admin.id}")
    create_audit_log(
        db,
        action="PAYMENT_REJECTED",
        user_id=admin.id,
        request=request,
        details={"payment_id": payment.id, "reason": reason},
    )
    return payment
