"""
Payment Router - Pricing, payment requests and billing review.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize, get_current_user, require_billing_admin
from ..auth.models import User, SubscriptionPlan
from ..core.pagination import PageParams, PageResponse, paginate
from ..core.permissions import Capability
from ..core.responses import DataResponse
from ..database import get_db
from ..notifications.sender import NotificationSender, get_notification_sender
from .models import BillingPeriod
from .schemas import ApprovePaymentRequest, PaymentRequest, PaymentResponse, PriceQuote, RejectPaymentRequest
from . import service

router = APIRouter()

can_pay = authorize(Capability.MANAGE_SETTINGS)


@router.get("/calculate-price", response_model=DataResponse[PriceQuote])
def calculate_price(
    plan: SubscriptionPlan = Query(..., description="Plan to price"),
    billing_period: BillingPeriod = Query(BillingPeriod.MONTHLY, description="Billing period"),
    number_of_doctors: int = Query(1, ge=1, description="Doctors in the practice"),
):
    """
    Public price calculator.
    """
    return DataResponse(data=service.calculate_price(plan, billing_period, number_of_doctors))


@router.post("/request", response_model=DataResponse[PaymentResponse], status_code=status.HTTP_201_CREATED)
def request_payment(
    data: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_pay),
):
    payment = service.request_payment(db, data, current_user, request)
    return DataResponse(
        message="Payment request created. It will be reviewed once the transfer arrives.",
        data=PaymentResponse.model_validate(payment),
    )


@router.get("/my-payments", response_model=PageResponse[PaymentResponse])
def my_payments(
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_pay),
):
    return paginate(service.list_my_payments(db, current_user), page_params, PaymentResponse)


@router.get("/admin/pending", response_model=PageResponse[PaymentResponse])
def pending_payments(
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    admin: User = Depends(require_billing_admin),
):
    return paginate(service.list_pending_payments(db), page_params, PaymentResponse)


@router.get("/{payment_id}", response_model=DataResponse[PaymentResponse])
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return DataResponse(data=PaymentResponse.model_validate(service.get_payment(db, payment_id, current_user)))


@router.put("/{payment_id}/approve", response_model=DataResponse[PaymentResponse])
async def approve_payment(
    payment_id: int,
    data: ApprovePaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
    admin: User = Depends(require_billing_admin),
):
    payment = await service.approve_payment(db, sender, payment_id, admin, data.review_notes, request)
    return DataResponse(message="Payment approved and subscription activated", data=PaymentResponse.model_validate(payment))


@router.put("/{payment_id}/reject", response_model=DataResponse[PaymentResponse])
def reject_payment(
    payment_id: int,
    data: RejectPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_billing_admin),
):
    payment = service.reject_payment(db, payment_id, admin, data.reason, request)
    return DataResponse(message="Payment rejected", data=PaymentResponse.model_validate(payment))
