"""
Authentication routes.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
import logging

from ..core.responses import MessageResponse
from ..core.middleware import email_limiter, login_limiter, password_reset_limiter, register_limiter
from ..database import get_db
from ..notifications.sender import NotificationSender, get_notification_sender
from . import service
from .dependencies import get_current_user
from .models import User
from .schemas import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
    UpdateProfileRequest,
    UserEnvelope,
    UserResponse,
    VerifyEmailRequest,
)

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()

GENERIC_RESET_MESSAGE = "If the email is registered, a password reset link has been sent"

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_limiter)],
)
async def register_route(
    data: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    """
    Register a doctor account. A 6-digit code is emailed to verify the address.
    """
    user, email_sent = await service.register(db, sender, data, request)
    message = "Account created. Check your email for the verification code."
    if not email_sent:
        message = "Account created but the verification email could not be sent. Use resend verification."
    return RegisterResponse(message=message, user_id=user.id, email_sent=email_sent)

@router.post("/verify-email", response_model=TokenResponse, dependencies=[Depends(email_limiter)])
async def verify_email_route(
    data: VerifyEmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    token, user = await service.verify_email(db, sender, data.user_id, data.code, request)
    return TokenResponse(message="Email verified", token=token, user=UserResponse.model_validate(user))

@router.post("/resend-verification", response_model=MessageResponse, dependencies=[Depends(email_limiter)])
async def resend_verification_route(
    data: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    await service.resend_verification(db, sender, data.email, request)
    return MessageResponse(message="If the account exists and is unverified, a new code has been sent")

@router.post("/login", response_model=TokenResponse, dependencies=[Depends(login_limiter)])
def login_route(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    token, user = service.login(db, data.email, data.password, request)
    return TokenResponse(message="Login successful", token=token, user=UserResponse.model_validate(user))

@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(password_reset_limiter)])
async def forgot_password_route(
    data: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    await service.forgot_password(db, sender, data.email, request)
    return MessageResponse(message=GENERIC_RESET_MESSAGE)

@router.post("/reset-password", response_model=MessageResponse, dependencies=[Depends(password_reset_limiter)])
async def reset_password_route(
    data: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    await service.reset_password(db, sender, data.token, data.new_password, request)
    return MessageResponse(message="Password has been reset, you can now log in")

@router.get("/me", response_model=UserEnvelope)
def me_route(current_user: User = Depends(get_current_user)):
    return UserEnvelope(data=UserResponse.model_validate(current_user))

@router.put("/update-profile", response_model=UserEnvelope)
def update_profile_route(
    data: UpdateProfileRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = service.update_profile(db, current_user, data)
    return UserEnvelope(message="Profile updated", data=UserResponse.model_validate(user))

@router.put("/change-password", response_model=MessageResponse)
async def change_password_route(
    data: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
    current_user: User = Depends(get_current_user),
):
    await service.change_password(db, sender, current_user, data.current_password, data.new_password, request)
    return MessageResponse(message="Password changed")
