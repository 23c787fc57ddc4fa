"""
Authentication service layer for business logic.

Every state-changing call commits first and then sends exactly one email; a
failed send is logged and audited but the change stays.
"""
import logging
from datetime import timedelta
from typing import Optional, Tuple

from fastapi import Request
from sqlalchemy.orm import Session

from ..config import settings
from ..core.audit_service import create_audit_log
from ..core.clock import utcnow
from ..core.permissions import Role
from ..core.security import (
    hash_password,
    verify_password,
    create_access_token,
    generate_verification_code,
    generate_secure_reset_token,
    hash_token,
    verify_token_hash,
    is_token_expired,
    get_token_expiry_time,
)
from ..exceptions import (
    AuthError,
    ConflictError,
    ExpiredCodeError,
    InvalidCodeError,
    ValidationError,
)
from ..notifications.dispatch import deliver
from ..notifications.sender import NotificationSender
from ..notifications import templates
from .models import User, SubscriptionStatus
from .schemas import RegisterRequest, UpdateProfileRequest

# Set up logging
logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    """Sign a session token carrying the user id and role."""
    return create_access_token({"sub": str(user.id), "role": Role(user.role).value})


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def _set_verification_code(user: User) -> str:
    code = generate_verification_code()
    user.verification_code_hash = hash_token(code)
    user.verification_code_expires = get_token_expiry_time(settings.verification_code_ttl_minutes)
    return code


async def register(
    db: Session,
    sender: NotificationSender,
    data: RegisterRequest,
    request: Optional[Request] = None,
) -> Tuple[User, bool]:
    """
    Register a new doctor account on a free trial.

    Args:
        db: Database session
        sender: Notification sender
        data: Validated registration payload
        request: FastAPI request object for audit logging

    Returns:
        Tuple of the unverified user and whether the verification email went out

    Raises:
        ConflictError: If the email is already registered
    """
    logger.info(f"Registration attempt for email: {data.email}")

    if get_user_by_email(db, data.email):
        logger.warning(f"Registration failed: Email {data.email} already registered")
        raise ConflictError("Email already registered", code="EMAIL_EXISTS")

    now = utcnow()
    profile = data.model_dump(exclude={"email", "password"}, exclude_none=True)
    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        role=Role.DOCTOR,
        is_active=True,
        email_verified=False,
        subscription_status=SubscriptionStatus.TRIAL,
        subscription_start_date=now,
        trial_ends_at=now + timedelta(days=settings.trial_days),
        **profile,
    )
    code = _set_verification_code(user)

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Doctor account created: {user.id}")
    create_audit_log(db, action="USER_REGISTERED", user_id=user.id, request=request, details={"email": user.email})

    email_sent = await deliver(
        db,
        sender,
        templates.verification_code_email(user.email, user.first_name, code, settings.verification_code_ttl_minutes),
        user_id=user.id,
        request=request,
    )
    return user, email_sent


async def verify_email(
    db: Session,
    sender: NotificationSender,
    user_id: int,
    code: str,
    request: Optional[Request] = None,
) -> Tuple[str, User]:
    """
    Confirm the 6-digit code sent at registration.

    Returns:
        Tuple of the session token and the verified user

    Raises:
        ConflictError: If the email is already verified
        InvalidCodeError: If the code does not match or none is pending
        ExpiredCodeError: If the code matches but has expired
    """
    user = db.get(User, user_id)
    if not user:
        raise InvalidCodeError("Invalid verification code", code="INVALID_CODE")

    if user.email_verified:
        raise ConflictError("Email already verified", code="ALREADY_VERIFIED")

    if not verify_token_hash(code.strip(), user.verification_code_hash):
        logger.warning(f"Wrong verification code for user {user.id}")
        create_audit_log(db, action="EMAIL_VERIFICATION_FAILED", user_id=user.id, request=request)
        raise InvalidCodeError("Invalid verification code", code="INVALID_CODE")

    if is_token_expired(user.verification_code_expires):
        logger.warning(f"Expired verification code for user {user.id}")
        raise ExpiredCodeError("Verification code has expired, request a new one", code="CODE_EXPIRED")

    user.email_verified = True
    user.verification_code_hash = None
    user.verification_code_expires = None
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    logger.info(f"Email verified for user {user.id}")
    create_audit_log(db, action="EMAIL_VERIFIED", user_id=user.id, request=request)

    await deliver(
        db,
        sender,
        templates.welcome_email(user.email, user.first_name, user.trial_ends_at),
        user_id=user.id,
        request=request,
    )
    return issue_token(user), user


async def resend_verification(
    db: Session,
    sender: NotificationSender,
    email: str,
    request: Optional[Request] = None,
) -> None:
    """
    Issue a fresh verification code. Unknown emails are ignored silently.

    Raises:
        ConflictError: If the account is already verified
    """
    user = get_user_by_email(db, email)
    if not user:
        logger.info(f"Resend verification requested for unknown email {email}")
        return

    if user.email_verified:
        raise ConflictError("Email already verified", code="ALREADY_VERIFIED")

    code = _set_verification_code(user)
    db.commit()
    create_audit_log(db, action="VERIFICATION_CODE_RESENT", user_id=user.id, request=request)

    await deliver(
        db,
        sender,
        templates.verification_code_email(user.email, user.first_name, code, settings.verification_code_ttl_minutes),
        user_id=user.id,
        request=request,
    )


def login(db: Session, email: str, password: str, request: Optional[Request] = None) -> Tuple[str, User]:
    """
    Authenticate with email and password.

    Returns:
        Tuple of the session token and the user

    Raises:
        AuthError: On bad credentials, unverified email or deactivated account
    """
    user = get_user_by_email(db, email)
    password_ok = verify_password(password, user.password_hash if user else None)

    if not user or not password_ok:
        logger.warning(f"Failed login for {email}")
        create_audit_log(
            db,
            action="LOGIN_FAILED",
            user_id=user.id if user else None,
            request=request,
            details={"email": email.lower()},
        )
        raise AuthError("Invalid email or password", code="INVALID_CREDENTIALS")

    if not user.email_verified:
        raise AuthError("Please verify your email before logging in", code="EMAIL_NOT_VERIFIED")

    if not user.is_active:
        raise AuthError("Account is deactivated", code="ACCOUNT_INACTIVE")

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    create_audit_log(db, action="LOGIN_SUCCESS", user_id=user.id, request=request)
    logger.info(f"User {user.id} logged in")
    return issue_token(user), user


async def forgot_password(
    db: Session,
    sender: NotificationSender,
    email: str,
    request: Optional[Request] = None,
) -> None:
    """
    Start a password reset. The response is the same whether or not the email exists.
    """
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        logger.info(f"Password reset requested for unknown or inactive email {email}")
        return

    token = generate_secure_reset_token()
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires = get_token_expiry_time(settings.reset_token_ttl_minutes)
    db.commit()
    create_audit_log(db, action="PASSWORD_RESET_REQUESTED", user_id=user.id, request=request)

    await deliver(
        db,
        sender,
        templates.password_reset_email(user.email, user.first_name, token, settings.reset_token_ttl_minutes),
        user_id=user.id,
        request=request,
    )


async def reset_password(
    db: Session,
    sender: NotificationSender,
    token: str,
    new_password: str,
    request: Optional[Request] = None,
) -> None:
    """
    Consume a reset token and set a new password. The token works once.

    Raises:
        InvalidCodeError: If the token is unknown or already used
        ExpiredCodeError: If the token has expired
    """
    user = db.query(User).filter(User.reset_token_hash == hash_token(token)).first()
    if not user:
        raise InvalidCodeError("Invalid or already used reset token", code="INVALID_RESET_TOKEN")

    if is_token_expired(user.reset_token_expires):
        raise ExpiredCodeError("Reset token has expired, request a new one", code="RESET_TOKEN_EXPIRED")

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires = None
    user.password_changed_at = utcnow()
    db.commit()
    logger.info(f"Password reset for user {user.id}")
    create_audit_log(db, action="PASSWORD_RESET", user_id=user.id, request=request)

    await deliver(
        db, sender, templates.password_changed_email(user.email, user.first_name), user_id=user.id, request=request
    )


async def change_password(
    db: Session,
    sender: NotificationSender,
    user: User,
    current_password: str,
    new_password: str,
    request: Optional[Request] = None,
) -> None:
    """
    Change the password of the authenticated user.

    Raises:
        ValidationError: If the current password is wrong or unchanged
    """
    if not verify_password(current_password, user.password_hash):
        raise ValidationError(
            "Current password is incorrect",
            errors=[{"field": "current_password", "message": "Current password is incorrect"}],
        )
    if current_password == new_password:
        raise ValidationError(
            "New password must be different",
            errors=[{"field": "new_password", "message": "New password must be different"}],
        )

    user.password_hash = hash_password(new_password)
    user.password_changed_at = utcnow()
    db.commit()
    create_audit_log(db, action="PASSWORD_CHANGED", user_id=user.id, request=request)

    await deliver(
        db, sender, templates.password_changed_email(user.email, user.first_name), user_id=user.id, request=request
    )


def update_profile(db: Session, user: User, data: UpdateProfileRequest) -> User:
    """Apply the fields present in ``data`` to the user's profile."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info(f"Profile updated for user {user.id}")
    return user
