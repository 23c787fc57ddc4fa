"""
Request gates: session token, capability and subscription.

``authorize`` builds one dependency per route that runs the three checks in
that order and stops at the first failure, before the handler runs.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import settings
from ..core.clock import as_utc, utcnow
from ..core.permissions import Capability, Role, has_capability
from ..core.security import decode_access_token
from ..database import get_db
from ..exceptions import AuthError, ForbiddenError, SubscriptionRequiredError
from .models import User, SubscriptionStatus

# Set up logging
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the user behind the Bearer token.

    Raises:
        AuthError: If the token is missing, invalid or expired, or the user is gone or inactive
    """
    if credentials is None:
        raise AuthError("Not authorized, no token provided", code="TOKEN_MISSING")

    payload = decode_access_token(credentials.credentials)
    if payload is None or "sub" not in payload:
        raise AuthError("Not authorized, invalid or expired token", code="INVALID_TOKEN")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthError("Not authorized, invalid or expired token", code="INVALID_TOKEN")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError("User not found", code="USER_NOT_FOUND")
    if not user.is_active:
        raise AuthError("Account is deactivated", code="ACCOUNT_INACTIVE")
    return user


def check_subscription(db: Session, doctor: Optional[User], now: Optional[datetime] = None) -> None:
    """
    Fail closed unless the doctor's trial or subscription is current.

    A trial or paid subscription found past its end date is flipped to
    expired before the request is rejected.

    Raises:
        SubscriptionRequiredError: With NO_SUBSCRIPTION, TRIAL_EXPIRED,
            SUBSCRIPTION_EXPIRED or SUBSCRIPTION_NOT_ACTIVE as ``code``
    """
    if doctor is None or doctor.subscription_status is None:
        raise SubscriptionRequiredError("An active subscription is required", code="NO_SUBSCRIPTION")

    now = now or utcnow()
    status = doctor.subscription_status

    if status == SubscriptionStatus.TRIAL:
        if doctor.trial_ends_at is None:
            raise SubscriptionRequiredError("An active subscription is required", code="NO_SUBSCRIPTION")
        if now > as_utc(doctor.trial_ends_at):
            doctor.subscription_status = SubscriptionStatus.EXPIRED
            db.commit()
            logger.info(f"Trial expired for doctor {doctor.id}")
            raise SubscriptionRequiredError("Your free trial has expired", code="TRIAL_EXPIRED")
        return

    if status == SubscriptionStatus.ACTIVE:
        if doctor.subscription_end_date and now > as_utc(doctor.subscription_end_date):
            doctor.subscription_status = SubscriptionStatus.EXPIRED
            db.commit()
            logger.info(f"Subscription expired for doctor {doctor.id}")
            raise SubscriptionRequiredError("Your subscription has expired", code="SUBSCRIPTION_EXPIRED")
        return

    if status == SubscriptionStatus.EXPIRED:
        if doctor.subscription_plan is None:
            raise SubscriptionRequiredError("Your free trial has expired", code="TRIAL_EXPIRED")
        raise SubscriptionRequiredError("Your subscription has expired", code="SUBSCRIPTION_EXPIRED")

    raise SubscriptionRequiredError("Your subscription is not active", code="SUBSCRIPTION_NOT_ACTIVE")


def get_acting_doctor(db: Session, user: User) -> Optional[User]:
    """The doctor account whose data and subscription the user acts under."""
    if user.role == Role.DOCTOR:
        return user
    return db.get(User, user.doctor_id) if user.doctor_id else None


def authorize(capability: Optional[Capability] = None, subscription: bool = False):
    """
    Build a route dependency: token, then capability, then subscription.

    Args:
        capability: Capability the route requires, if any
        subscription: Whether the acting doctor needs a current subscription

    Returns:
        Dependency callable resolving to the authorized ``User``
    """
    def dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if capability is not None and not has_capability(current_user.role, capability, current_user.permissions):
            logger.warning(f"User {current_user.id} denied: missing {capability.value}")
            raise ForbiddenError(f"Missing permission: {capability.value}", code="PERMISSION_DENIED")

        if subscription:
            check_subscription(db, get_acting_doctor(db, current_user))

        return current_user

    return dependency


def require_billing_admin(current_user: User = Depends(get_current_user)) -> User:
    """Only accounts listed in BILLING_ADMIN_EMAILS may review payments."""
    admins = {email.lower() for email in settings.billing_admin_emails}
    if current_user.email.lower() not in admins:
        raise ForbiddenError("Billing administrators only", code="PERMISSION_DENIED")
    return current_user
