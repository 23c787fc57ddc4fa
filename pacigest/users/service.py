"""
Staff Service - Doctors manage the staff accounts that act on their behalf.
"""
from typing import Optional
from sqlalchemy.orm import Session, Query
from fastapi import Request
import logging

from ..auth.models import User
from ..auth.service import get_user_by_email
from ..core.audit_service import create_audit_log
from ..core.permissions import Role, STAFF_DEFAULT_CAPABILITIES
from ..core.security import generate_temporary_password, hash_password
from ..exceptions import ConflictError, ForbiddenError, NotFoundError
from ..notifications import templates
from ..notifications.dispatch import deliver
from ..notifications.sender import NotificationSender
from .schemas import StaffCreate, StaffUpdate

# Set up logging
logger = logging.getLogger(__name__)


def list_staff(db: Session, user: User) -> Query:
    return (
        db.query(User)
        .filter(User.role == Role.STAFF, User.doctor_id == user.acting_doctor_id)
        .order_by(User.last_name, User.first_name)
    )


def get_staff(db: Session, staff_id: int, user: User) -> User:
    """
    Raises:
        NotFoundError: If the account does not exist or is not a staff account
        ForbiddenError: If the staff member works for another doctor
    """
    staff = db.get(User, staff_id)
    if not staff or staff.role != Role.STAFF:
        raise NotFoundError("Staff member not found")
    if staff.doctor_id != user.acting_doctor_id:
        raise ForbiddenError("This staff member works for another doctor")
    return staff


async def create_staff(
    db: Session,
    sender: NotificationSender,
    data: StaffCreate,
    user: User,
    request: Optional[Request] = None,
) -> User:
    """
    Create a staff account and email it a temporary password.

    Raises:
        ConflictError: If the email is already registered
    """
    if get_user_by_email(db, data.email):
        raise ConflictError("Email already registered", code="EMAIL_EXISTS")

    doctor = db.get(User, user.acting_doctor_id)
    temporary_password = generate_temporary_password()
    permissions = data.permissions
    if permissions is None:
        permissions = sorted(capability.value for capability in STAFF_DEFAULT_CAPABILITIES)

    staff = User(
        email=data.email,
        password_hash=hash_password(temporary_password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        language=doctor.language,
        role=Role.STAFF,
        doctor_id=doctor.id,
        permissions=permissions,
        is_active=True,
        email_verified=True,
        subscription_status=None,
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    logger.info(f"Staff account {staff.id} created by doctor {doctor.id}")
    create_audit_log(
        db, action="STAFF_CREATED", user_id=user.id, request=request, details={"staff_id": staff.id}
    )

    await deliver(
        db,
        sender,
        templates.staff_invitation_email(staff.email, staff.first_name, doctor.full_name, temporary_password),
        user_id=user.id,
        request=request,
    )
    return staff


def update_staff(db: Session, staff_id: int, data: StaffUpdate, user: User, request: Optional[Request] = None) -> User:
    staff = get_staff(db, staff_id, user)
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(staff, field, value)
    db.commit()
    db.refresh(staff)
    logger.info(f"Staff account {staff.id} updated by user {user.id}")
    if "permissions" in changes or "is_active" in changes:
        create_audit_log(
            db,
            action="STAFF_ACCESS_CHANGED",
            user_id=user.id,
            request=request,
            details={"staff_id": staff.id, "permissions": staff.permissions, "is_active": staff.is_active},
        )
    return staff
