"""
Appointment Service - Scheduling and the appointment lifecycle.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session, Query
from fastapi import Request
import logging

from ..auth.models import User
from ..core.audit_service import create_audit_log
from ..core.clock import as_utc, utcnow
from ..core.numbering import save_numbered
from ..exceptions import ForbiddenError, InvalidStateError, NotFoundError
from ..notifications import templates
from ..notifications.dispatch import deliver
from ..notifications.sender import NotificationSender
from ..patients.service import get_patient
from .models import Appointment, AppointmentStatus
from .schemas import AppointmentCreate, AppointmentUpdate

# Set up logging
logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

# Transition name -> statuses it may start from
TRANSITIONS = {
    "confirm": frozenset({AppointmentStatus.SCHEDULED}),
    "cancel": frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED}),
    "complete": frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED}),
}


def _day_bounds(day: date):
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _check_transition(appointment: Appointment, transition: str) -> None:
    if appointment.status not in TRANSITIONS[transition]:
        raise InvalidStateError(
            f"Cannot {transition} an appointment that is {appointment.status.value}",
            code="INVALID_TRANSITION",
        )


def get_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    """
    Get an appointment by ID, including soft-deleted ones.

    Raises:
        NotFoundError: If the appointment does not exist
        ForbiddenError: If it belongs to another doctor
    """
    appointment = db.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")
    if appointment.doctor_id != user.acting_doctor_id:
        logger.warning(f"User {user.id} denied access to appointment {appointment_id}")
        raise ForbiddenError("You do not have access to this appointment")
    return appointment


def list_appointments(
    db: Session,
    user: User,
    status: Optional[AppointmentStatus] = None,
    day: Optional[date] = None,
    patient_id: Optional[int] = None,
) -> Query:
    query = db.query(Appointment).filter(
        Appointment.doctor_id == user.acting_doctor_id,
        Appointment.is_active.is_(True),
    )
    if status:
        query = query.filter(Appointment.status == status)
    if day:
        start, end = _day_bounds(day)
        query = query.filter(Appointment.scheduled_at >= start, Appointment.scheduled_at < end)
    if patient_id:
        query = query.filter(Appointment.patient_id == patient_id)
    return query.order_by(Appointment.scheduled_at.asc(), Appointment.id.asc())


def today_schedule(db: Session, user: User, now: Optional[datetime] = None) -> Query:
    """Today's appointments (UTC day) that are not cancelled."""
    return list_appointments(db, user, day=(now or utcnow()).date()).filter(
        Appointment.status != AppointmentStatus.CANCELLED
    )


async def create_appointment(
    db: Session,
    sender: NotificationSender,
    data: AppointmentCreate,
    user: User,
    request: Optional[Request] = None,
) -> Appointment:
    """
    Schedule an appointment for a patient linked to the acting doctor and email the patient.

    Raises:
        ForbiddenError: If the patient is not linked to the acting doctor
        InvalidStateError: If the patient has been deleted
    """
    patient = get_patient(db, data.patient_id, user)
    if not patient.is_active:
        raise InvalidStateError("Cannot schedule an appointment for an inactive patient")

    doctor = db.get(User, user.acting_doctor_id)
    values = data.model_dump()
    values["scheduled_at"] = as_utc(data.scheduled_at)
    if values["consultation_fee"] is None:
        values["consultation_fee"] = doctor.consultation_fee or 0

    appointment = Appointment(
        **values,
        doctor_id=doctor.id,
        created_by=user.id,
        status=AppointmentStatus.SCHEDULED,
    )
    save_numbered(db, appointment, "appointment_number", "APT")
    logger.info(f"Appointment {appointment.appointment_number} created by user {user.id}")

    if patient.email:
        await deliver(
            db,
            sender,
            templates.appointment_confirmation_email(
                patient.email,
                patient.full_name,
                doctor.full_name,
                as_utc(appointment.scheduled_at),
                appointment.appointment_number,
            ),
            user_id=user.id,
            request=request,
        )
    return appointment


def update_appointment(db: Session, appointment_id: int, data: AppointmentUpdate, user: User) -> Appointment:
    """
    Update an appointment that is still scheduled or confirmed.

    Rescheduling clears the reminder markers so reminders go out for the new time.

    Raises:
        InvalidStateError: If the appointment is cancelled or completed
    """
    appointment = get_appointment(db, appointment_id, user)
    if appointment.status in TERMINAL_STATUSES:
        raise InvalidStateError(
            f"Cannot update an appointment that is {appointment.status.value}", code="INVALID_TRANSITION"
        )

    changes = data.model_dump(exclude_unset=True)
    if changes.get("scheduled_at") is not None:
        changes["scheduled_at"] = as_utc(changes["scheduled_at"])
        appointment.reminder_24h_sent_at = None
        appointment.reminder_2h_sent_at = None

    for field, value in changes.items():
        setattr(appointment, field, value)

    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} updated by user {user.id}")
    return appointment


def confirm_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    appointment = get_appointment(db, appointment_id, user)
    _check_transition(appointment, "confirm")

    appointment.status = AppointmentStatus.CONFIRMED
    appointment.confirmed_by = user.id
    appointment.confirmed_at = utcnow()
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} confirmed by user {user.id}")
    return appointment


async def cancel_appointment(
    db: Session,
    sender: NotificationSender,
    appointment_id: int,
    reason: str,
    user: User,
    request: Optional[Request] = None,
) -> Appointment:
    """
    Cancel a scheduled or confirmed appointment, recording who cancelled and why.

    Raises:
        InvalidStateError: If the appointment is already cancelled or completed
    """
    appointment = get_appointment(db, appointment_id, user)
    _check_transition(appointment, "cancel")

    appointment.status = AppointmentStatus.CANCELLED
    appointment.cancellation_reason = reason
    appointment.cancelled_by = user.id
    appointment.cancelled_at = utcnow()
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} cancelled by user {user.id}")
    create_audit_log(
        db,
        action="APPOINTMENT_CANCELLED",
        user_id=user.id,
        request=request,
        details={"appointment_id": appointment.id, "reason": reason},
    )

    patient = appointment.patient
    if patient and patient.email:
        await deliver(
            db,
            sender,
            templates.appointment_cancellation_email(
                patient.email,
                patient.full_name,
                appointment.doctor.full_name,
                as_utc(appointment.scheduled_at),
                appointment.appointment_number,
                reason,
            ),
            user_id=user.id,
            request=request,
        )
    return appointment


def complete_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    appointment = get_appointment(db, appointment_id, user)
    _check_transition(appointment, "complete")

    appointment.status = AppointmentStatus.COMPLETED
    appointment.completed_at = utcnow()
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} completed by user {user.id}")
    return appointment


def delete_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    appointment = get_appointment(db, appointment_id, user)
    appointment.is_active = False
    appointment.deleted_at = utcnow()
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} soft-deleted by user {user.id}")
    return appointment
