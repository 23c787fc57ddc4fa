"""
Prescription Service - Writing, editing and cancelling prescriptions.

Only the prescribing doctor may edit or cancel, and only while the
prescription is active. Cancellation is final.
"""
from datetime import timedelta
from typing import Optional
from sqlalchemy.orm import Session, Query
import logging

from ..auth.models import User
from ..core.clock import as_utc, utcnow
from ..core.numbering import save_numbered
from ..exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..medical_records.service import get_record
from ..patients.service import get_patient
from .models import Prescription, PrescriptionStatus
from .schemas import PrescriptionCreate, PrescriptionUpdate

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30


def _expire_if_due(db: Session, prescription: Prescription) -> None:
    if (
        prescription.status == PrescriptionStatus.ACTIVE
        and prescription.valid_until is not None
        and utcnow() > as_utc(prescription.valid_until)
    ):
        prescription.status = PrescriptionStatus.EXPIRED
        db.commit()
        db.refresh(prescription)
        logger.info(f"Prescription {prescription.id} expired")


def get_prescription(db: Session, prescription_id: int, user: User) -> Prescription:
    """
    Get a prescription by ID, including soft-deleted ones.

    Raises:
        NotFoundError: If the prescription does not exist
        ForbiddenError: If the patient is not linked to the acting doctor
    """
    prescription = db.get(Prescription, prescription_id)
    if not prescription:
        raise NotFoundError("Prescription not found")
    get_patient(db, prescription.patient_id, user)
    _expire_if_due(db, prescription)
    return prescription


def _get_editable(db: Session, prescription_id: int, user: User, action: str) -> Prescription:
    prescription = get_prescription(db, prescription_id, user)
    if prescription.doctor_id != user.acting_doctor_id:
        raise ForbiddenError("Only the prescribing doctor may change this prescription")
    if prescription.status != PrescriptionStatus.ACTIVE:
        raise InvalidStateError(
            f"Cannot {action} a prescription that is {prescription.status.value}", code="INVALID_TRANSITION"
        )
    return prescription


def list_prescriptions(db: Session, user: User, status: Optional[PrescriptionStatus] = None) -> Query:
    query = db.query(Prescription).filter(
        Prescription.doctor_id == user.acting_doctor_id, Prescription.is_active.is_(True)
    )
    if status:
        query = query.filter(Prescription.status == status)
    return query.order_by(Prescription.prescription_date.desc(), Prescription.id.desc())


def list_patient_prescriptions(db: Session, patient_id: int, user: User) -> Query:
    get_patient(db, patient_id, user)
    return (
        db.query(Prescription)
        .filter(Prescription.patient_id == patient_id, Prescription.is_active.is_(True))
        .order_by(Prescription.prescription_date.desc(), Prescription.id.desc())
    )


def create_prescription(db: Session, data: PrescriptionCreate, user: User) -> Prescription:
    """
    Write a prescription for a linked patient.

    Raises:
        InvalidStateError: If the patient has been deleted
        ValidationError: If the medical record belongs to a different patient
    """
    patient = get_patient(db, data.patient_id, user)
    if not patient.is_active:
        raise InvalidStateError("Cannot prescribe for an inactive patient")

    if data.medical_record_id is not None:
        record = get_record(db, data.medical_record_id, user)
        if record.patient_id != patient.id:
            raise ValidationError(
                "Medical record belongs to a different patient",
                errors=[{"field": "medical_record_id", "message": "Medical record belongs to a different patient"}],
            )

    prescribed_at = as_utc(data.prescription_date) or utcnow()
    prescription = Prescription(
        patient_id=patient.id,
        doctor_id=user.acting_doctor_id,
        medical_record_id=data.medical_record_id,
        prescription_date=prescribed_at,
        medications=[medication.model_dump(mode="json") for medication in data.medications],
        diagnosis=data.diagnosis,
        general_instructions=data.general_instructions,
        valid_until=as_utc(data.valid_until) or prescribed_at + timedelta(days=DEFAULT_VALIDITY_DAYS),
        status=PrescriptionStatus.ACTIVE,
    )
    save_numbered(db, prescription, "prescription_number", "RX")
    logger.info(f"Prescription {prescription.prescription_number} created by user {user.id}")
    return prescription


def update_prescription(db: Session, prescription_id: int, data: PrescriptionUpdate, user: User) -> Prescription:
    prescription = _get_editable(db, prescription_id, user, "edit")
    changes = data.model_dump(exclude_unset=True)
    if "medications" in changes:
        changes["medications"] = [medication.model_dump(mode="json") for medication in data.medications or []]
    if changes.get("valid_until") is not None:
        changes["valid_until"] = as_utc(changes["valid_until"])

    for field, value in changes.items():
        setattr(prescription, field, value)

    db.commit()
    db.refresh(prescription)
    logger.info(f"Prescription {prescription.id} updated by user {user.id}")
    return prescription


def cancel_prescription(db: Session, prescription_id: int, reason: str, user: User) -> Prescription:
    prescription = _get_editable(db, prescription_id, user, "cancel")
    prescription.status = PrescriptionStatus.CANCELLED
    prescription.cancellation_reason = reason
    prescription.cancelled_at = utcnow()
    db.commit()
    db.refresh(prescription)
    logger.info(f"Prescription {prescription.id} cancelled by user {user.id}")
    return prescription


def delete_prescription(db: Session, prescription_id: int, user: User) -> Prescription:
    prescription = get_prescription(db, prescription_id, user)
    if prescription.doctor_id != user.acting_doctor_id:
        raise ForbiddenError("Only the prescribing doctor may delete this prescription")
    prescription.is_active = False
    prescription.deleted_at = utcnow()
    db.commit()
    db.refresh(prescription)
    logger.info(f"Prescription {prescription.id} soft-deleted by user {user.id}")
    return prescription
