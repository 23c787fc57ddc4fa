"""
Medical Record Service - Consultation records.

Records are readable by every doctor linked to the patient (and their staff
with the viewing capability). Only the authoring doctor may change them.
"""
from typing import Optional
from sqlalchemy.orm import Session, Query
import logging

from ..appointments.service import get_appointment
from ..auth.models import User
from ..core.clock import as_utc, utcnow
from ..exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..patients.service import get_patient
from .models import MedicalRecord
from .schemas import MedicalRecordCreate, MedicalRecordUpdate

# Set up logging
logger = logging.getLogger(__name__)


def get_record(db: Session, record_id: int, user: User) -> MedicalRecord:
    """
    Get a medical record by ID, including soft-deleted ones.

    Raises:
        NotFoundError: If the record does not exist
        ForbiddenError: If the patient is not linked to the acting doctor
    """
    record = db.get(MedicalRecord, record_id)
    if not record:
        raise NotFoundError("Medical record not found")
    get_patient(db, record.patient_id, user)
    return record


def _get_authored_record(db: Session, record_id: int, user: User) -> MedicalRecord:
    record = get_record(db, record_id, user)
    if record.doctor_id != user.acting_doctor_id:
        raise ForbiddenError("Only the doctor who wrote this record may change it")
    return record


def list_records(db: Session, user: User) -> Query:
    """Records written by the acting doctor."""
    return (
        db.query(MedicalRecord)
        .filter(MedicalRecord.doctor_id == user.acting_doctor_id, MedicalRecord.is_active.is_(True))
        .order_by(MedicalRecord.consultation_date.desc(), MedicalRecord.id.desc())
    )


def list_patient_records(db: Session, patient_id: int, user: User) -> Query:
    get_patient(db, patient_id, user)
    return (
        db.query(MedicalRecord)
        .filter(MedicalRecord.patient_id == patient_id, MedicalRecord.is_active.is_(True))
        .order_by(MedicalRecord.consultation_date.desc(), MedicalRecord.id.desc())
    )


def create_record(db: Session, data: MedicalRecordCreate, user: User) -> MedicalRecord:
    """
    Write a consultation record for a linked patient.

    Raises:
        InvalidStateError: If the patient has been deleted
        ValidationError: If the appointment belongs to a different patient
    """
    patient = get_patient(db, data.patient_id, user)
    if not patient.is_active:
        raise InvalidStateError("Cannot add records to an inactive patient")

    if data.appointment_id is not None:
        appointment = get_appointment(db, data.appointment_id, user)
        if appointment.patient_id != patient.id:
            raise ValidationError(
                "Appointment belongs to a different patient",
                errors=[{"field": "appointment_id", "message": "Appointment belongs to a different patient"}],
            )

    values = data.model_dump()
    values["consultation_date"] = as_utc(data.consultation_date) or utcnow()
    values["vital_signs"] = data.vital_signs.model_dump(exclude_none=True)

    record = MedicalRecord(**values, doctor_id=user.acting_doctor_id)
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Medical record {record.id} created for patient {patient.id} by user {user.id}")
    return record


def update_record(db: Session, record_id: int, data: MedicalRecordUpdate, user: User) -> MedicalRecord:
    record = _get_authored_record(db, record_id, user)
    changes = data.model_dump(exclude_unset=True)
    if "vital_signs" in changes:
        changes["vital_signs"] = data.vital_signs.model_dump(exclude_none=True) if data.vital_signs else {}
    if changes.get("consultation_date") is not None:
        changes["consultation_date"] = as_utc(changes["consultation_date"])

    for field, value in changes.items():
        setattr(record, field, value)

    db.commit()
    db.refresh(record)
    logger.info(f"Medical record {record.id} updated by user {user.id}")
    return record


def delete_record(db: Session, record_id: int, user: User) -> MedicalRecord:
    record = _get_authored_record(db, record_id, user)
    record.is_active = False
    record.deleted_at = utcnow()
    db.commit()
    db.refresh(record)
    logger.info(f"Medical record {record.id} soft-deleted by user {user.id}")
    return record
