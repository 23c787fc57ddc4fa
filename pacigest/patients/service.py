"""
Patient Service - Business logic for patient management.

Patients are visible to the doctors linked to them and to those doctors' staff.
"""
from typing import Optional
from sqlalchemy.orm import Session, Query
from sqlalchemy import or_
import logging

from ..auth.models import User
from ..core.clock import utcnow
from ..core.numbering import save_numbered
from ..core.permissions import Capability, has_capability
from ..exceptions import ForbiddenError, NotFoundError
from .models import Patient, PatientStatus
from .schemas import CONTACT_FIELDS, PatientCreate, PatientUpdate

# Set up logging
logger = logging.getLogger(__name__)


def patients_for_doctor(db: Session, doctor_id: int, include_inactive: bool = False) -> Query:
    """Query of patients linked to a doctor, soft-deleted ones excluded by default."""
    query = db.query(Patient).filter(Patient.doctors.any(User.id == doctor_id))
    if not include_inactive:
        query = query.filter(Patient.is_active.is_(True))
    return query


def get_patient(db: Session, patient_id: int, user: User) -> Patient:
    """
    Get a patient by ID, including soft-deleted ones.

    Raises:
        NotFoundError: If the patient does not exist
        ForbiddenError: If the patient is not linked to the acting doctor
    """
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError("Patient not found")
    if user.acting_doctor_id not in patient.doctor_ids:
        logger.warning(f"User {user.id} denied access to patient {patient_id}")
        raise ForbiddenError("You do not have access to this patient")
    return patient


def list_patients(db: Session, user: User, status: Optional[PatientStatus] = None) -> Query:
    query = patients_for_doctor(db, user.acting_doctor_id)
    if status:
        query = query.filter(Patient.status == status)
    return query.order_by(Patient.created_at.desc(), Patient.id.desc())


def search_patients(db: Session, user: User, term: str) -> Query:
    """Match names, email and record number, case-insensitively."""
    pattern = f"%{term.strip()}%"
    return (
        patients_for_doctor(db, user.acting_doctor_id)
        .filter(
            or_(
                Patient.first_name.ilike(pattern),
                Patient.last_name.ilike(pattern),
                Patient.email.ilike(pattern),
                Patient.medical_record_number.ilike(pattern),
            )
        )
        .order_by(Patient.last_name, Patient.first_name)
    )


def create_patient(db: Session, data: PatientCreate, user: User) -> Patient:
    doctor = db.get(User, user.acting_doctor_id)
    patient = Patient(
        **data.model_dump(),
        created_by=user.id,
    )
    patient.doctors.append(doctor)
    save_numbered(db, patient, "medical_record_number", "PAC")
    logger.info(f"Patient {patient.medical_record_number} created by user {user.id}")
    return patient


def update_patient(db: Session, patient_id: int, data: PatientUpdate, user: User) -> Patient:
    """
    Update a patient.

    Staff without the clinical editing capability may only change contact fields.

    Raises:
        ForbiddenError: If clinical fields are sent without the capability
    """
    patient = get_patient(db, patient_id, user)
    changes = data.model_dump(exclude_unset=True)

    if not has_capability(user.role, Capability.EDIT_MEDICAL_RECORDS, user.permissions):
        blocked = sorted(set(changes) - CONTACT_FIELDS)
        if blocked:
            raise ForbiddenError(f"You may only edit contact details, not: {', '.join(blocked)}")

    for field, value in changes.items():
        setattr(patient, field, value)

    db.commit()
    db.refresh(patient)
    logger.info(f"Patient {patient.id} updated by user {user.id}")
    return patient


def delete_patient(db: Session, patient_id: int, user: User) -> Patient:
    """Soft delete: the row stays and direct reads still return it."""
    patient = get_patient(db, patient_id, user)
    patient.is_active = False
    patient.status = PatientStatus.INACTIVE
    patient.deleted_at = utcnow()
    db.commit()
    db.refresh(patient)
    logger.info(f"Patient {patient.id} soft-deleted by user {user.id}")
    return patient
