"""
Medical File Service - File metadata for patients and medical records.
"""
from typing import Optional
from sqlalchemy.orm import Session, Query
import logging

from ..auth.models import User
from ..config import settings
from ..core.clock import utcnow
from ..exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..medical_records.service import get_record
from ..patients.service import get_patient
from .models import FileCategory, MedicalFile
from .schemas import MedicalFileCreate, MedicalFileUpdate

# Set up logging
logger = logging.getLogger(__name__)


def resolve_url(storage_path: str, explicit_url: Optional[str] = None) -> str:
    """
    Public URL for a stored file: the CDN base plus the path when configured.

    Raises:
        ValidationError: If there is neither a CDN base nor an explicit URL
    """
    if settings.bunny_cdn_url:
        return f"{settings.bunny_cdn_url.rstrip('/')}/{storage_path.lstrip('/')}"
    if explicit_url:
        return explicit_url
    raise ValidationError(
        "A file URL is required when no CDN is configured",
        errors=[{"field": "url", "message": "Field required"}],
    )


def get_file(db: Session, file_id: int, user: User) -> MedicalFile:
    medical_file = db.get(MedicalFile, file_id)
    if not medical_file:
        raise NotFoundError("File not found")
    get_patient(db, medical_file.patient_id, user)
    return medical_file


def _get_owned_file(db: Session, file_id: int, user: User) -> MedicalFile:
    medical_file = get_file(db, file_id, user)
    if medical_file.doctor_id != user.acting_doctor_id:
        raise ForbiddenError("Only the doctor who added this file may change it")
    return medical_file


def list_patient_files(db: Session, patient_id: int, user: User, category: Optional[FileCategory] = None) -> Query:
    get_patient(db, patient_id, user)
    query = db.query(MedicalFile).filter(MedicalFile.patient_id == patient_id, MedicalFile.is_active.is_(True))
    if category:
        query = query.filter(MedicalFile.category == category)
    return query.order_by(MedicalFile.created_at.desc(), MedicalFile.id.desc())


def list_record_files(db: Session, record_id: int, user: User) -> Query:
    get_record(db, record_id, user)
    return (
        db.query(MedicalFile)
        .filter(MedicalFile.medical_record_id == record_id, MedicalFile.is_active.is_(True))
        .order_by(MedicalFile.created_at.desc(), MedicalFile.id.desc())
    )


def create_file(db: Session, data: MedicalFileCreate, user: User) -> MedicalFile:
    patient = get_patient(db, data.patient_id, user)
    if not patient.is_active:
        raise InvalidStateError("Cannot add files to an inactive patient")

    if data.medical_record_id is not None:
        record = get_record(db, data.medical_record_id, user)
        if record.patient_id != patient.id:
            raise ValidationError(
                "Medical record belongs to a different patient",
                errors=[{"field": "medical_record_id", "message": "Medical record belongs to a different patient"}],
            )

    values = data.model_dump()
    values["url"] = resolve_url(data.storage_path, data.url)
    medical_file = MedicalFile(**values, doctor_id=user.acting_doctor_id, uploaded_by=user.id)
    db.add(medical_file)
    db.commit()
    db.refresh(medical_file)
    logger.info(f"File {medical_file.id} registered for patient {patient.id} by user {user.id}")
    return medical_file


def update_file(db: Session, file_id: int, data: MedicalFileUpdate, user: User) -> MedicalFile:
    medical_file = _get_owned_file(db, file_id, user)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(medical_file, field, value)
    db.commit()
    db.refresh(medical_file)
    return medical_file


def delete_file(db: Session, file_id: int, user: User) -> MedicalFile:
    medical_file = _get_owned_file(db, file_id, user)
    medical_file.is_active = False
    medical_file.deleted_at = utcnow()
    db.commit()
    db.refresh(medical_file)
    logger.info(f"File {medical_file.id} soft-deleted by user {user.id}")
    return medical_file
