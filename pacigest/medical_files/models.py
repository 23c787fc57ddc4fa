"""
Medical File Model - Metadata of documents stored on the CDN.

Only the metadata lives here; uploads go straight from the client to storage.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, JSON, Text, func
import enum

from ..database import Base


class FileType(str, enum.Enum):
    IMAGE = "image"
    PDF = "pdf"
    DOCUMENT = "document"
    OTHER = "other"


class FileCategory(str, enum.Enum):
    LAB_RESULTS = "lab_results"
    IMAGING = "imaging"
    PRESCRIPTION = "prescription"
    CONSENT_FORM = "consent_form"
    INSURANCE = "insurance"
    REFERRAL = "referral"
    PATIENT_PHOTO = "patient_photo"
    OTHER = "other"


class MedicalFile(Base):
    """
    Medical File Model - Stores file metadata

    Fields:
    - patient_id / doctor_id / medical_record_id: What the file belongs to
    - file_name / original_name / file_type / mime_type / file_size: File details
    - storage_path: Path inside the storage zone
    - url: Public URL of the file
    - category / description / tags: Classification
    - uploaded_by: User who registered the file
    """
    __tablename__ = "medical_files"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    medical_record_id = Column(Integer, ForeignKey("medical_records.id", ondelete="SET NULL"), nullable=True)
    file_name = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    file_type = Column(Enum(FileType, name="file_type"), default=FileType.OTHER)
    mime_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    storage_path = Column(String, nullable=False)
    url = Column(String, nullable=False)
    category = Column(Enum(FileCategory, name="file_category"), default=FileCategory.OTHER, index=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        """String representation of the MedicalFile model"""
        return f"<MedicalFile(id={self.id}, patient_id={self.patient_id}, name='{self.file_name}')>"
