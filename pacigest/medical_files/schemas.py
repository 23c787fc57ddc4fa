"""
Medical File Schemas - Pydantic models for file metadata.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime

from ..core.validators import reject_null
from .models import FileCategory, FileType

MAX_FILE_SIZE = 50 * 1024 * 1024


class MedicalFileCreate(BaseModel):
    """
    Register a file already uploaded to storage

    Fields:
    - storage_path: Path inside the storage zone; the URL is derived from the CDN base
    - url: Explicit public URL, used when no CDN base is configured
    """
    patient_id: int
    medical_record_id: Optional[int] = None
    file_name: str = Field(..., min_length=1, max_length=255)
    original_name: str = Field(..., min_length=1, max_length=255)
    file_type: FileType = FileType.OTHER
    mime_type: str = Field(..., min_length=1, max_length=100)
    file_size: int = Field(..., gt=0, le=MAX_FILE_SIZE)
    storage_path: str = Field(..., min_length=1, max_length=500)
    url: Optional[str] = Field(None, max_length=1000)
    category: FileCategory = FileCategory.OTHER
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class MedicalFileUpdate(BaseModel):
    category: Optional[FileCategory] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("category", "tags")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class MedicalFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    medical_record_id: Optional[int] = None
    file_name: str
    original_name: str
    file_type: FileType
    mime_type: str
    file_size: int
    storage_path: str
    url: str
    category: FileCategory
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    uploaded_by: Optional[int] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
