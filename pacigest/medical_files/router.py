"""
Medical File Router - API endpoints for file metadata.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize
from ..auth.models import User
from ..core.pagination import PageParams, PageResponse, paginate
from ..core.permissions import Capability
from ..core.responses import DataResponse
from ..database import get_db
from .models import FileCategory
from .schemas import MedicalFileCreate, MedicalFileResponse, MedicalFileUpdate
from . import service

router = APIRouter()

can_view = authorize(Capability.VIEW_MEDICAL_RECORDS, subscription=True)
can_edit = authorize(Capability.EDIT_MEDICAL_RECORDS, subscription=True)


@router.post("/", response_model=DataResponse[MedicalFileResponse], status_code=status.HTTP_201_CREATED)
def create_file(
    data: MedicalFileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    medical_file = service.create_file(db, data, current_user)
    return DataResponse(message="File registered", data=MedicalFileResponse.model_validate(medical_file))


@router.get("/patient/{patient_id}", response_model=PageResponse[MedicalFileResponse])
def list_patient_files(
    patient_id: int,
    category: Optional[FileCategory] = Query(None, description="Filter by category"),
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    query = service.list_patient_files(db, patient_id, current_user, category)
    return paginate(query, page_params, MedicalFileResponse)


@router.get("/medical-record/{record_id}", response_model=PageResponse[MedicalFileResponse])
def list_record_files(
    record_id: int,
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    return paginate(service.list_record_files(db, record_id, current_user), page_params, MedicalFileResponse)


@router.get("/{file_id}", response_model=DataResponse[MedicalFileResponse])
def get_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    return DataResponse(data=MedicalFileResponse.model_validate(service.get_file(db, file_id, current_user)))


@router.put("/{file_id}", response_model=DataResponse[MedicalFileResponse])
def update_file(
    file_id: int,
    data: MedicalFileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    medical_file = service.update_file(db, file_id, data, current_user)
    return DataResponse(message="File updated", data=MedicalFileResponse.model_validate(medical_file))


@router.delete("/{file_id}", response_model=DataResponse[MedicalFileResponse])
def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    medical_file = service.delete_file(db, file_id, current_user)
    return DataResponse(message="File deleted", data=MedicalFileResponse.model_validate(medical_file))
