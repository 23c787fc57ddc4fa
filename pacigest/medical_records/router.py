"""
Medical Record Router - API endpoints for consultation records.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize
from ..auth.models import User
from ..core.pagination import PageParams, PageResponse, paginate
from ..core.permissions import Capability
from ..core.responses import DataResponse
from ..database import get_db
from .schemas import MedicalRecordCreate, MedicalRecordResponse, MedicalRecordUpdate
from . import service

router = APIRouter()

can_view = authorize(Capability.VIEW_MEDICAL_RECORDS, subscription=True)
can_edit = authorize(Capability.EDIT_MEDICAL_RECORDS, subscription=True)


@router.post("/", response_model=DataResponse[MedicalRecordResponse], status_code=status.HTTP_201_CREATED)
def create_record(
    data: MedicalRecordCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    record = service.create_record(db, data, current_user)
    return DataResponse(message="Medical record created", data=MedicalRecordResponse.model_validate(record))


@router.get("/", response_model=PageResponse[MedicalRecordResponse])
def list_records(
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    return paginate(service.list_records(db, current_user), page_params, MedicalRecordResponse)


@router.get("/patient/{patient_id}", response_model=PageResponse[MedicalRecordResponse])
def list_patient_records(
    patient_id: int,
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    """
    A patient's history, newest consultation first.
    """
    return paginate(service.list_patient_records(db, patient_id, current_user), page_params, MedicalRecordResponse)


@router.get("/{record_id}", response_model=DataResponse[MedicalRecordResponse])
def get_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    return DataResponse(data=MedicalRecordResponse.model_validate(service.get_record(db, record_id, current_user)))


@router.put("/{record_id}", response_model=DataResponse[MedicalRecordResponse])
def update_record(
    record_id: int,
    data: MedicalRecordUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    record = service.update_record(db, record_id, data, current_user)
    return DataResponse(message="Medical record updated", data=MedicalRecordResponse.model_validate(record))


@router.delete("/{record_id}", response_model=DataResponse[MedicalRecordResponse])
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_edit),
):
    record = service.delete_record(db, record_id, current_user)
    return DataResponse(message="Medical record deleted", data=MedicalRecordResponse.model_validate(record))
