"""
Patient Router - API endpoints for patient management.
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
from .models import PatientStatus
from .schemas import PatientCreate, PatientResponse, PatientUpdate
from . import service

router = APIRouter()


@router.post("/", response_model=DataResponse[PatientResponse], status_code=status.HTTP_201_CREATED)
def create_patient(
    data: PatientCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.CREATE_PATIENTS)),
):
    """
    Register a patient and link them to the acting doctor.
    """
    patient = service.create_patient(db, data, current_user)
    return DataResponse(message="Patient created", data=PatientResponse.model_validate(patient))


@router.get("/", response_model=PageResponse[PatientResponse])
def list_patients(
    status: Optional[PatientStatus] = Query(None, description="Filter by status"),
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.VIEW_PATIENTS)),
):
    return paginate(service.list_patients(db, current_user, status), page_params, PatientResponse)


@router.get("/search", response_model=PageResponse[PatientResponse])
def search_patients(
    query: str = Query(..., min_length=1, description="Name, email or record number"),
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.VIEW_PATIENTS)),
):
    return paginate(service.search_patients(db, current_user, query), page_params, PatientResponse)


@router.get("/{patient_id}", response_model=DataResponse[PatientResponse])
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.VIEW_PATIENTS)),
):
    return DataResponse(data=PatientResponse.model_validate(service.get_patient(db, patient_id, current_user)))


@router.put("/{patient_id}", response_model=DataResponse[PatientResponse])
def update_patient(
    patient_id: int,
    data: PatientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.EDIT_PATIENT_CONTACT)),
):
    patient = service.update_patient(db, patient_id, data, current_user)
    return DataResponse(message="Patient updated", data=PatientResponse.model_validate(patient))


@router.delete("/{patient_id}", response_model=DataResponse[PatientResponse])
def delete_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authorize(Capability.DELETE_PATIENTS)),
):
    patient = service.delete_patient(db, patient_id, current_user)
    return DataResponse(message="Patient deleted", data=PatientResponse.model_validate(patient))
