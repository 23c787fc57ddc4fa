"""
Prescription Router - API endpoints for prescriptions.
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
from .models import PrescriptionStatus
from .schemas import CancelPrescriptionRequest, PrescriptionCreate, PrescriptionResponse, PrescriptionUpdate
from . import service

router = APIRouter()

can_view = authorize(Capability.VIEW_PRESCRIPTIONS, subscription=True)
can_write = authorize(Capability.WRITE_PRESCRIPTIONS, subscription=True)


@router.post("/", response_model=DataResponse[PrescriptionResponse], status_code=status.HTTP_201_CREATED)
def create_prescription(
    data: PrescriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_write),
):
    prescription = service.create_prescription(db, data, current_user)
    return DataResponse(message="Prescription created", data=PrescriptionResponse.model_validate(prescription))


@router.get("/", response_model=PageResponse[PrescriptionResponse])
def list_prescriptions(
    status: Optional[PrescriptionStatus] = Query(None, description="Filter by status"),
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    return paginate(service.list_prescriptions(db, current_user, status), page_params, PrescriptionResponse)


@router.get("/patient/{patient_id}", response_model=PageResponse[PrescriptionResponse])
def list_patient_prescriptions(
    patient_id: int,
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    query = service.list_patient_prescriptions(db, patient_id, current_user)
    return paginate(query, page_params, PrescriptionResponse)


@router.get("/{prescription_id}", response_model=DataResponse[PrescriptionResponse])
def get_prescription(
    prescription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view),
):
    prescription = service.get_prescription(db, prescription_id, current_user)
    return DataResponse(data=PrescriptionResponse.model_validate(prescription))


@router.put("/{prescription_id}", response_model=DataResponse[PrescriptionResponse])
def update_prescription(
    prescription_id: int,
    data: PrescriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_write),
):
    prescription = service.update_prescription(db, prescription_id, data, current_user)
    return DataResponse(message="Prescription updated", data=PrescriptionResponse.model_validate(prescription))


@router.patch("/{prescription_id}/cancel", response_model=DataResponse[PrescriptionResponse])
def cancel_prescription(
    prescription_id: int,
    data: CancelPrescriptionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_write),
):
    prescription = service.cancel_prescription(db, prescription_id, data.reason, current_user)
    return DataResponse(message="Prescription cancelled", data=PrescriptionResponse.model_validate(prescription))


@router.delete("/{prescription_id}", response_model=DataResponse[PrescriptionResponse])
def delete_prescription(
    prescription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_write),
):
    prescription = service.delete_prescription(db, prescription_id, current_user)
    return DataResponse(message="Prescription deleted", data=PrescriptionResponse.model_validate(prescription))
