"""
Appointment Router - API endpoints for scheduling and appointment transitions.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize
from ..auth.models import User
from ..core.pagination import AppointmentPageParams, PageResponse, paginate
from ..core.permissions import Capability
from ..core.responses import DataResponse
from ..database import get_db
from ..notifications.sender import NotificationSender, get_notification_sender
from .models import AppointmentStatus
from .schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate, CancelAppointmentRequest
from . import service

router = APIRouter()

# Every appointment route needs the scheduling capability
can_schedule = authorize(Capability.SCHEDULE_APPOINTMENTS)


@router.post("/", response_model=DataResponse[AppointmentResponse], status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
    current_user: User = Depends(can_schedule),
):
    """
    Schedule an appointment. The patient gets a confirmation email when they have an address.
    """
    appointment = await service.create_appointment(db, sender, data, current_user, request)
    return DataResponse(message="Appointment created", data=AppointmentResponse.model_validate(appointment))


@router.get("/", response_model=PageResponse[AppointmentResponse])
def list_appointments(
    status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
    day: Optional[date] = Query(None, alias="date", description="Filter by day (YYYY-MM-DD, UTC)"),
    patient_id: Optional[int] = Query(None, description="Filter by patient"),
    page_params: AppointmentPageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    query = service.list_appointments(db, current_user, status, day, patient_id)
    return paginate(query, page_params, AppointmentResponse)


@router.get("/today", response_model=PageResponse[AppointmentResponse])
def today_schedule(
    page_params: AppointmentPageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    return paginate(service.today_schedule(db, current_user), page_params, AppointmentResponse)


@router.get("/{appointment_id}", response_model=DataResponse[AppointmentResponse])
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    appointment = service.get_appointment(db, appointment_id, current_user)
    return DataResponse(data=AppointmentResponse.model_validate(appointment))


@router.put("/{appointment_id}", response_model=DataResponse[AppointmentResponse])
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    appointment = service.update_appointment(db, appointment_id, data, current_user)
    return DataResponse(message="Appointment updated", data=AppointmentResponse.model_validate(appointment))


@router.patch("/{appointment_id}/confirm", response_model=DataResponse[AppointmentResponse])
def confirm_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    appointment = service.confirm_appointment(db, appointment_id, current_user)
    return DataResponse(message="Appointment confirmed", data=AppointmentResponse.model_validate(appointment))


@router.patch("/{appointment_id}/cancel", response_model=DataResponse[AppointmentResponse])
async def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    request: Request,
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
    current_user: User = Depends(can_schedule),
):
    """
    Cancel an appointment. A reason is required and the patient is notified.
    """
    appointment = await service.cancel_appointment(db, sender, appointment_id, data.reason, current_user, request)
    return DataResponse(message="Appointment cancelled", data=AppointmentResponse.model_validate(appointment))


@router.patch("/{appointment_id}/complete", response_model=DataResponse[AppointmentResponse])
def complete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    appointment = service.complete_appointment(db, appointment_id, current_user)
    return DataResponse(message="Appointment completed", data=AppointmentResponse.model_validate(appointment))


@router.delete("/{appointment_id}", response_model=DataResponse[AppointmentResponse])
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_schedule),
):
    appointment = service.delete_appointment(db, appointment_id, current_user)
    return DataResponse(message="Appointment deleted", data=AppointmentResponse.model_validate(appointment))
