"""
Stats Router - Dashboard endpoints.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import authorize
from ..auth.models import User
from ..core.clock import utcnow
from ..core.responses import DataResponse
from ..database import get_db
from .schemas import AppointmentStats, DashboardStats, PatientStats, RecentActivity, RevenueStats
from . import service

router = APIRouter()

subscribed_user = authorize(subscription=True)


@router.get("/dashboard/{doctor_id}", response_model=DataResponse[DashboardStats])
def get_dashboard(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(subscribed_user),
):
    """
    Headline figures for the doctor's dashboard.
    """
    service.check_doctor_scope(doctor_id, current_user)
    return DataResponse(data=service.dashboard(db, doctor_id))


@router.get("/patients/{doctor_id}", response_model=DataResponse[PatientStats])
def get_patient_stats(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(subscribed_user),
):
    service.check_doctor_scope(doctor_id, current_user)
    return DataResponse(data=service.patient_counts(db, doctor_id))


@router.get("/appointments/{doctor_id}", response_model=DataResponse[AppointmentStats])
def get_appointment_stats(
    doctor_id: int,
    start_date: Optional[datetime] = Query(None, description="Only appointments scheduled at or after this time"),
    end_date: Optional[datetime] = Query(None, description="Only appointments scheduled at or before this time"),
    db: Session = Depends(get_db),
    current_user: User = Depends(subscribed_user),
):
    service.check_doctor_scope(doctor_id, current_user)
    return DataResponse(data=service.appointment_counts(db, doctor_id, start_date, end_date))


@router.get("/revenue/{doctor_id}", response_model=DataResponse[RevenueStats])
def get_monthly_revenue(
    doctor_id: int,
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Defaults to the current year"),
    db: Session = Depends(get_db),
    current_user: User = Depends(subscribed_user),
):
    """
    Completed-appointment revenue per month of ``year``.
    """
    service.check_doctor_scope(doctor_id, current_user)
    return DataResponse(data=service.monthly_revenue(db, doctor_id, year or utcnow().year))


@router.get("/activity/{doctor_id}", response_model=DataResponse[RecentActivity])
def get_recent_activity(
    doctor_id: int,
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(subscribed_user),
):
    service.check_doctor_scope(doctor_id, current_user)
    return DataResponse(data=service.recent_activity(db, doctor_id, limit))
