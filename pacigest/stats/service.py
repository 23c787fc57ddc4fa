"""
Stats Service - Aggregates for the doctor dashboard.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from ..appointments.models import Appointment, AppointmentStatus, AppointmentType
from ..auth.models import User
from ..core.clock import as_utc, utcnow
from ..exceptions import ForbiddenError, ValidationError
from ..medical_records.models import MedicalRecord
from ..patients.models import Gender, Patient
from ..patients.service import patients_for_doctor
from ..prescriptions.models import Prescription
from .schemas import (
    AppointmentStats,
    DashboardStats,
    MonthRevenue,
    PatientStats,
    RecentActivity,
    RecentAppointment,
    RecentPrescription,
    RecentRecord,
    RevenueStats,
)

# Set up logging
logger = logging.getLogger(__name__)

OPEN_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


def check_doctor_scope(doctor_id: int, user: User) -> None:
    """
    Raises:
        ForbiddenError: If ``doctor_id`` is not the acting doctor
    """
    if doctor_id != user.acting_doctor_id:
        raise ForbiddenError("You can only view your own statistics")


def dashboard(db: Session, doctor_id: int, now: Optional[datetime] = None) -> DashboardStats:
    now = now or utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)
    month_start = day_start.replace(day=1)

    appointments = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id, Appointment.is_active.is_(True)
    )

    today_appointments = appointments.filter(
        Appointment.scheduled_at >= day_start,
        Appointment.scheduled_at < day_end,
        Appointment.status.in_(OPEN_STATUSES),
    ).count()
    upcoming_appointments = appointments.filter(
        Appointment.scheduled_at >= now, Appointment.status.in_(OPEN_STATUSES)
    ).count()

    records = db.query(MedicalRecord).filter(
        MedicalRecord.doctor_id == doctor_id,
        MedicalRecord.is_active.is_(True),
        MedicalRecord.consultation_date >= month_start,
    ).count()
    prescriptions = db.query(Prescription).filter(
        Prescription.doctor_id == doctor_id,
        Prescription.is_active.is_(True),
        Prescription.prescription_date >= month_start,
    ).count()

    revenue = (
        db.query(func.coalesce(func.sum(Appointment.consultation_fee), 0))
        .filter(
            Appointment.doctor_id == doctor_id,
            Appointment.is_active.is_(True),
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.completed_at >= month_start,
        )
        .scalar()
    )

    return DashboardStats(
        total_patients=patients_for_doctor(db, doctor_id).count(),
        today_appointments=today_appointments,
        upcoming_appointments=upcoming_appointments,
        medical_records_this_month=records,
        prescriptions_this_month=prescriptions,
        monthly_revenue=Decimal(str(revenue or 0)),
        current_month=month_start.strftime("%Y-%m"),
    )


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _patient_name(patient: Patient) -> str:
    return f"{patient.first_name} {patient.last_name}"


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def patient_counts(db: Session, doctor_id: int, now: Optional[datetime] = None) -> PatientStats:
    month_start = _month_start(now or utcnow())
    patients = patients_for_doctor(db, doctor_id)

    rows = patients.with_entities(Patient.gender, func.count(Patient.id)).group_by(Patient.gender).all()
    by_gender = {gender.value: 0 for gender in Gender}
    for gender, count in rows:
        by_gender[Gender(gender).value] = count

    return PatientStats(
        total_patients=sum(by_gender.values()),
        new_patients_this_month=patients.filter(Patient.created_at >= month_start).count(),
        by_gender=by_gender,
    )


def appointment_counts(
    db: Session,
    doctor_id: int,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> AppointmentStats:
    """
    Count active appointments by status and by type.

    Either bound may be given alone; both are inclusive.

    Raises:
        ValidationError: If ``start_date`` is after ``end_date``
    """
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            "start_date must not be after end_date",
            errors=[{"field": "start_date", "message": "start_date must not be after end_date"}],
        )

    appointments = db.query(Appointment).filter(Appointment.doctor_id == doctor_id, Appointment.is_active.is_(True))
    if start_date:
        appointments = appointments.filter(Appointment.scheduled_at >= start_date)
    if end_date:
        appointments = appointments.filter(Appointment.scheduled_at <= end_date)

    by_status = {status.value: 0 for status in AppointmentStatus}
    for status, count in (
        appointments.with_entities(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
    ):
        by_status[AppointmentStatus(status).value] = count

    by_type = {kind.value: 0 for kind in AppointmentType}
    for kind, count in (
        appointments.with_entities(Appointment.appointment_type, func.count(Appointment.id))
        .group_by(Appointment.appointment_type)
        .all()
    ):
        if kind is not None:
            by_type[AppointmentType(kind).value] = count

    return AppointmentStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_type=by_type,
        start_date=start_date,
        end_date=end_date,
    )


def monthly_revenue(db: Session, doctor_id: int, year: int) -> RevenueStats:
    """
    Revenue from completed appointments in ``year``, one entry per calendar month.

    Months without completed appointments are reported with zero.
    """
    year_start = datetime(year, 1, 1, tzinfo=timezone.utc)
    next_year = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    month = func.extract("month", Appointment.scheduled_at)

    rows = (
        db.query(month, func.coalesce(func.sum(Appointment.consultation_fee), 0), func.count(Appointment.id))
        .filter(
            Appointment.doctor_id == doctor_id,
            Appointment.is_active.is_(True),
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.scheduled_at >= year_start,
            Appointment.scheduled_at < next_year,
        )
        .group_by(month)
        .all()
    )
    months = {number: MonthRevenue(month=number, total_revenue=_money(0), appointment_count=0) for number in range(1, 13)}
    for number, total, count in rows:
        months[int(number)] = MonthRevenue(month=int(number), total_revenue=_money(total), appointment_count=count)

    return RevenueStats(
        year=year,
        total_revenue=sum((entry.total_revenue for entry in months.values()), _money(0)),
        months=list(months.values()),
    )


def recent_activity(db: Session, doctor_id: int, limit: int = 10) -> RecentActivity:
    """Latest records, appointments and prescriptions created for the doctor, newest first."""
    records = (
        db.query(MedicalRecord)
        .filter(MedicalRecord.doctor_id == doctor_id, MedicalRecord.is_active.is_(True))
        .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
        .limit(limit)
        .all()
    )
    appointments = (
        db.query(Appointment)
        .filter(Appointment.doctor_id == doctor_id, Appointment.is_active.is_(True))
        .order_by(Appointment.created_at.desc(), Appointment.id.desc())
        .limit(limit)
        .all()
    )
    prescriptions = (
        db.query(Prescription)
        .filter(Prescription.doctor_id == doctor_id, Prescription.is_active.is_(True))
        .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        .limit(limit)
        .all()
    )

    return RecentActivity(
        records=[
            RecentRecord(
                id=record.id,
                patient_id=record.patient_id,
                patient_name=_patient_name(record.patient),
                consultation_date=as_utc(record.consultation_date),
                reason=record.reason,
                diagnosis=record.diagnosis,
                created_at=as_utc(record.created_at),
            )
            for record in records
        ],
        appointments=[
            RecentAppointment(
                id=appointment.id,
                appointment_number=appointment.appointment_number,
                patient_id=appointment.patient_id,
                patient_name=_patient_name(appointment.patient),
                scheduled_at=as_utc(appointment.scheduled_at),
                status=appointment.status.value,
                created_at=as_utc(appointment.created_at),
            )
            for appointment in appointments
        ],
        prescriptions=[
            RecentPrescription(
                id=prescription.id,
                prescription_number=prescription.prescription_number,
                patient_id=prescription.patient_id,
                patient_name=_patient_name(prescription.patient),
                status=prescription.status.value,
                created_at=as_utc(prescription.created_at),
            )
            for prescription in prescriptions
        ],
    )
