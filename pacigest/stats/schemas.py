"""
Stats Schemas - Dashboard figures for a doctor.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal


class DashboardStats(BaseModel):
    total_patients: int
    today_appointments: int
    upcoming_appointments: int
    medical_records_this_month: int
    prescriptions_this_month: int
    monthly_revenue: Decimal
    current_month: str


class PatientStats(BaseModel):
    total_patients: int
    new_patients_this_month: int
    by_gender: Dict[str, int]


class AppointmentStats(BaseModel):
    """
    Appointment counts, optionally limited to a scheduling window.

    Fields:
    - total: Active appointments in the window
    - by_status / by_type: Every known value is present, zero when unused
    """
    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class MonthRevenue(BaseModel):
    month: int
    total_revenue: Decimal
    appointment_count: int


class RevenueStats(BaseModel):
    year: int
    total_revenue: Decimal
    months: List[MonthRevenue]


class RecentRecord(BaseModel):
    id: int
    patient_id: int
    patient_name: str
    consultation_date: datetime
    reason: str
    diagnosis: str
    created_at: Optional[datetime] = None


class RecentAppointment(BaseModel):
    id: int
    appointment_number: str
    patient_id: int
    patient_name: str
    scheduled_at: datetime
    status: str
    created_at: Optional[datetime] = None


class RecentPrescription(BaseModel):
    id: int
    prescription_number: str
    patient_id: int
    patient_name: str
    status: str
    created_at: Optional[datetime] = None


class RecentActivity(BaseModel):
    records: List[RecentRecord]
    appointments: List[RecentAppointment]
    prescriptions: List[RecentPrescription]
