"""
Patient Model - Demographic and clinical profile shared by one or more doctors.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Enum, JSON, Table, Text, func
from sqlalchemy.orm import relationship
import enum

from ..database import Base

# Doctors linked to a patient
patient_doctors = Table(
    "patient_doctors",
    Base.metadata,
    Column("patient_id", Integer, ForeignKey("patients.id", ondelete="CASCADE"), primary_key=True),
    Column("doctor_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PatientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Patient(Base):
    """
    Patient Model - Stores patient information

    Fields:
    - medical_record_number: Generated PAC-YYYYMMDD-NNNN identifier
    - first_name / last_name / date_of_birth / gender: Demographics
    - email / phone / address / emergency_contact_*: Contact details
    - blood_type / allergies / chronic_diseases / family_history / notes: Clinical profile
    - doctors: Doctors the patient is linked to
    - is_active / deleted_at: Soft delete marker
    """
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    medical_record_number = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(Enum(Gender, name="patient_gender"), nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    emergency_contact_name = Column(String, nullable=True)
    emergency_contact_phone = Column(String, nullable=True)
    blood_type = Column(String, nullable=True)
    allergies = Column(JSON, default=list)
    chronic_diseases = Column(JSON, default=list)
    family_history = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(Enum(PatientStatus, name="patient_status"), default=PatientStatus.ACTIVE)
    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    doctors = relationship("User", secondary=patient_doctors)

    def __repr__(self):
        """String representation of the Patient model"""
        return f"<Patient(id={self.id}, number='{self.medical_record_number}')>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def doctor_ids(self):
        return [doctor.id for doctor in self.doctors]
