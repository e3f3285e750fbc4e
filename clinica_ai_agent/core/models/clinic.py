"""
Clinic records persisted in the relational store.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from ..enums import AppointmentStatus, AppointmentType


class Specialty(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    duration: int = 30


class Doctor(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    specialty_id: str
    crm: Optional[str] = None


class DoctorSchedule(BaseModel):
    """Weekly working window; weekday follows ``date.weekday()`` (Monday = 0)."""

    model_config = ConfigDict(extra="forbid")

    doctor_id: str
    weekday: int
    start_time: str
    end_time: str


class Patient(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    full_name: str
    phone: str
    cpf: Optional[str] = None
    email: Optional[str] = None


class Appointment(BaseModel):
    """Persisted appointment joined with doctor, specialty and patient names."""

    model_config = ConfigDict(extra="forbid")

    id: str
    patient_id: str
    doctor_id: str
    specialty_id: str
    scheduled_at: datetime
    end_time: datetime
    duration: int = 30
    reason: str = "Consulta médica"
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    type: AppointmentType = AppointmentType.CONSULTATION
    conversation_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    doctor_name: str = ""
    specialty_name: str = ""
    patient_name: str = ""

    @property
    def date_display(self) -> str:
        return self.scheduled_at.strftime("%d/%m/%Y")

    @property
    def time_display(self) -> str:
        return self.scheduled_at.strftime("%H:%M")
