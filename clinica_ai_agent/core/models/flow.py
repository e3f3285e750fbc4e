"""
Flow handler data models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import FlowState, FlowStep, SlotName


class SlotUpdate(BaseModel):
    """A flow-driven slot write. ``value=None`` clears the slot."""

    model_config = ConfigDict(extra="forbid")

    name: SlotName
    value: Any = None
    confirmed: bool = True
    confidence: float = 1.0


class FlowResult(BaseModel):
    """Result of one flow handler call; always carries a user-displayable message."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    next_step: Optional[FlowStep] = None
    requires_confirmation: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    slot_updates: List[SlotUpdate] = Field(default_factory=list)
    flow_data: Optional[Dict[str, Any]] = None


class FlowTransition(BaseModel):
    """State change derived from the user's reply to a pending question."""

    model_config = ConfigDict(extra="forbid")

    flow_state: FlowState
    slot_updates: List[SlotUpdate] = Field(default_factory=list)
    flow_data: Optional[Dict[str, Any]] = None


class AppointmentData(BaseModel):
    """Flattened view of the slots needed to book an appointment."""

    model_config = ConfigDict(extra="forbid")

    patient_name: str = ""
    patient_phone: str = ""
    patient_cpf: Optional[str] = None
    patient_email: Optional[str] = None
    specialty: str = ""
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    symptoms: Optional[str] = None
    insurance_plan: Optional[str] = None
    doctor_id: Optional[str] = None


class AppointmentSlot(BaseModel):
    """An open slot on a doctor's calendar."""

    model_config = ConfigDict(extra="forbid")

    doctor_id: str
    doctor_name: str
    specialty: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    duration: int = 30
    available: bool = True

    @property
    def starts_at(self) -> str:
        return f"{self.date}T{self.time}"
