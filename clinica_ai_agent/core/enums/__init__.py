"""
Enums for the Clinica AI Agent system.
"""

from .conversation import (
    Intent,
    SlotName,
    FlowState,
    FlowStep,
    MessageRole,
    TimePeriod,
    Sentiment,
    UrgencyLevel,
)
from .appointment import AppointmentStatus, AppointmentType

__all__ = [
    "Intent",
    "SlotName",
    "FlowState",
    "FlowStep",
    "MessageRole",
    "TimePeriod",
    "Sentiment",
    "UrgencyLevel",
    "AppointmentStatus",
    "AppointmentType",
]
