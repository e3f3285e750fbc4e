"""
Core data models for the Clinica AI Agent system.
"""

from .context import ConversationContext, ConversationMessage, SlotValue, is_filled_value, utcnow
from .entities import ExtractedEntities, NLPResult, SentimentResult
from .flow import AppointmentData, AppointmentSlot, FlowResult, FlowTransition, SlotUpdate
from .clinic import Appointment, Doctor, DoctorSchedule, Patient, Specialty
from .knowledge import ClinicPolicy, EmergencyProtocol, FAQEntry, KnowledgeDocument, MedicalSpecialty
from .conversation import (
    ConversationChunk,
    ConversationResponse,
    SemanticContext,
    SemanticMatch,
    StreamChunk,
)

__all__ = [
    "ConversationContext",
    "ConversationMessage",
    "SlotValue",
    "is_filled_value",
    "utcnow",
    "ExtractedEntities",
    "NLPResult",
    "SentimentResult",
    "AppointmentData",
    "AppointmentSlot",
    "FlowResult",
    "FlowTransition",
    "SlotUpdate",
    "Appointment",
    "Doctor",
    "DoctorSchedule",
    "Patient",
    "Specialty",
    "ClinicPolicy",
    "EmergencyProtocol",
    "FAQEntry",
    "KnowledgeDocument",
    "MedicalSpecialty",
    "ConversationChunk",
    "ConversationResponse",
    "SemanticContext",
    "SemanticMatch",
    "StreamChunk",
]
