"""
Conversation-related enums.
"""

from enum import Enum


class Intent(str, Enum):
    """Closed set of user intents driving required slots and flow selection."""

    SCHEDULE_APPOINTMENT = "AGENDAR_CONSULTA"
    RESCHEDULE_APPOINTMENT = "REAGENDAR_CONSULTA"
    CANCEL_APPOINTMENT = "CANCELAR_CONSULTA"
    CHECK_APPOINTMENT = "CONSULTAR_AGENDAMENTO"
    EMERGENCY = "EMERGENCIA"
    GENERAL_INFORMATION = "INFORMACOES_GERAIS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_label(cls, value: str) -> "Intent":
        """Convert an LLM label (value or member name) to an Intent, UNKNOWN otherwise."""
        if not value:
            return cls.UNKNOWN

        cleaned = str(value).strip().strip("\"'`.").upper()
        for intent in cls:
            if cleaned in (intent.value, intent.name):
                return intent
        return cls.UNKNOWN


class SlotName(str, Enum):
    """Canonical slot names filled from extracted entities."""

    PATIENT_NAME = "patientName"
    PATIENT_CPF = "patientCPF"
    PATIENT_PHONE = "patientPhone"
    PATIENT_EMAIL = "patientEmail"
    SPECIALTY = "specialty"
    DOCTOR = "doctor"
    DOCTOR_ID = "doctorId"
    PREFERRED_DATE = "preferredDate"
    PREFERRED_TIME = "preferredTime"
    TIME_PREFERENCE = "timePreference"
    EXISTING_APPOINTMENT_ID = "existingAppointmentId"
    EXISTING_APPOINTMENT_DATE = "existingAppointmentDate"
    SYMPTOMS = "symptoms"
    URGENCY_LEVEL = "urgencyLevel"
    INSURANCE_PLAN = "insurancePlan"


class FlowState(str, Enum):
    """Stable flow state values persisted on the conversation context."""

    INITIAL = "initial"
    UNDERSTANDING_INTENT = "understanding_intent"
    # Scheduling
    COLLECTING_APPOINTMENT_DETAILS = "collecting_appointment_details"
    PRESENTING_OPTIONS = "presenting_options"
    CONFIRMING_DETAILS = "confirming_details"
    READY_TO_BOOK = "ready_to_book"
    # Rescheduling / cancellation / lookup
    IDENTIFYING_APPOINTMENT = "identifying_appointment"
    SELECTING_APPOINTMENT = "selecting_appointment"
    COLLECTING_NEW_PREFERENCES = "collecting_new_preferences"
    PRESENTING_NEW_OPTIONS = "presenting_new_options"
    READY_TO_RESCHEDULE = "ready_to_reschedule"
    EXPLAINING_POLICY = "explaining_policy"
    READY_TO_CANCEL = "ready_to_cancel"
    # Emergency
    ASSESSING_EMERGENCY = "assessing_emergency"
    EMERGENCY_HANDLED = "emergency_handled"
    # Information
    PROVIDING_INFORMATION = "providing_information"
    COMPLETED = "completed"


class FlowStep(str, Enum):
    """Next-step markers returned by the flow handler."""

    COLLECT_BASIC_INFO = "collect_basic_info"
    COLLECT_NAME = "collect_name"
    COLLECT_PHONE = "collect_phone"
    COLLECT_SPECIALTY = "collect_specialty"
    COLLECT_TIME_PREFERENCES = "collect_time_preferences"
    NO_AVAILABILITY = "no_availability"
    PRESENT_OPTIONS = "present_options"
    CONFIRM_DETAILS = "confirm_details"
    COMPLETED = "completed"
    RESTART = "restart"
    IDENTIFY_APPOINTMENT = "identify_appointment"
    VERIFY_PATIENT_DATA = "verify_patient_data"
    SELECT_APPOINTMENT = "select_appointment"
    COLLECT_NEW_TIME = "collect_new_time"
    PRESENT_NEW_OPTIONS = "present_new_options"
    RESCHEDULED = "rescheduled"
    CONFIRM_CANCELLATION = "confirm_cancellation"
    CANCELLED = "cancelled"
    CANCELLATION_ABORTED = "cancellation_aborted"
    EMERGENCY_HANDLED = "emergency_handled"
    SCHEDULE_URGENT = "schedule_urgent"
    EMERGENCY_FALLBACK = "emergency_fallback"
    APPOINTMENTS_LISTED = "appointments_listed"


class MessageRole(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class TimePeriod(str, Enum):
    """Coarse time-of-day preference."""

    MORNING = "manha"
    AFTERNOON = "tarde"
    EVENING = "noite"

    @classmethod
    def from_string(cls, value: str) -> "TimePeriod | None":
        """Convert Portuguese/English period words to a TimePeriod."""
        if not value:
            return None

        value = str(value).strip().lower()
        if value in ["manhã", "manha", "de manhã", "pela manhã", "cedo", "morning"]:
            return cls.MORNING
        if value in ["tarde", "à tarde", "a tarde", "de tarde", "afternoon"]:
            return cls.AFTERNOON
        if value in ["noite", "à noite", "a noite", "de noite", "evening", "night"]:
            return cls.EVENING
        return None


class Sentiment(str, Enum):
    """Sentiment polarity of a user message."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class UrgencyLevel(str, Enum):
    """Urgency of an emergency protocol."""

    IMMEDIATE = "immediate"
    URGENT = "urgent"
    SEMI_URGENT = "semi_urgent"

    @property
    def rank(self) -> int:
        """Lower rank means more urgent."""
        return {"immediate": 0, "urgent": 1, "semi_urgent": 2}[self.value]
