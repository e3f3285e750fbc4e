"""
Appointment-related enums.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Lifecycle status of a persisted appointment."""

    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def active(cls) -> tuple:
        """Statuses that still hold a slot on the doctor's calendar."""
        return (cls.SCHEDULED.value, cls.CONFIRMED.value)


class AppointmentType(str, Enum):
    """Kind of appointment."""

    CONSULTATION = "CONSULTATION"
    FOLLOW_UP = "FOLLOW_UP"
    EMERGENCY = "EMERGENCY"
