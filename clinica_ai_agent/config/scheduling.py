"""
Scheduling rules for the clinic calendar.
"""

from typing import Tuple
from pydantic import BaseModel


class SchedulingConfig(BaseModel):
    """Business hours and slot rules used by availability search."""

    timezone: str = "America/Sao_Paulo"
    opening_time: str = "07:00"
    closing_time: str = "19:00"
    saturday_closing_time: str = "12:00"
    closed_weekdays: Tuple[int, ...] = (6,)
    lunch_start: str = "12:00"
    lunch_end: str = "13:00"
    appointment_duration_minutes: int = 30
    availability_search_days: int = 14
    max_slot_options: int = 3

    # Period boundaries for "manhã" / "tarde" / "noite"
    afternoon_start: str = "12:00"
    evening_start: str = "18:00"
