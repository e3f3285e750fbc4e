"""
Date and time parsing utilities.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional
import pytz
from dateparser import parse as parse_date

from ..config import get_settings
from .text import TextProcessor


_WEEKDAYS = {
    "segunda": 0, "terca": 1, "quarta": 2, "quinta": 3,
    "sexta": 4, "sabado": 5, "domingo": 6,
}


class DateParser:
    """Date parsing utilities for Portuguese input."""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = pytz.timezone(timezone or get_settings().timezone)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    def parse_natural_date(self, text: str) -> Optional[str]:
        """
        Parse natural language dates like 'amanhã', 'sexta-feira' or '15/12'.

        Past results are moved to the next occurrence for weekday phrases;
        other past dates return None.

        Args:
            text: Natural language date string

        Returns:
            Date in YYYY-MM-DD format or None if parsing fails
        """
        if not text:
            return None

        if self.is_valid_iso_date(text.strip()):
            return text.strip()

        weekday = self._parse_weekday(text)
        if weekday:
            return weekday

        parsed = parse_date(
            text,
            languages=["pt"],
            settings={
                "PREFER_DATES_FROM": "future",
                "DATE_ORDER": "DMY",
                "TIMEZONE": self.tz.zone,
                "RETURN_AS_TIMEZONE_AWARE": True,
            },
        )
        if not parsed:
            return None

        result_date = parsed.astimezone(self.tz).date()
        if result_date < self.today():
            return None
        return result_date.strftime("%Y-%m-%d")

    def _parse_weekday(self, text: str) -> Optional[str]:
        """Resolve 'segunda', 'próxima quinta-feira'... to the next matching date."""
        lowered = TextProcessor.normalize(text)
        for name, idx in _WEEKDAYS.items():
            if re.search(rf"\b{name}\b", lowered):
                today = self.today()
                days_ahead = (idx - today.weekday() + 7) % 7
                if days_ahead == 0 or "proxima" in lowered or "que vem" in lowered:
                    days_ahead = days_ahead or 7
                return (today + timedelta(days=days_ahead)).strftime("%Y-%m-%d")
        return None

    def next_week_start(self) -> str:
        """Monday of next week."""
        today = self.today()
        return (today + timedelta(days=7 - today.weekday())).strftime("%Y-%m-%d")

    def next_month_start(self) -> str:
        today = self.today()
        first = (today.replace(day=1) + timedelta(days=32)).replace(day=1)
        return first.strftime("%Y-%m-%d")

    @staticmethod
    def is_valid_iso_date(date_str: str) -> bool:
        """Check if string is a valid ISO date (YYYY-MM-DD)."""
        try:
            datetime.strptime(date_str, "%Y-%m-%d")
            return True
        except (TypeError, ValueError):
            return False

    @staticmethod
    def format_for_display(date_str: str) -> str:
        """YYYY-MM-DD -> DD/MM/YYYY, leaving anything else untouched."""
        try:
            return datetime.strptime(date_str, "%Y-%m-%d").strftime("%d/%m/%Y")
        except (TypeError, ValueError):
            return date_str


class TimeParser:
    """Time parsing utilities for Portuguese input."""

    _TIME_PATTERN = re.compile(r"\b(\d{1,2})\s*(?:h|:|horas?)\s*(\d{2})?\b")

    @classmethod
    def parse_natural_time(cls, text: str) -> Optional[str]:
        """
        Parse times like '14h', '9:30', '14 horas' or 'meio-dia'.

        Args:
            text: Natural language time string

        Returns:
            Time in HH:MM format or None if parsing fails
        """
        if not text:
            return None

        lowered = TextProcessor.strip_accents(text.strip().lower())
        if "meio dia" in lowered or "meio-dia" in lowered:
            return "12:00"

        match = cls._TIME_PATTERN.search(lowered)
        if not match:
            return None

        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if hour > 23 or minute > 59:
            return None
        if hour < 7 and ("tarde" in lowered or "noite" in lowered):
            hour += 12
        return f"{hour:02d}:{minute:02d}"

    @staticmethod
    def is_valid_time_format(time_str: str) -> bool:
        """Check if string is a valid time format (HH:MM)."""
        try:
            datetime.strptime(time_str, "%H:%M")
            return True
        except (TypeError, ValueError):
            return False
