"""
Availability search over doctor schedules and existing bookings.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

import pytz

from ...config import SchedulingConfig
from ...core.enums import TimePeriod
from ...core.models import AppointmentSlot, Doctor, DoctorSchedule
from ...utils.logging import get_logger
from .repository import ClinicRepository


logger = get_logger("clinica.availability")


def _to_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


class AvailabilityService:
    """Computes open appointment slots for a specialty."""

    def __init__(self, repository: ClinicRepository, config: Optional[SchedulingConfig] = None):
        self.repository = repository
        self.config = config or SchedulingConfig()
        self.tz = pytz.timezone(self.config.timezone)

    def now(self) -> datetime:
        """Current clinic-local time, naive."""
        return datetime.now(self.tz).replace(tzinfo=None)

    def _day_window(self, day: date) -> Optional[Tuple[time, time]]:
        if day.weekday() in self.config.closed_weekdays:
            return None
        closing = self.config.saturday_closing_time if day.weekday() == 5 else self.config.closing_time
        return _to_time(self.config.opening_time), _to_time(closing)

    def _in_period(self, slot_time: time, period: Optional[TimePeriod]) -> bool:
        if period is None:
            return True
        afternoon = _to_time(self.config.afternoon_start)
        evening = _to_time(self.config.evening_start)
        if period == TimePeriod.MORNING:
            return slot_time < afternoon
        if period == TimePeriod.AFTERNOON:
            return afternoon <= slot_time < evening
        return slot_time >= evening

    def _in_lunch(self, start: datetime, end: datetime) -> bool:
        lunch_start = datetime.combine(start.date(), _to_time(self.config.lunch_start))
        lunch_end = datetime.combine(start.date(), _to_time(self.config.lunch_end))
        return start < lunch_end and end > lunch_start

    def _doctor_slots(
        self,
        doctor: Doctor,
        schedule: DoctorSchedule,
        day: date,
        duration: int,
    ) -> List[datetime]:
        window = self._day_window(day)
        if window is None:
            return []

        start = datetime.combine(day, max(_to_time(schedule.start_time), window[0]))
        end = datetime.combine(day, min(_to_time(schedule.end_time), window[1]))
        step = timedelta(minutes=self.config.appointment_duration_minutes)
        length = timedelta(minutes=duration)

        slots = []
        current = start
        while current + length <= end:
            if not self._in_lunch(current, current + length):
                slots.append(current)
            current += step
        return slots

    async def _resolve_doctors(self, specialty_id: str, doctor_id: Optional[str]) -> List[Doctor]:
        doctors = await self.repository.list_doctors(specialty_id)
        if doctor_id:
            doctors = [d for d in doctors if d.id == doctor_id]
        return doctors

    async def get_available_slots(
        self,
        specialty: str,
        preferred_date: Optional[str] = None,
        time_preference: Optional[str] = None,
        preferred_time: Optional[str] = None,
        doctor_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AppointmentSlot]:
        """
        Return up to ``limit`` open slots, soonest first.

        The search starts at ``preferred_date`` (or today) and covers the
        configured number of days. Slots at exactly ``preferred_time`` are
        listed first; ``time_preference`` restricts results to a period.
        """
        limit = limit or self.config.max_slot_options
        found = await self.repository.find_specialty(specialty)
        if found is None:
            logger.warning(f"availability: unknown specialty {specialty!r}")
            return []

        doctors = await self._resolve_doctors(found.id, doctor_id)
        if not doctors:
            return []

        now = self.now()
        start_day = now.date()
        if preferred_date:
            try:
                start_day = max(date.fromisoformat(preferred_date), start_day)
            except ValueError:
                logger.warning(f"availability: ignoring invalid date {preferred_date!r}")
        end_day = start_day + timedelta(days=self.config.availability_search_days)

        schedules: Dict[str, Dict[int, DoctorSchedule]] = defaultdict(dict)
        for schedule in await self.repository.get_schedules(d.id for d in doctors):
            schedules[schedule.doctor_id][schedule.weekday] = schedule

        booked = await self.repository.get_booked_times(
            [d.id for d in doctors],
            datetime.combine(start_day, time.min),
            datetime.combine(end_day, time.min),
        )

        period = TimePeriod.from_string(time_preference) if time_preference else None
        duration = self.config.appointment_duration_minutes

        candidates: List[AppointmentSlot] = []
        day = start_day
        while day < end_day:
            for doctor in doctors:
                schedule = schedules[doctor.id].get(day.weekday())
                if schedule is None:
                    continue
                for starts_at in self._doctor_slots(doctor, schedule, day, duration):
                    key = starts_at.strftime("%Y-%m-%dT%H:%M")
                    if starts_at <= now or key in booked[doctor.id]:
                        continue
                    if not self._in_period(starts_at.time(), period):
                        continue
                    candidates.append(AppointmentSlot(
                        doctor_id=doctor.id,
                        doctor_name=doctor.name,
                        specialty=found.name,
                        date=starts_at.strftime("%Y-%m-%d"),
                        time=starts_at.strftime("%H:%M"),
                        duration=duration,
                    ))
            day += timedelta(days=1)

        candidates.sort(key=lambda s: (
            s.time != preferred_time if preferred_time else False,
            s.date,
            s.time,
            s.doctor_name,
        ))
        return candidates[:limit]

    async def is_available(self, doctor_id: str, slot_date: str, slot_time: str) -> bool:
        """Whether ``doctor_id`` is free at the given local date and time."""
        try:
            starts_at = datetime.fromisoformat(f"{slot_date}T{slot_time}")
        except ValueError:
            return False
        if starts_at <= self.now():
            return False

        booked = await self.repository.get_booked_times(
            [doctor_id], starts_at, starts_at + timedelta(minutes=1)
        )
        return starts_at.strftime("%Y-%m-%dT%H:%M") not in booked[doctor_id]

    async def find_free_doctor(self, specialty: str, slot_date: str, slot_time: str) -> Optional[Doctor]:
        """First doctor of ``specialty`` with an open slot at the given date and time."""
        found = await self.repository.find_specialty(specialty)
        if found is None:
            return None
        for doctor in await self.repository.list_doctors(found.id):
            slots = await self.get_available_slots(
                found.id, preferred_date=slot_date, preferred_time=slot_time, doctor_id=doctor.id, limit=1
            )
            if slots and slots[0].date == slot_date and slots[0].time == slot_time:
                return doctor
        return None
