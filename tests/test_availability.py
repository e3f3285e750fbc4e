"""
Tests for availability search.
"""

from datetime import date, datetime

import pytest


async def _book(repository, doctor_id, iso_date, time):
    patient = await repository.create_patient(full_name="Ana Souza", phone="11999887766")
    return await repository.create_appointment(
        patient.id, doctor_id, "cardiologia", datetime.fromisoformat(f"{iso_date}T{time}")
    )


class TestAvailableSlots:
    """Test slot search."""

    @pytest.mark.asyncio
    async def test_default_slots(self, availability, weekday_date):
        slots = await availability.get_available_slots("cardiologia", preferred_date=weekday_date)

        assert [s.time for s in slots] == ["07:00", "07:30", "08:00"]
        assert [s.doctor_name for s in slots] == ["Dra. Maria Santos", "Dra. Maria Santos", "Dr. João Silva"]
        assert all(s.date == weekday_date and s.specialty == "Cardiologia" for s in slots)
        assert all(s.duration == 30 for s in slots)

    @pytest.mark.asyncio
    async def test_afternoon_skips_lunch(self, availability, weekday_date):
        slots = await availability.get_available_slots(
            "Cardiologia", preferred_date=weekday_date, time_preference="tarde"
        )
        assert [s.time for s in slots] == ["13:00", "13:30", "14:00"]
        assert {s.doctor_id for s in slots} == {"doc-joao-silva"}

    @pytest.mark.asyncio
    async def test_booked_slot_is_skipped(self, availability, repository, weekday_date):
        await _book(repository, "doc-joao-silva", weekday_date, "08:00")
        slots = await availability.get_available_slots(
            "cardiologia", preferred_date=weekday_date, doctor_id="doc-joao-silva"
        )
        assert [s.time for s in slots] == ["08:30", "09:00", "09:30"]

    @pytest.mark.asyncio
    async def test_preferred_time_first(self, availability, weekday_date):
        slots = await availability.get_available_slots(
            "cardiologia", preferred_date=weekday_date, preferred_time="15:00"
        )
        assert (slots[0].date, slots[0].time, slots[0].doctor_id) == (weekday_date, "15:00", "doc-joao-silva")
        assert slots[1].time != "15:00" or slots[1].date != weekday_date

    @pytest.mark.asyncio
    async def test_sunday_is_closed(self, availability, next_weekday):
        sunday = next_weekday(6)
        slots = await availability.get_available_slots("cardiologia", preferred_date=sunday, limit=10)
        assert slots
        assert all(date.fromisoformat(s.date).weekday() != 6 for s in slots)
        assert slots[0].date > sunday

    @pytest.mark.asyncio
    async def test_saturday_closes_at_noon(self, availability, next_weekday):
        saturday = next_weekday(5)
        slots = await availability.get_available_slots("cardiologia", preferred_date=saturday, limit=30)
        saturday_slots = [s for s in slots if s.date == saturday]

        assert saturday_slots[0].time == "07:00"
        assert saturday_slots[-1].time == "11:30"
        assert {s.doctor_id for s in saturday_slots} == {"doc-maria-santos"}

    @pytest.mark.asyncio
    async def test_unknown_specialty(self, availability, weekday_date):
        assert await availability.get_available_slots("neurologia", preferred_date=weekday_date) == []

    @pytest.mark.asyncio
    async def test_invalid_date_starts_today(self, availability):
        slots = await availability.get_available_slots("ortopedia", preferred_date="31/02")
        assert slots
        assert all(s.date >= availability.now().date().isoformat() for s in slots)


class TestSlotChecks:
    """Test single-slot checks."""

    @pytest.mark.asyncio
    async def test_is_available(self, availability, repository, weekday_date):
        assert await availability.is_available("doc-joao-silva", weekday_date, "09:00")
        await _book(repository, "doc-joao-silva", weekday_date, "09:00")
        assert not await availability.is_available("doc-joao-silva", weekday_date, "09:00")
        assert await availability.is_available("doc-maria-santos", weekday_date, "09:00")

    @pytest.mark.asyncio
    async def test_past_or_malformed_is_unavailable(self, availability):
        assert not await availability.is_available("doc-joao-silva", "2020-01-06", "09:00")
        assert not await availability.is_available("doc-joao-silva", "amanhã", "09:00")

    @pytest.mark.asyncio
    async def test_find_free_doctor(self, availability, repository, weekday_date):
        doctor = await availability.find_free_doctor("cardiologia", weekday_date, "09:00")
        assert doctor.id == "doc-joao-silva"

        await _book(repository, "doc-joao-silva", weekday_date, "09:00")
        doctor = await availability.find_free_doctor("cardiologia", weekday_date, "09:00")
        assert doctor.id == "doc-maria-santos"

        await _book(repository, "doc-maria-santos", weekday_date, "09:00")
        assert await availability.find_free_doctor("cardiologia", weekday_date, "09:00") is None

    @pytest.mark.asyncio
    async def test_find_free_doctor_outside_hours(self, availability, weekday_date):
        assert (await availability.find_free_doctor("cardiologia", weekday_date, "16:00")).id == "doc-joao-silva"
        assert await availability.find_free_doctor("cardiologia", weekday_date, "18:00") is None
