"""
Relational clinic store backed by SQLite.
"""

import asyncio
import sqlite3
import uuid
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from ...core.enums import AppointmentStatus, AppointmentType
from ...core.exceptions import (
    AppointmentNotFoundError,
    BookingPersistenceError,
    SlotUnavailableError,
)
from ...core.models import Appointment, Doctor, DoctorSchedule, Patient, Specialty
from ...knowledge import KnowledgeBase
from ...utils.logging import get_logger
from .schema import SCHEMA, SEED_DOCTORS, SEED_SCHEDULES


logger = get_logger("clinica.repository")

_APPOINTMENT_SELECT = """
    SELECT a.*, d.name AS doctor_name, s.name AS specialty_name, p.full_name AS patient_name
    FROM appointments a
    JOIN doctors d ON d.id = a.doctor_id
    JOIN specialties s ON s.id = a.specialty_id
    JOIN patients p ON p.id = a.patient_id
"""


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def _new_id() -> str:
    return uuid.uuid4().hex


class ClinicRepository:
    """Specialties, doctors, patients, appointments and messages."""

    def __init__(self, db_path: str, knowledge_base: Optional[KnowledgeBase] = None):
        self.db_path = db_path
        self.knowledge_base = knowledge_base
        self._lock = asyncio.Lock()
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def initialize(self) -> None:
        """Create tables and seed reference data once."""
        if self._initialized:
            return

        specialties = []
        if self.knowledge_base is not None:
            specialties = [
                (s.id, s.name, s.duration) for s in self.knowledge_base.get_all_specialties()
            ]

        def _setup() -> None:
            conn = self._connect()
            try:
                conn.executescript(SCHEMA)
                conn.executemany(
                    "INSERT OR IGNORE INTO specialties (id, name, duration) VALUES (?, ?, ?)",
                    specialties,
                )
                if specialties:
                    conn.executemany(
                        "INSERT OR IGNORE INTO doctors (id, name, specialty_id, crm) "
                        "VALUES (:id, :name, :specialty_id, :crm)",
                        SEED_DOCTORS,
                    )
                    conn.executemany(
                        "INSERT OR IGNORE INTO doctor_schedules (doctor_id, weekday, start_time, end_time) "
                        "VALUES (:doctor_id, :weekday, :start_time, :end_time)",
                        SEED_SCHEDULES,
                    )
                conn.commit()
            finally:
                conn.close()

        async with self._lock:
            if not self._initialized:
                await asyncio.to_thread(_setup)
                self._initialized = True
                logger.info(f"repository: initialized {self.db_path}")

    async def _read(self, fn):
        await self.initialize()
        return await asyncio.to_thread(fn)

    async def _write(self, fn):
        await self.initialize()
        async with self._lock:
            try:
                return await asyncio.to_thread(fn)
            except sqlite3.Error as e:
                raise BookingPersistenceError(str(e)) from e

    # Reference data

    async def list_specialties(self) -> List[Specialty]:
        def _fetch() -> List[Specialty]:
            conn = self._connect()
            try:
                rows = conn.execute("SELECT * FROM specialties ORDER BY name").fetchall()
            finally:
                conn.close()
            return [Specialty(**dict(row)) for row in rows]

        return await self._read(_fetch)

    async def find_specialty(self, name_or_id: str) -> Optional[Specialty]:
        needle = (name_or_id or "").strip().lower()

        def _fetch() -> Optional[Specialty]:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT * FROM specialties WHERE lower(id) = ? OR lower(name) = ?",
                    (needle, needle),
                ).fetchone()
            finally:
                conn.close()
            return Specialty(**dict(row)) if row else None

        specialty = await self._read(_fetch)
        if specialty is None and self.knowledge_base is not None:
            match = self.knowledge_base.find_specialty(name_or_id or "")
            if match is not None and match.id != needle:
                return await self.find_specialty(match.id)
        return specialty

    async def list_doctors(self, specialty_id: Optional[str] = None) -> List[Doctor]:
        def _fetch() -> List[Doctor]:
            conn = self._connect()
            try:
                if specialty_id:
                    rows = conn.execute(
                        "SELECT * FROM doctors WHERE specialty_id = ? ORDER BY name", (specialty_id,)
                    ).fetchall()
                else:
                    rows = conn.execute("SELECT * FROM doctors ORDER BY name").fetchall()
            finally:
                conn.close()
            return [Doctor(**dict(row)) for row in rows]

        return await self._read(_fetch)

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        def _fetch() -> Optional[Doctor]:
            conn = self._connect()
            try:
                row = conn.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
            finally:
                conn.close()
            return Doctor(**dict(row)) if row else None

        return await self._read(_fetch)

    async def get_schedules(self, doctor_ids: Iterable[str]) -> List[DoctorSchedule]:
        ids = list(doctor_ids)
        if not ids:
            return []

        def _fetch() -> List[DoctorSchedule]:
            conn = self._connect()
            try:
                placeholders = ",".join("?" for _ in ids)
                rows = conn.execute(
                    f"SELECT * FROM doctor_schedules WHERE doctor_id IN ({placeholders})", ids
                ).fetchall()
            finally:
                conn.close()
            return [DoctorSchedule(**dict(row)) for row in rows]

        return await self._read(_fetch)

    # Patients

    async def find_patient_by_phone(self, phone: str) -> Optional[Patient]:
        return await self._find_patient("phone", phone)

    async def find_patient_by_cpf(self, cpf: str) -> Optional[Patient]:
        return await self._find_patient("cpf", cpf)

    async def _find_patient(self, column: str, value: str) -> Optional[Patient]:
        if not value:
            return None

        def _fetch() -> Optional[Patient]:
            conn = self._connect()
            try:
                row = conn.execute(
                    f"SELECT id, full_name, phone, cpf, email FROM patients WHERE {column} = ? "
                    "ORDER BY created_at LIMIT 1",
                    (value,),
                ).fetchone()
            finally:
                conn.close()
            return Patient(**dict(row)) if row else None

        return await self._read(_fetch)

    async def create_patient(
        self, full_name: str, phone: str, cpf: Optional[str] = None, email: Optional[str] = None
    ) -> Patient:
        patient = Patient(id=_new_id(), full_name=full_name, phone=phone, cpf=cpf, email=email)

        def _insert() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT INTO patients (id, full_name, phone, cpf, email, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (patient.id, full_name, phone, cpf, email, _iso(datetime.now())),
                )
                conn.commit()
            finally:
                conn.close()

        await self._write(_insert)
        logger.info(f"repository: patient created {patient.id}")
        return patient

    # Appointments

    async def get_booked_times(
        self, doctor_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, Set[str]]:
        """Start times (``YYYY-MM-DDTHH:MM``) of active bookings per doctor in [start, end)."""
        ids = list(doctor_ids)
        booked: Dict[str, Set[str]] = {doctor_id: set() for doctor_id in ids}
        if not ids:
            return booked

        def _fetch():
            conn = self._connect()
            try:
                placeholders = ",".join("?" for _ in ids)
                return conn.execute(
                    f"SELECT doctor_id, scheduled_at FROM appointments "
                    f"WHERE doctor_id IN ({placeholders}) AND status IN (?, ?) "
                    f"AND scheduled_at >= ? AND scheduled_at < ?",
                    [*ids, *AppointmentStatus.active(), _iso(start), _iso(end)],
                ).fetchall()
            finally:
                conn.close()

        for row in await self._read(_fetch):
            booked[row["doctor_id"]].add(row["scheduled_at"][:16])
        return booked

    async def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        specialty_id: str,
        scheduled_at: datetime,
        duration: int = 30,
        reason: str = "Consulta médica",
        appointment_type: AppointmentType = AppointmentType.CONSULTATION,
        conversation_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Appointment:
        """
        Insert a SCHEDULED appointment.

        A repeated call with the same idempotency key returns the appointment
        created the first time. Raises SlotUnavailableError when the doctor
        already holds an active booking at that time.
        """
        appointment_id = _new_id()
        start = _iso(scheduled_at)
        end = _iso(scheduled_at + timedelta(minutes=duration))
        now = _iso(datetime.now())

        def _insert() -> str:
            conn = self._connect()
            try:
                if idempotency_key:
                    row = conn.execute(
                        "SELECT id FROM appointments WHERE idempotency_key = ?", (idempotency_key,)
                    ).fetchone()
                    if row:
                        return row["id"]

                if self._slot_taken(conn, doctor_id, start):
                    raise SlotUnavailableError(f"{doctor_id} already booked at {start}")

                conn.execute(
                    "INSERT INTO appointments (id, patient_id, doctor_id, specialty_id, scheduled_at, "
                    "end_time, duration, reason, status, type, conversation_id, idempotency_key, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        appointment_id, patient_id, doctor_id, specialty_id, start, end, duration,
                        reason, AppointmentStatus.SCHEDULED.value, appointment_type.value,
                        conversation_id, idempotency_key, now, now,
                    ),
                )
                conn.commit()
                return appointment_id
            finally:
                conn.close()

        stored_id = await self._write(_insert)
        if stored_id != appointment_id:
            logger.info(f"repository: idempotent replay for key {idempotency_key}")
        return await self._require_appointment(stored_id)

    @staticmethod
    def _slot_taken(conn: sqlite3.Connection, doctor_id: str, start: str, exclude_id: str = "") -> bool:
        row = conn.execute(
            "SELECT 1 FROM appointments WHERE doctor_id = ? AND scheduled_at = ? "
            "AND status IN (?, ?) AND id != ?",
            (doctor_id, start, *AppointmentStatus.active(), exclude_id),
        ).fetchone()
        return row is not None

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        def _fetch() -> Optional[Appointment]:
            conn = self._connect()
            try:
                row = conn.execute(_APPOINTMENT_SELECT + " WHERE a.id = ?", (appointment_id,)).fetchone()
            finally:
                conn.close()
            return Appointment(**dict(row)) if row else None

        return await self._read(_fetch)

    async def _require_appointment(self, appointment_id: str) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def find_upcoming_appointments(
        self,
        patient_name: Optional[str] = None,
        patient_phone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Appointment]:
        """Future SCHEDULED/CONFIRMED appointments matching the patient's name or phone, soonest first."""
        if not patient_name and not patient_phone:
            return []
        now = now or datetime.now()

        def _fetch() -> List[Appointment]:
            conn = self._connect()
            try:
                rows = conn.execute(
                    _APPOINTMENT_SELECT
                    + " WHERE a.status IN (?, ?) AND a.scheduled_at >= ? "
                    "AND ((? IS NOT NULL AND lower(p.full_name) LIKE ?) OR (? IS NOT NULL AND p.phone = ?)) "
                    "ORDER BY a.scheduled_at ASC",
                    (
                        *AppointmentStatus.active(),
                        _iso(now),
                        patient_name,
                        f"%{(patient_name or '').strip().lower()}%",
                        patient_phone,
                        patient_phone,
                    ),
                ).fetchall()
            finally:
                conn.close()
            return [Appointment(**dict(row)) for row in rows]

        return await self._read(_fetch)

    async def reschedule_appointment(
        self, appointment_id: str, doctor_id: str, scheduled_at: datetime, duration: int = 30
    ) -> Appointment:
        start = _iso(scheduled_at)
        end = _iso(scheduled_at + timedelta(minutes=duration))

        def _update() -> int:
            conn = self._connect()
            try:
                if self._slot_taken(conn, doctor_id, start, exclude_id=appointment_id):
                    raise SlotUnavailableError(f"{doctor_id} already booked at {start}")
                cursor = conn.execute(
                    "UPDATE appointments SET doctor_id = ?, scheduled_at = ?, end_time = ?, "
                    "duration = ?, updated_at = ? WHERE id = ? AND status IN (?, ?)",
                    (doctor_id, start, end, duration, _iso(datetime.now()), appointment_id,
                     *AppointmentStatus.active()),
                )
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()

        if await self._write(_update) == 0:
            raise AppointmentNotFoundError(appointment_id)
        return await self._require_appointment(appointment_id)

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        def _update() -> int:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "UPDATE appointments SET status = ?, updated_at = ? WHERE id = ?",
                    (status.value, _iso(datetime.now()), appointment_id),
                )
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()

        if await self._write(_update) == 0:
            raise AppointmentNotFoundError(appointment_id)
        return await self._require_appointment(appointment_id)

    # Conversation messages

    async def save_message(
        self, conversation_id: str, user_id: str, content: str, role: str
    ) -> str:
        """Persist a chat message; user messages are flagged for downstream processing."""
        message_id = _new_id()
        now = _iso(datetime.now())

        def _insert() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR IGNORE INTO conversations (id, user_id, created_at) VALUES (?, ?, ?)",
                    (conversation_id, user_id, now),
                )
                conn.execute(
                    "INSERT INTO messages (id, conversation_id, content, role, processed, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (message_id, conversation_id, content, role, int(role == "user"), now),
                )
                conn.commit()
            finally:
                conn.close()

        await self._write(_insert)
        return message_id

    async def list_messages(self, conversation_id: str) -> List[dict]:
        def _fetch() -> List[dict]:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT * FROM messages WHERE conversation_id = ? ORDER BY created_at, rowid",
                    (conversation_id,),
                ).fetchall()
            finally:
                conn.close()
            return [dict(row) for row in rows]

        return await self._read(_fetch)
