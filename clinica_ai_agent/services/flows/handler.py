"""
Conversation flow handler.

Drives the multi-turn scheduling, rescheduling, cancellation, lookup and
emergency flows. The handler never mutates the context it receives: every
change is returned as a FlowTransition (reply to a pending question) or a
FlowResult (the turn's outcome) and applied by the conversation manager.
"""

import hashlib
import json
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...config import SchedulingConfig
from ...core.enums import (
    AppointmentStatus,
    AppointmentType,
    FlowState,
    FlowStep,
    Intent,
    SlotName,
)
from ...core.exceptions import BookingPersistenceError, SlotUnavailableError
from ...core.models import (
    Appointment,
    AppointmentData,
    AppointmentSlot,
    ConversationContext,
    FlowResult,
    FlowTransition,
    SlotUpdate,
    SlotValue,
)
from ...knowledge import KnowledgeBase
from ...utils.logging import get_logger
from ...utils.text import TextProcessor
from ..clinic import AvailabilityService, ClinicRepository, NotificationService, PatientService
from ..context.slots import missing_slots
from . import messages


logger = get_logger("clinica.flows")

DEFAULT_REASON = "Consulta médica"

# Flags that survive a re-run of the scheduling search.
_STICKY_FLOW_KEYS = ("urgent",)


def booking_key(
    conversation: str,
    offer_id: str,
    patient_id: str,
    doctor_id: str,
    scheduled_at: datetime,
) -> str:
    """Idempotency key for one booking attempt; retries of the same turn produce the same key."""
    payload = json.dumps(
        {
            "conversation": conversation,
            "offer": offer_id,
            "patient": patient_id,
            "doctor": doctor_id,
            "scheduled_at": scheduled_at.isoformat(),
        },
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _clear(*names: SlotName) -> List[SlotUpdate]:
    return [SlotUpdate(name=name, value=None, confirmed=False, confidence=0.0) for name in names]


def _confirm(context: ConversationContext, *names: SlotName) -> List[SlotUpdate]:
    updates = []
    for name in names:
        slot = context.slot(name)
        if slot is not None:
            updates.append(SlotUpdate(name=name, value=slot.value))
    return updates


def _with_slots(context: ConversationContext, updates: List[SlotUpdate]) -> ConversationContext:
    """Context copy with ``updates`` applied, for lookups later in the same turn."""
    slots = dict(context.slots_filled)
    for update in updates:
        if update.value is None:
            slots.pop(update.name, None)
        else:
            slots[update.name] = SlotValue(
                value=update.value, confidence=update.confidence, confirmed=update.confirmed
            )
    return context.model_copy(update={"slots_filled": slots})


def _symptoms_text(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        joined = ", ".join(str(v) for v in value if v)
        return joined or None
    return str(value) if value else None


def _offered(flow_data: Dict[str, Any], key: str = "offered_slots") -> List[AppointmentSlot]:
    return [AppointmentSlot.model_validate(raw) for raw in flow_data.get(key, [])]


class ConversationFlowHandler:
    """Runs the booking flows against the clinic repository and availability service."""

    def __init__(
        self,
        repository: ClinicRepository,
        availability: AvailabilityService,
        patients: PatientService,
        notifications: NotificationService,
        knowledge_base: KnowledgeBase,
        config: Optional[SchedulingConfig] = None,
    ):
        self.repository = repository
        self.availability = availability
        self.patients = patients
        self.notifications = notifications
        self.knowledge_base = knowledge_base
        self.config = config or SchedulingConfig()

    # Replies to pending questions

    def advance(self, context: ConversationContext) -> Optional[FlowTransition]:
        """
        Interpret the last user message as an answer to the question the
        current state is waiting on.

        Returns:
            The transition to apply, or None when the reply does not answer it
        """
        reply = context.last_user_message()
        if not reply:
            return None

        state = context.flow_state
        flow_data = context.flow_data

        if state == FlowState.PRESENTING_OPTIONS:
            offered = _offered(flow_data)
            choice = TextProcessor.parse_choice(reply, len(offered))
            if choice is None:
                return None
            slot = offered[choice]
            return FlowTransition(
                flow_state=FlowState.CONFIRMING_DETAILS,
                slot_updates=[
                    SlotUpdate(name=SlotName.DOCTOR, value=slot.doctor_name),
                    SlotUpdate(name=SlotName.DOCTOR_ID, value=slot.doctor_id),
                    SlotUpdate(name=SlotName.PREFERRED_DATE, value=slot.date),
                    SlotUpdate(name=SlotName.PREFERRED_TIME, value=slot.time),
                ],
                flow_data={**flow_data, "selected_slot": slot.model_dump()},
            )

        if state == FlowState.CONFIRMING_DETAILS:
            if TextProcessor.is_affirmative(reply):
                return FlowTransition(
                    flow_state=FlowState.READY_TO_BOOK,
                    slot_updates=_confirm(
                        context,
                        SlotName.PATIENT_NAME,
                        SlotName.PATIENT_PHONE,
                        SlotName.SPECIALTY,
                        SlotName.PREFERRED_DATE,
                        SlotName.PREFERRED_TIME,
                    ),
                    flow_data=flow_data,
                )
            if TextProcessor.is_negative(reply):
                return FlowTransition(
                    flow_state=FlowState.COLLECTING_APPOINTMENT_DETAILS,
                    slot_updates=_clear(
                        SlotName.PREFERRED_DATE,
                        SlotName.PREFERRED_TIME,
                        SlotName.DOCTOR,
                        SlotName.DOCTOR_ID,
                    ),
                    flow_data=self._sticky(flow_data),
                )
            return None

        if state == FlowState.SELECTING_APPOINTMENT:
            options = flow_data.get("appointment_options", [])
            choice = TextProcessor.parse_choice(reply, len(options))
            if choice is None:
                return None
            return FlowTransition(
                flow_state=FlowState.IDENTIFYING_APPOINTMENT,
                slot_updates=[SlotUpdate(name=SlotName.EXISTING_APPOINTMENT_ID, value=options[choice])],
                flow_data={},
            )

        if state == FlowState.PRESENTING_NEW_OPTIONS:
            offered = _offered(flow_data)
            choice = TextProcessor.parse_choice(reply, len(offered))
            if choice is None:
                return None
            return FlowTransition(
                flow_state=FlowState.READY_TO_RESCHEDULE,
                flow_data={**flow_data, "selected_slot": offered[choice].model_dump()},
            )

        if state == FlowState.EXPLAINING_POLICY:
            if TextProcessor.is_affirmative(reply):
                return FlowTransition(flow_state=FlowState.READY_TO_CANCEL, flow_data=flow_data)
            if TextProcessor.is_negative(reply):
                return FlowTransition(
                    flow_state=FlowState.COMPLETED,
                    flow_data={**flow_data, "aborted": True},
                )
            return None

        return None

    # Dispatch

    async def handle(self, context: ConversationContext) -> Optional[FlowResult]:
        """Run the flow for the context's intent; None when the intent has no flow."""
        handlers: Dict[Intent, Callable[[ConversationContext], Awaitable[FlowResult]]] = {
            Intent.SCHEDULE_APPOINTMENT: self.handle_scheduling_flow,
            Intent.RESCHEDULE_APPOINTMENT: self.handle_rescheduling_flow,
            Intent.CANCEL_APPOINTMENT: self.handle_cancellation_flow,
            Intent.CHECK_APPOINTMENT: self.handle_check_flow,
            Intent.EMERGENCY: self.handle_emergency_flow,
        }
        handler = handlers.get(context.current_intent)
        if handler is None:
            return None
        return await handler(context)

    def _failure(self, flow: str, context: ConversationContext, error: Exception, message: str) -> FlowResult:
        logger.error(
            f"flows: {flow} failed: {error}",
            user_id=context.user_id,
            session_id=context.session_id,
            flow_state=context.flow_state.value,
        )
        return FlowResult(
            success=False,
            message=message,
            next_step=FlowStep.RESTART,
            errors=[str(error)],
        )

    @staticmethod
    def _sticky(flow_data: Dict[str, Any]) -> Dict[str, Any]:
        return {key: flow_data[key] for key in _STICKY_FLOW_KEYS if key in flow_data}

    # Scheduling

    async def handle_scheduling_flow(self, context: ConversationContext) -> FlowResult:
        try:
            return await self._scheduling_step(context)
        except BookingPersistenceError as e:
            return self._failure("scheduling", context, e, messages.BOOKING_ERROR)
        except Exception as e:
            return self._failure("scheduling", context, e, messages.SCHEDULING_ERROR)

    async def _scheduling_step(self, context: ConversationContext) -> FlowResult:
        missing = missing_slots(context)
        needs_name = SlotName.PATIENT_NAME in missing
        needs_phone = SlotName.PATIENT_PHONE in missing

        if needs_name and needs_phone:
            return FlowResult(success=False, message=messages.COLLECT_BASIC_INFO, next_step=FlowStep.COLLECT_BASIC_INFO)
        if needs_name:
            return FlowResult(success=False, message=messages.COLLECT_NAME, next_step=FlowStep.COLLECT_NAME)
        if needs_phone:
            return FlowResult(success=False, message=messages.COLLECT_PHONE, next_step=FlowStep.COLLECT_PHONE)
        if SlotName.SPECIALTY in missing:
            return await self._collect_specialty(context)
        if SlotName.PREFERRED_DATE in missing:
            return FlowResult(
                success=False,
                message=messages.COLLECT_TIME_PREFERENCES,
                next_step=FlowStep.COLLECT_TIME_PREFERENCES,
            )

        state = context.flow_state
        if state in (FlowState.COLLECTING_APPOINTMENT_DETAILS, FlowState.PRESENTING_OPTIONS):
            return await self._present_options(context)
        if state == FlowState.CONFIRMING_DETAILS:
            return await self._confirm_details(context)
        if state == FlowState.READY_TO_BOOK:
            return await self._book(context)

        return FlowResult(
            success=False,
            message=messages.UNRECOGNIZED_SCHEDULING_STATE,
            next_step=FlowStep.RESTART,
        )

    async def _collect_specialty(self, context: ConversationContext, prefix: str = "") -> FlowResult:
        names = [s.name for s in await self.repository.list_specialties()]
        return FlowResult(
            success=False,
            message=prefix + messages.collect_specialty(names),
            next_step=FlowStep.COLLECT_SPECIALTY,
            data={"availableSpecialties": names},
        )

    async def _present_options(self, context: ConversationContext, prefix: str = "") -> FlowResult:
        specialty_name = context.slot_value(SlotName.SPECIALTY)
        specialty = await self.repository.find_specialty(specialty_name)
        if specialty is None:
            result = await self._collect_specialty(
                context, prefix=f"Ainda não atendemos {specialty_name} por aqui. "
            )
            result.slot_updates = _clear(SlotName.SPECIALTY)
            return result

        slots = await self.availability.get_available_slots(
            specialty.id,
            preferred_date=context.slot_value(SlotName.PREFERRED_DATE),
            time_preference=context.slot_value(SlotName.TIME_PREFERENCE),
            preferred_time=context.slot_value(SlotName.PREFERRED_TIME),
        )
        sticky = self._sticky(context.flow_data)
        if not slots:
            return FlowResult(
                success=False,
                message=messages.NO_AVAILABILITY,
                next_step=FlowStep.NO_AVAILABILITY,
                data={"noAvailability": True},
                flow_data=sticky,
            )

        offered = [slot.model_dump() for slot in slots]
        return FlowResult(
            success=False,
            message=messages.slot_options(slots, prefix),
            next_step=FlowStep.PRESENT_OPTIONS,
            data={"availableSlots": offered},
            flow_data={**sticky, "offered_slots": offered, "offer_id": uuid.uuid4().hex},
        )

    def appointment_data(self, context: ConversationContext) -> AppointmentData:
        return AppointmentData(
            patient_name=context.slot_value(SlotName.PATIENT_NAME, ""),
            patient_phone=context.slot_value(SlotName.PATIENT_PHONE, ""),
            patient_cpf=context.slot_value(SlotName.PATIENT_CPF),
            patient_email=context.slot_value(SlotName.PATIENT_EMAIL),
            specialty=context.slot_value(SlotName.SPECIALTY, ""),
            preferred_date=context.slot_value(SlotName.PREFERRED_DATE),
            preferred_time=context.slot_value(SlotName.PREFERRED_TIME),
            symptoms=_symptoms_text(context.slot_value(SlotName.SYMPTOMS)),
            insurance_plan=context.slot_value(SlotName.INSURANCE_PLAN),
            doctor_id=context.slot_value(SlotName.DOCTOR_ID),
        )

    async def _confirm_details(self, context: ConversationContext) -> FlowResult:
        data = self.appointment_data(context)
        if not data.preferred_date or not data.preferred_time:
            return await self._present_options(context)
        return FlowResult(
            success=False,
            message=messages.confirm_details(data, context.slot_value(SlotName.DOCTOR, "")),
            next_step=FlowStep.CONFIRM_DETAILS,
            requires_confirmation=True,
            data={"appointmentData": data.model_dump()},
        )

    async def _book(self, context: ConversationContext) -> FlowResult:
        data = self.appointment_data(context)
        if not data.preferred_date or not data.preferred_time:
            return await self._present_options(context)

        specialty = await self.repository.find_specialty(data.specialty)
        if specialty is None:
            return await self._present_options(context)

        doctor_id = await self._bookable_doctor(specialty.id, data)
        if doctor_id is None:
            return await self._slot_taken(context)

        scheduled_at = datetime.fromisoformat(f"{data.preferred_date}T{data.preferred_time}")
        patient = await self.patients.find_or_create(
            full_name=data.patient_name,
            phone=data.patient_phone,
            cpf=data.patient_cpf,
            email=data.patient_email,
        )
        urgent = bool(context.flow_data.get("urgent"))
        key = booking_key(
            context.conversation_id or context.session_id,
            context.flow_data.get("offer_id", ""),
            patient.id,
            doctor_id,
            scheduled_at,
        )

        try:
            appointment = await self.repository.create_appointment(
                patient_id=patient.id,
                doctor_id=doctor_id,
                specialty_id=specialty.id,
                scheduled_at=scheduled_at,
                duration=self.config.appointment_duration_minutes,
                reason=data.symptoms or DEFAULT_REASON,
                appointment_type=AppointmentType.EMERGENCY if urgent else AppointmentType.CONSULTATION,
                conversation_id=context.conversation_id,
                idempotency_key=key,
            )
        except SlotUnavailableError as e:
            logger.info(f"flows: slot lost while booking: {e}", user_id=context.user_id)
            return await self._slot_taken(context)

        logger.info(
            f"flows: appointment {appointment.id} booked",
            user_id=context.user_id,
            doctor_id=doctor_id,
            scheduled_at=appointment.scheduled_at.isoformat(),
        )
        await self.notifications.notify("appointment.created", self._notification_payload(appointment))

        return FlowResult(
            success=True,
            message=messages.booking_success(appointment),
            next_step=FlowStep.COMPLETED,
            data={"appointmentId": appointment.id, "appointment": appointment.model_dump(mode="json")},
            flow_data={"appointment_id": appointment.id},
        )

    async def _bookable_doctor(self, specialty_id: str, data: AppointmentData) -> Optional[str]:
        if data.doctor_id:
            doctor = await self.repository.get_doctor(data.doctor_id)
            if (
                doctor is not None
                and doctor.specialty_id == specialty_id
                and await self.availability.is_available(doctor.id, data.preferred_date, data.preferred_time)
            ):
                return doctor.id

        doctor = await self.availability.find_free_doctor(specialty_id, data.preferred_date, data.preferred_time)
        return doctor.id if doctor else None

    async def _slot_taken(self, context: ConversationContext) -> FlowResult:
        # Keep the date so the new search starts from the day the patient wanted.
        cleared = _clear(SlotName.PREFERRED_TIME, SlotName.DOCTOR, SlotName.DOCTOR_ID)
        result = await self._present_options(_with_slots(context, cleared), prefix=messages.SLOT_TAKEN)
        result.slot_updates = cleared + result.slot_updates
        return result

    # Appointment lookup shared by rescheduling, cancellation and check

    async def _find_appointments(self, context: ConversationContext) -> List[Appointment]:
        now = self.availability.now()
        appointment_id = context.slot_value(SlotName.EXISTING_APPOINTMENT_ID)
        if appointment_id:
            appointment = await self.repository.get_appointment(str(appointment_id))
            if (
                appointment is not None
                and appointment.status.value in AppointmentStatus.active()
                and appointment.scheduled_at > now
            ):
                return [appointment]

        appointments = await self.repository.find_upcoming_appointments(
            patient_name=context.slot_value(SlotName.PATIENT_NAME),
            patient_phone=context.slot_value(SlotName.PATIENT_PHONE),
            now=now,
        )

        on_date = context.slot_value(SlotName.EXISTING_APPOINTMENT_DATE)
        if on_date:
            same_day = [a for a in appointments if a.scheduled_at.date().isoformat() == on_date]
            if same_day:
                return same_day
        return appointments

    async def _identify(
        self,
        context: ConversationContext,
        identify_message: str,
        action: str,
        on_found: Callable[[ConversationContext, Appointment], Awaitable[FlowResult]],
    ) -> FlowResult:
        if not any(
            context.has_slot(name)
            for name in (SlotName.EXISTING_APPOINTMENT_ID, SlotName.PATIENT_NAME, SlotName.PATIENT_PHONE)
        ):
            return FlowResult(success=False, message=identify_message, next_step=FlowStep.IDENTIFY_APPOINTMENT)

        appointments = await self._find_appointments(context)
        if not appointments:
            return FlowResult(
                success=False,
                message=messages.VERIFY_PATIENT_DATA,
                next_step=FlowStep.VERIFY_PATIENT_DATA,
                slot_updates=_clear(SlotName.EXISTING_APPOINTMENT_ID),
            )
        if len(appointments) == 1:
            return await on_found(context, appointments[0])

        return FlowResult(
            success=False,
            message=messages.select_appointment(appointments, action),
            next_step=FlowStep.SELECT_APPOINTMENT,
            data={"appointments": [a.model_dump(mode="json") for a in appointments]},
            flow_data={"appointment_options": [a.id for a in appointments]},
        )

    @staticmethod
    def _identified(appointment: Appointment) -> List[SlotUpdate]:
        return [
            SlotUpdate(name=SlotName.EXISTING_APPOINTMENT_ID, value=appointment.id),
            SlotUpdate(
                name=SlotName.EXISTING_APPOINTMENT_DATE,
                value=appointment.scheduled_at.date().isoformat(),
            ),
        ]

    # Rescheduling

    async def handle_rescheduling_flow(self, context: ConversationContext) -> FlowResult:
        try:
            return await self._rescheduling_step(context)
        except Exception as e:
            return self._failure("rescheduling", context, e, messages.RESCHEDULING_ERROR)

    async def _rescheduling_step(self, context: ConversationContext) -> FlowResult:
        state = context.flow_state
        if state in (FlowState.IDENTIFYING_APPOINTMENT, FlowState.SELECTING_APPOINTMENT):
            return await self._identify(
                context, messages.IDENTIFY_FOR_RESCHEDULE, "reagendar", self._reschedule_found
            )
        if state in (FlowState.COLLECTING_NEW_PREFERENCES, FlowState.PRESENTING_NEW_OPTIONS):
            return await self._present_new_options(context)
        if state == FlowState.READY_TO_RESCHEDULE:
            return await self._reschedule(context)

        return FlowResult(
            success=False,
            message=messages.UNRECOGNIZED_RESCHEDULING_STATE,
            next_step=FlowStep.RESTART,
        )

    async def _reschedule_found(self, context: ConversationContext, appointment: Appointment) -> FlowResult:
        identified = self._identified(appointment)
        flow_data = {
            "appointment_id": appointment.id,
            "doctor_id": appointment.doctor_id,
            "specialty_id": appointment.specialty_id,
        }

        # A date given together with the request is a new preference, unless it is
        # the date of the appointment being moved.
        new_date = context.slot(SlotName.PREFERRED_DATE)
        current_date = appointment.scheduled_at.date().isoformat()
        if new_date is not None and not new_date.confirmed and new_date.value != current_date:
            lookup = _with_slots(context.model_copy(update={"flow_data": flow_data}), identified)
            result = await self._present_new_options(lookup, prefix=f"Encontrei sua consulta de {appointment.date_display}. ")
            result.slot_updates = identified + result.slot_updates
            return result

        return FlowResult(
            success=False,
            message=messages.appointment_found_for_reschedule(appointment),
            next_step=FlowStep.COLLECT_NEW_TIME,
            data={"appointment": appointment.model_dump(mode="json")},
            slot_updates=identified + _clear(
                SlotName.PREFERRED_DATE, SlotName.PREFERRED_TIME, SlotName.TIME_PREFERENCE
            ),
            flow_data=flow_data,
        )

    async def _present_new_options(self, context: ConversationContext, prefix: str = "") -> FlowResult:
        flow_data = context.flow_data
        if not flow_data.get("appointment_id"):
            return FlowResult(
                success=False,
                message=messages.UNRECOGNIZED_RESCHEDULING_STATE,
                next_step=FlowStep.RESTART,
            )
        base = {key: flow_data[key] for key in ("appointment_id", "doctor_id", "specialty_id")}

        preferred_date = context.slot_value(SlotName.PREFERRED_DATE)
        time_preference = context.slot_value(SlotName.TIME_PREFERENCE)
        preferred_time = context.slot_value(SlotName.PREFERRED_TIME)
        if not (preferred_date or time_preference or preferred_time):
            return FlowResult(
                success=False,
                message=messages.COLLECT_NEW_TIME,
                next_step=FlowStep.COLLECT_NEW_TIME,
                flow_data=base,
            )

        slots = await self.availability.get_available_slots(
            base["specialty_id"],
            preferred_date=preferred_date,
            time_preference=time_preference,
            preferred_time=preferred_time,
            doctor_id=base["doctor_id"],
        )
        if not slots:
            return FlowResult(
                success=False,
                message=prefix + messages.NO_NEW_AVAILABILITY,
                next_step=FlowStep.COLLECT_NEW_TIME,
                data={"noAvailability": True},
                flow_data=base,
            )

        offered = [slot.model_dump() for slot in slots]
        return FlowResult(
            success=False,
            message=messages.slot_options(slots, prefix),
            next_step=FlowStep.PRESENT_NEW_OPTIONS,
            data={"availableSlots": offered},
            flow_data={**base, "offered_slots": offered},
        )

    async def _reschedule(self, context: ConversationContext) -> FlowResult:
        flow_data = context.flow_data
        selected = flow_data.get("selected_slot")
        if not selected:
            return await self._present_new_options(context)

        slot = AppointmentSlot.model_validate(selected)
        if not await self.availability.is_available(slot.doctor_id, slot.date, slot.time):
            return await self._new_slot_taken(context)

        try:
            appointment = await self.repository.reschedule_appointment(
                flow_data["appointment_id"],
                slot.doctor_id,
                datetime.fromisoformat(slot.starts_at),
                duration=self.config.appointment_duration_minutes,
            )
        except SlotUnavailableError as e:
            logger.info(f"flows: slot lost while rescheduling: {e}", user_id=context.user_id)
            return await self._new_slot_taken(context)

        logger.info(f"flows: appointment {appointment.id} rescheduled to {slot.starts_at}", user_id=context.user_id)
        await self.notifications.notify("appointment.rescheduled", self._notification_payload(appointment))

        return FlowResult(
            success=True,
            message=messages.rescheduled(appointment),
            next_step=FlowStep.RESCHEDULED,
            data={"appointmentId": appointment.id, "appointment": appointment.model_dump(mode="json")},
            slot_updates=[
                SlotUpdate(name=SlotName.PREFERRED_DATE, value=slot.date),
                SlotUpdate(name=SlotName.PREFERRED_TIME, value=slot.time),
                SlotUpdate(name=SlotName.EXISTING_APPOINTMENT_DATE, value=slot.date),
            ],
            flow_data={"appointment_id": appointment.id},
        )

    async def _new_slot_taken(self, context: ConversationContext) -> FlowResult:
        cleared = _clear(SlotName.PREFERRED_TIME)
        lookup = _with_slots(context, cleared)
        result = await self._present_new_options(lookup, prefix=messages.SLOT_TAKEN)
        result.slot_updates = cleared + result.slot_updates
        return result

    # Cancellation

    async def handle_cancellation_flow(self, context: ConversationContext) -> FlowResult:
        try:
            return await self._cancellation_step(context)
        except Exception as e:
            return self._failure("cancellation", context, e, messages.CANCELLATION_ERROR)

    async def _cancellation_step(self, context: ConversationContext) -> FlowResult:
        state = context.flow_state
        if state in (FlowState.IDENTIFYING_APPOINTMENT, FlowState.SELECTING_APPOINTMENT):
            return await self._identify(context, messages.IDENTIFY_FOR_CANCEL, "cancelar", self._cancel_found)
        if state == FlowState.EXPLAINING_POLICY:
            appointment = await self.repository.get_appointment(context.flow_data.get("appointment_id", ""))
            if appointment is None:
                return await self._identify(context, messages.IDENTIFY_FOR_CANCEL, "cancelar", self._cancel_found)
            return await self._cancel_found(context, appointment)
        if state == FlowState.READY_TO_CANCEL:
            return await self._cancel(context)
        if state == FlowState.COMPLETED and context.flow_data.get("aborted"):
            return FlowResult(
                success=True,
                message=messages.CANCELLATION_ABORTED,
                next_step=FlowStep.CANCELLATION_ABORTED,
                flow_data=context.flow_data,
            )

        return FlowResult(
            success=False,
            message=messages.UNRECOGNIZED_CANCELLATION_STATE,
            next_step=FlowStep.RESTART,
        )

    def _cancellation_policy(self) -> str:
        policy = self.knowledge_base.get_policy("cancelamento")
        return policy.policy if policy else messages.DEFAULT_CANCELLATION_POLICY

    async def _cancel_found(self, context: ConversationContext, appointment: Appointment) -> FlowResult:
        return FlowResult(
            success=False,
            message=messages.confirm_cancellation(appointment, self._cancellation_policy()),
            next_step=FlowStep.CONFIRM_CANCELLATION,
            requires_confirmation=True,
            data={"appointment": appointment.model_dump(mode="json")},
            slot_updates=self._identified(appointment),
            flow_data={"appointment_id": appointment.id},
        )

    async def _cancel(self, context: ConversationContext) -> FlowResult:
        appointment_id = context.flow_data.get("appointment_id") or context.slot_value(
            SlotName.EXISTING_APPOINTMENT_ID
        )
        if not appointment_id:
            return await self._identify(context, messages.IDENTIFY_FOR_CANCEL, "cancelar", self._cancel_found)

        appointment = await self.repository.update_appointment_status(
            str(appointment_id), AppointmentStatus.CANCELLED
        )
        logger.info(f"flows: appointment {appointment.id} cancelled", user_id=context.user_id)
        await self.notifications.notify("appointment.cancelled", self._notification_payload(appointment))

        return FlowResult(
            success=True,
            message=messages.cancelled(appointment),
            next_step=FlowStep.CANCELLED,
            data={"appointmentId": appointment.id, "status": appointment.status.value},
            flow_data={"appointment_id": appointment.id, "cancelled": True},
        )

    # Appointment check

    async def handle_check_flow(self, context: ConversationContext) -> FlowResult:
        try:
            if context.flow_state != FlowState.IDENTIFYING_APPOINTMENT:
                return FlowResult(success=False, message=messages.IDENTIFY_FOR_CHECK, next_step=FlowStep.RESTART)

            if not (context.has_slot(SlotName.PATIENT_NAME) or context.has_slot(SlotName.PATIENT_PHONE)):
                return FlowResult(
                    success=False,
                    message=messages.IDENTIFY_FOR_CHECK,
                    next_step=FlowStep.IDENTIFY_APPOINTMENT,
                )

            appointments = await self._find_appointments(context)
            if not appointments:
                return FlowResult(
                    success=False,
                    message=messages.VERIFY_PATIENT_DATA,
                    next_step=FlowStep.VERIFY_PATIENT_DATA,
                )
            return FlowResult(
                success=True,
                message=messages.upcoming_appointments(appointments),
                next_step=FlowStep.APPOINTMENTS_LISTED,
                data={"appointments": [a.model_dump(mode="json") for a in appointments]},
            )
        except Exception as e:
            return self._failure("check", context, e, messages.CHECK_ERROR)

    # Emergency

    async def handle_emergency_flow(self, context: ConversationContext) -> FlowResult:
        try:
            symptoms: List[str] = []
            value = context.slot_value(SlotName.SYMPTOMS)
            if isinstance(value, (list, tuple)):
                symptoms.extend(str(v) for v in value if v)
            elif value:
                symptoms.append(str(value))
            last_message = context.last_user_message()
            if last_message:
                symptoms.append(last_message)

            protocol = self.knowledge_base.check_emergency(symptoms)
            if protocol is not None:
                logger.warning(
                    f"flows: emergency protocol {protocol.id} triggered",
                    user_id=context.user_id,
                    urgency=protocol.urgency_level.value,
                )
                return FlowResult(
                    success=True,
                    message=messages.emergency(protocol),
                    next_step=FlowStep.EMERGENCY_HANDLED,
                    data={
                        "emergency": True,
                        "urgencyLevel": protocol.urgency_level.value,
                        "protocol": protocol.id,
                    },
                    slot_updates=[SlotUpdate(name=SlotName.URGENCY_LEVEL, value=protocol.urgency_level.value)],
                )

            return FlowResult(
                success=True,
                message=messages.SCHEDULE_URGENT,
                next_step=FlowStep.SCHEDULE_URGENT,
                data={"urgent": True},
                flow_data={"urgent": True},
            )
        except Exception as e:
            logger.error(
                f"flows: emergency failed: {e}",
                user_id=context.user_id,
                session_id=context.session_id,
            )
            return FlowResult(
                success=False,
                message=messages.EMERGENCY_FALLBACK,
                next_step=FlowStep.EMERGENCY_FALLBACK,
                errors=[str(e)],
            )

    @staticmethod
    def _notification_payload(appointment: Appointment) -> Dict[str, Any]:
        return {
            "appointment_id": appointment.id,
            "patient_name": appointment.patient_name,
            "doctor_name": appointment.doctor_name,
            "specialty": appointment.specialty_name,
            "scheduled_at": appointment.scheduled_at.isoformat(),
            "status": appointment.status.value,
            "type": appointment.type.value,
        }
