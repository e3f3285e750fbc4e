"""
Flow state tables.

Each intent owns a set of legal states and an entry state. Handler step
markers map to the state persisted after the turn; a step may also hand the
conversation to another intent (emergency -> urgent scheduling).
"""

from typing import Dict, FrozenSet, Optional, Tuple

from ...core.enums import FlowState, FlowStep, Intent


_ENTRY_STATES: Dict[Intent, FlowState] = {
    Intent.SCHEDULE_APPOINTMENT: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    Intent.RESCHEDULE_APPOINTMENT: FlowState.IDENTIFYING_APPOINTMENT,
    Intent.CANCEL_APPOINTMENT: FlowState.IDENTIFYING_APPOINTMENT,
    Intent.CHECK_APPOINTMENT: FlowState.IDENTIFYING_APPOINTMENT,
    Intent.EMERGENCY: FlowState.ASSESSING_EMERGENCY,
    Intent.GENERAL_INFORMATION: FlowState.PROVIDING_INFORMATION,
    Intent.UNKNOWN: FlowState.UNDERSTANDING_INTENT,
}

LEGAL_STATES: Dict[Intent, FrozenSet[FlowState]] = {
    Intent.SCHEDULE_APPOINTMENT: frozenset({
        FlowState.COLLECTING_APPOINTMENT_DETAILS,
        FlowState.PRESENTING_OPTIONS,
        FlowState.CONFIRMING_DETAILS,
        FlowState.READY_TO_BOOK,
        FlowState.COMPLETED,
    }),
    Intent.RESCHEDULE_APPOINTMENT: frozenset({
        FlowState.IDENTIFYING_APPOINTMENT,
        FlowState.SELECTING_APPOINTMENT,
        FlowState.COLLECTING_NEW_PREFERENCES,
        FlowState.PRESENTING_NEW_OPTIONS,
        FlowState.READY_TO_RESCHEDULE,
        FlowState.COMPLETED,
    }),
    Intent.CANCEL_APPOINTMENT: frozenset({
        FlowState.IDENTIFYING_APPOINTMENT,
        FlowState.SELECTING_APPOINTMENT,
        FlowState.EXPLAINING_POLICY,
        FlowState.READY_TO_CANCEL,
        FlowState.COMPLETED,
    }),
    Intent.CHECK_APPOINTMENT: frozenset({
        FlowState.IDENTIFYING_APPOINTMENT,
        FlowState.COMPLETED,
    }),
    Intent.EMERGENCY: frozenset({
        FlowState.ASSESSING_EMERGENCY,
        FlowState.EMERGENCY_HANDLED,
    }),
    Intent.GENERAL_INFORMATION: frozenset({FlowState.PROVIDING_INFORMATION}),
    Intent.UNKNOWN: frozenset({FlowState.UNDERSTANDING_INTENT, FlowState.INITIAL}),
}

# States waiting for a bare reply (option number or yes/no).
AWAITING_REPLY_STATES: FrozenSet[FlowState] = frozenset({
    FlowState.PRESENTING_OPTIONS,
    FlowState.CONFIRMING_DETAILS,
    FlowState.SELECTING_APPOINTMENT,
    FlowState.PRESENTING_NEW_OPTIONS,
    FlowState.EXPLAINING_POLICY,
})

TERMINAL_STATES: FrozenSet[FlowState] = frozenset({
    FlowState.COMPLETED,
    FlowState.EMERGENCY_HANDLED,
})

FLOW_INTENTS: FrozenSet[Intent] = frozenset({
    Intent.SCHEDULE_APPOINTMENT,
    Intent.RESCHEDULE_APPOINTMENT,
    Intent.CANCEL_APPOINTMENT,
    Intent.CHECK_APPOINTMENT,
    Intent.EMERGENCY,
})

_STEP_STATES: Dict[FlowStep, FlowState] = {
    FlowStep.COLLECT_BASIC_INFO: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.COLLECT_NAME: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.COLLECT_PHONE: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.COLLECT_SPECIALTY: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.COLLECT_TIME_PREFERENCES: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.NO_AVAILABILITY: FlowState.COLLECTING_APPOINTMENT_DETAILS,
    FlowStep.PRESENT_OPTIONS: FlowState.PRESENTING_OPTIONS,
    FlowStep.CONFIRM_DETAILS: FlowState.CONFIRMING_DETAILS,
    FlowStep.COMPLETED: FlowState.COMPLETED,
    FlowStep.IDENTIFY_APPOINTMENT: FlowState.IDENTIFYING_APPOINTMENT,
    FlowStep.VERIFY_PATIENT_DATA: FlowState.IDENTIFYING_APPOINTMENT,
    FlowStep.SELECT_APPOINTMENT: FlowState.SELECTING_APPOINTMENT,
    FlowStep.COLLECT_NEW_TIME: FlowState.COLLECTING_NEW_PREFERENCES,
    FlowStep.PRESENT_NEW_OPTIONS: FlowState.PRESENTING_NEW_OPTIONS,
    FlowStep.RESCHEDULED: FlowState.COMPLETED,
    FlowStep.CONFIRM_CANCELLATION: FlowState.EXPLAINING_POLICY,
    FlowStep.CANCELLED: FlowState.COMPLETED,
    FlowStep.CANCELLATION_ABORTED: FlowState.COMPLETED,
    FlowStep.EMERGENCY_HANDLED: FlowState.EMERGENCY_HANDLED,
    FlowStep.EMERGENCY_FALLBACK: FlowState.ASSESSING_EMERGENCY,
    FlowStep.APPOINTMENTS_LISTED: FlowState.COMPLETED,
}

_STEP_INTENTS: Dict[FlowStep, Intent] = {
    FlowStep.SCHEDULE_URGENT: Intent.SCHEDULE_APPOINTMENT,
}

# Steps whose message is shown verbatim instead of being paraphrased by the LLM.
VERBATIM_STEPS: FrozenSet[FlowStep] = frozenset({
    FlowStep.PRESENT_OPTIONS,
    FlowStep.CONFIRM_DETAILS,
    FlowStep.COMPLETED,
    FlowStep.SELECT_APPOINTMENT,
    FlowStep.PRESENT_NEW_OPTIONS,
    FlowStep.RESCHEDULED,
    FlowStep.CONFIRM_CANCELLATION,
    FlowStep.CANCELLED,
    FlowStep.CANCELLATION_ABORTED,
    FlowStep.EMERGENCY_HANDLED,
    FlowStep.EMERGENCY_FALLBACK,
    FlowStep.SCHEDULE_URGENT,
    FlowStep.APPOINTMENTS_LISTED,
})


def entry_state(intent: Intent) -> FlowState:
    return _ENTRY_STATES.get(intent, FlowState.UNDERSTANDING_INTENT)


def is_legal_state(intent: Intent, state: FlowState) -> bool:
    return state in LEGAL_STATES.get(intent, frozenset())


def resolve_step(
    intent: Intent, step: Optional[FlowStep], current: FlowState
) -> Tuple[Intent, FlowState]:
    """Return the (intent, state) to persist after a handler returned ``step``."""
    if step is None:
        return intent, current

    if step in _STEP_INTENTS:
        target = _STEP_INTENTS[step]
        return target, entry_state(target)

    if step == FlowStep.RESTART:
        return intent, entry_state(intent)

    state = _STEP_STATES.get(step, current)
    if not is_legal_state(intent, state):
        return intent, entry_state(intent)
    return intent, state
