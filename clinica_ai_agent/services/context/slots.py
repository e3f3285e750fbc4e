"""
Slot tables: entity-path to slot mapping and per-intent required slots.
"""

from typing import Any, Dict, List, Optional, Tuple

from ...core.enums import Intent, SlotName
from ...core.models import ConversationContext, ExtractedEntities, is_filled_value


# Entity paths in priority order; the first filled path wins.
ENTITY_SLOT_MAP: Dict[SlotName, Tuple[str, ...]] = {
    SlotName.PATIENT_NAME: ("pessoa.nomeCompleto", "pessoa.nome"),
    SlotName.PATIENT_CPF: ("documento.cpf",),
    SlotName.PATIENT_PHONE: ("contato.telefone",),
    SlotName.PATIENT_EMAIL: ("contato.email",),
    SlotName.SPECIALTY: ("especialidade",),
    SlotName.DOCTOR: ("preferencias.medico",),
    SlotName.PREFERRED_DATE: ("temporal.data",),
    SlotName.PREFERRED_TIME: ("temporal.horario",),
    SlotName.TIME_PREFERENCE: ("temporal.periodo", "preferencias.periodo"),
    SlotName.SYMPTOMS: ("sintoma",),
    SlotName.URGENCY_LEVEL: ("urgencia.nivel",),
    SlotName.EXISTING_APPOINTMENT_ID: ("agendamentoExistente.id",),
    SlotName.EXISTING_APPOINTMENT_DATE: ("agendamentoExistente.data",),
    SlotName.INSURANCE_PLAN: ("convenio",),
}

# Slots whose value is the first element of a list entity.
_FIRST_ITEM_SLOTS = {SlotName.SPECIALTY}

# Each tuple is a requirement; any one filled alternative satisfies it.
REQUIRED_SLOTS: Dict[Intent, List[Tuple[SlotName, ...]]] = {
    Intent.SCHEDULE_APPOINTMENT: [
        (SlotName.PATIENT_NAME,),
        (SlotName.PATIENT_PHONE,),
        (SlotName.SPECIALTY,),
        (SlotName.PREFERRED_DATE, SlotName.TIME_PREFERENCE),
    ],
    Intent.RESCHEDULE_APPOINTMENT: [
        (SlotName.EXISTING_APPOINTMENT_ID, SlotName.PATIENT_NAME),
        (SlotName.PREFERRED_DATE,),
    ],
    Intent.CANCEL_APPOINTMENT: [
        (SlotName.EXISTING_APPOINTMENT_ID, SlotName.PATIENT_NAME),
    ],
    Intent.CHECK_APPOINTMENT: [
        (SlotName.PATIENT_NAME, SlotName.PATIENT_PHONE),
    ],
    Intent.EMERGENCY: [
        (SlotName.SYMPTOMS,),
    ],
}

# Cleared when a finished flow is restarted; patient identity survives.
TRANSIENT_SLOTS = (
    SlotName.SPECIALTY,
    SlotName.DOCTOR,
    SlotName.DOCTOR_ID,
    SlotName.PREFERRED_DATE,
    SlotName.PREFERRED_TIME,
    SlotName.TIME_PREFERENCE,
    SlotName.EXISTING_APPOINTMENT_ID,
    SlotName.EXISTING_APPOINTMENT_DATE,
    SlotName.SYMPTOMS,
    SlotName.URGENCY_LEVEL,
)

# Portuguese hints for missing slots, used in response ``next_steps``.
NEXT_STEP_HINTS: Dict[SlotName, str] = {
    SlotName.PATIENT_NAME: "Informe seu nome completo",
    SlotName.PATIENT_PHONE: "Informe seu telefone",
    SlotName.SPECIALTY: "Escolha a especialidade médica",
    SlotName.PREFERRED_DATE: "Informe sua preferência de data",
    SlotName.PREFERRED_TIME: "Informe sua preferência de horário",
    SlotName.EXISTING_APPOINTMENT_ID: "Informe qual consulta deseja alterar",
    SlotName.SYMPTOMS: "Descreva seus sintomas",
}


def map_entities_to_slots(entities: ExtractedEntities) -> Dict[SlotName, Any]:
    """Resolve canonical slot values from extracted entities, skipping empty ones."""
    flat = entities.flatten()
    values: Dict[SlotName, Any] = {}

    for slot_name, paths in ENTITY_SLOT_MAP.items():
        value: Optional[Any] = None
        for path in paths:
            candidate = flat.get(path)
            if slot_name in _FIRST_ITEM_SLOTS and isinstance(candidate, list):
                candidate = candidate[0] if candidate else None
            if is_filled_value(candidate):
                value = candidate
                break
        if value is not None:
            values[slot_name] = value

    return values


def missing_slots(context: ConversationContext) -> List[SlotName]:
    """Required slots still unfilled for the context's intent; alternatives report their first name."""
    missing = []
    for alternatives in REQUIRED_SLOTS.get(context.current_intent, []):
        if not any(context.has_slot(name) for name in alternatives):
            missing.append(alternatives[0])
    return missing
