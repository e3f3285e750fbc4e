"""
Keyword tables for intent detection and sentiment.

All keywords are written accent-free and lowercase; they are matched against
``TextProcessor.normalize`` output.
"""

from typing import List, Tuple

from ...core.enums import Intent
from ...utils.text import TextProcessor


EMERGENCY_KEYWORDS = [
    "emergencia", "socorro", "dor no peito", "urgente", "falta de ar",
    "nao aguento", "nao aguenta", "desmaio", "desmaiei", "dor forte",
    "nao consigo respirar", "sangramento", "convulsao",
]

# Checked in order after the emergency keywords; first match wins.
INTENT_KEYWORDS: List[Tuple[Intent, List[str]]] = [
    (Intent.RESCHEDULE_APPOINTMENT, [
        "reagendar", "remarcar", "mudar horario", "mudar o horario", "trocar horario",
        "mudar a data", "outro horario",
    ]),
    (Intent.CANCEL_APPOINTMENT, ["cancelar", "desmarcar", "cancelamento"]),
    (Intent.CHECK_APPOINTMENT, [
        "minha consulta", "minhas consultas", "verificar", "consultar",
        "meu agendamento", "quando e minha",
    ]),
    (Intent.SCHEDULE_APPOINTMENT, ["agendar", "marcar", "consulta", "agendamento"]),
    (Intent.GENERAL_INFORMATION, [
        "horario de funcionamento", "funciona", "convenio", "endereco", "onde fica",
        "aceita", "preco", "valor", "quanto custa", "especialidades", "plano de saude",
    ]),
]

POSITIVE_WORDS = ["obrigado", "obrigada", "otimo", "perfeito", "excelente", "bom", "maravilha"]
NEGATIVE_WORDS = ["ruim", "terrivel", "horrivel", "pessimo", "problema", "demora", "absurdo"]

# Greetings that contain period words and must not be read as time preferences.
GREETINGS = ["bom dia", "boa tarde", "boa noite"]


def has_emergency_keyword(text: str) -> bool:
    return TextProcessor.contains_any(text, EMERGENCY_KEYWORDS)


def quick_intent_detection(text: str) -> Intent:
    """Keyword intent classification used when the LLM output is unusable."""
    normalized = TextProcessor.normalize(text)
    if not normalized:
        return Intent.UNKNOWN
    if has_emergency_keyword(normalized):
        return Intent.EMERGENCY

    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return intent
    return Intent.UNKNOWN
