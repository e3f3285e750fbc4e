"""
Regex and keyword entity extraction used when the LLM is unavailable.
"""

import re
from typing import Any, Dict, List, Optional

from ...core.enums import TimePeriod
from ...core.models import ExtractedEntities
from ...knowledge import KnowledgeBase
from ...utils.date import DateParser, TimeParser
from ...utils.phone import PhoneNumberParser
from ...utils.text import TextProcessor
from ...utils.validation import ValidationUtils
from .keywords import GREETINGS, has_emergency_keyword


_NAME_PATTERN = re.compile(
    r"(?i:meu nome (?:completo )?(?:é|e|eh)|me chamo|aqui (?:é|e) (?:o|a))\s+"
    r"([A-ZÀ-Ý][\wÀ-ÿ']*(?:\s+(?:d[aeo]s?\s+)?[A-ZÀ-Ý][\wÀ-ÿ']*){0,5})"
)

_DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\bdepois de amanh[ãa]\b", re.IGNORECASE),
    re.compile(r"\bamanh[ãa]\b", re.IGNORECASE),
    re.compile(r"\bhoje\b", re.IGNORECASE),
    re.compile(
        r"\b(?:pr[óo]xim[ao]\s+)?(?:segunda|ter[çc]a|quarta|quinta|sexta|s[áa]bado|domingo)"
        r"(?:-feira)?(?:\s+que\s+vem)?\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bdia\s+\d{1,2}(?:\s+de\s+[a-zç]+)?\b", re.IGNORECASE),
]

_PERIOD_PATTERN = re.compile(r"\b(manha|tarde|noite)\b")


def _extract_name(text: str) -> Optional[str]:
    match = _NAME_PATTERN.search(text)
    if not match:
        return None
    name = match.group(1).strip()
    valid, _ = ValidationUtils.validate_name(name)
    return name if valid else None


def _extract_date(text: str, date_parser: DateParser) -> Optional[str]:
    for pattern in _DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            phrase = re.sub(r"^dia\s+", "", match.group(0), flags=re.IGNORECASE)
            parsed = date_parser.parse_natural_date(phrase)
            if parsed:
                return parsed
    return None


def _extract_period(text: str) -> Optional[str]:
    normalized = TextProcessor.normalize(text)
    for greeting in GREETINGS:
        normalized = normalized.replace(greeting, " ")
    match = _PERIOD_PATTERN.search(normalized)
    if not match:
        return None
    period = TimePeriod.from_string(match.group(1))
    return period.value if period else None


def extract_symptoms(text: str, knowledge_base: KnowledgeBase) -> List[str]:
    """Known symptom phrases mentioned in ``text``, longest phrases first, without overlaps."""
    normalized = TextProcessor.normalize(text)
    found: List[str] = []
    for phrase in knowledge_base.known_symptoms():
        needle = TextProcessor.normalize(phrase)
        if not needle or needle not in normalized:
            continue
        if any(needle in TextProcessor.normalize(existing) for existing in found):
            continue
        found.append(phrase)
    return found


def extract_entities_fallback(
    text: str,
    knowledge_base: KnowledgeBase,
    date_parser: DateParser,
) -> ExtractedEntities:
    """
    Pull entities out of free text with patterns and knowledge-base tables.

    CPF is matched first and removed from the text so its digits are not
    mistaken for a phone number.
    """
    entities: Dict[str, Any] = {}
    remaining = text or ""

    cpf_match = ValidationUtils.CPF_IN_TEXT.search(remaining)
    if cpf_match:
        cpf = ValidationUtils.normalize_cpf(cpf_match.group(0))
        if cpf:
            entities["documento"] = {"cpf": cpf}
        remaining = remaining.replace(cpf_match.group(0), " ")

    contact: Dict[str, str] = {}
    email_match = ValidationUtils.EMAIL_IN_TEXT.search(remaining)
    if email_match and ValidationUtils.validate_email(email_match.group(0)):
        contact["email"] = email_match.group(0)
        remaining = remaining.replace(email_match.group(0), " ")

    phone = PhoneNumberParser.extract_from_text(remaining)
    if phone:
        contact["telefone"] = phone
    if contact:
        entities["contato"] = contact

    name = _extract_name(remaining)
    if name:
        entities["pessoa"] = {"nomeCompleto": name} if len(name.split()) > 1 else {"nome": name}

    specialty = knowledge_base.find_specialty(remaining)
    if specialty is not None:
        entities["especialidade"] = [specialty.name]

    symptoms = extract_symptoms(remaining, knowledge_base)
    if symptoms:
        entities["sintoma"] = symptoms

    temporal: Dict[str, Any] = {}
    found_date = _extract_date(remaining, date_parser)
    if found_date:
        temporal["data"] = found_date
    found_time = TimeParser.parse_natural_time(remaining)
    if found_time:
        temporal["horario"] = found_time
    period = _extract_period(remaining)
    if period:
        temporal["periodo"] = period
    normalized = TextProcessor.normalize(remaining)
    if "proxima semana" in normalized or "semana que vem" in normalized:
        temporal["proximaSemana"] = True
    if "proximo mes" in normalized or "mes que vem" in normalized:
        temporal["proximoMes"] = True
    if temporal:
        entities["temporal"] = temporal

    if has_emergency_keyword(remaining):
        entities["urgencia"] = {"nivel": "emergencia", "descricao": TextProcessor.truncate(text, 200)}

    return ExtractedEntities.model_validate(entities)
