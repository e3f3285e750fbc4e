"""
NLP pipeline: intent classification and entity extraction for one message.
"""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ...core.enums import Intent, Sentiment, TimePeriod
from ...core.exceptions import LLMError
from ...core.models import ConversationMessage, ExtractedEntities, NLPResult, SentimentResult
from ...knowledge import KnowledgeBase
from ...utils.date import DateParser, TimeParser
from ...utils.logging import get_logger
from ...utils.phone import PhoneNumberParser
from ...utils.text import TextProcessor
from ...utils.validation import ValidationUtils
from ..llm import GeminiClient
from .fallback import extract_entities_fallback, extract_symptoms
from .keywords import NEGATIVE_WORDS, POSITIVE_WORDS, has_emergency_keyword, quick_intent_detection


logger = get_logger("clinica.nlp")

BASE_CONFIDENCE = 0.5
SPECIFIC_INTENT_BONUS = 0.2
ENTITY_GROUP_BONUS = 0.1
MAX_ENTITY_BONUS = 0.3
FALLBACK_PENALTY = 0.2


def calculate_confidence(intent: Intent, entities: ExtractedEntities, used_fallback: bool = False) -> float:
    """0.5 base, +0.2 for a specific intent, +0.1 per entity group (max +0.3)."""
    confidence = BASE_CONFIDENCE
    if intent not in (Intent.UNKNOWN, Intent.GENERAL_INFORMATION):
        confidence += SPECIFIC_INTENT_BONUS
    confidence += min(entities.group_count() * ENTITY_GROUP_BONUS, MAX_ENTITY_BONUS)
    if used_fallback:
        confidence -= FALLBACK_PENALTY
    return round(max(0.0, min(confidence, 1.0)), 2)


class NLPPipeline:
    """Turns a user message into an NLPResult. Never raises."""

    def __init__(
        self,
        llm: Optional[GeminiClient],
        knowledge_base: KnowledgeBase,
        date_parser: Optional[DateParser] = None,
    ):
        self.llm = llm
        self.knowledge_base = knowledge_base
        self.date_parser = date_parser or DateParser()

    async def process_message(
        self,
        text: str,
        user_id: str,
        recent_history: Optional[Sequence[ConversationMessage]] = None,
    ) -> NLPResult:
        try:
            return await self._process(text, user_id, recent_history)
        except Exception as e:
            logger.error(f"nlp: processing failed: {e}", user_id=user_id, message=text[:100])
            return NLPResult(
                intent=Intent.UNKNOWN,
                confidence=0.0,
                original_text=text,
                used_fallback=True,
            )

    async def _process(
        self,
        text: str,
        user_id: str,
        recent_history: Optional[Sequence[ConversationMessage]],
    ) -> NLPResult:
        analysis = await self._analyze(text, user_id, recent_history)

        intent = Intent.UNKNOWN
        entities: Optional[ExtractedEntities] = None
        if analysis is not None:
            intent = Intent.from_label(analysis.get("intent"))
            entities = self._parse_entities(analysis.get("entities") or {})

        if intent == Intent.UNKNOWN:
            intent = quick_intent_detection(text)

        used_fallback = entities is None
        if entities is None:
            entities = extract_entities_fallback(text, self.knowledge_base, self.date_parser)

        if has_emergency_keyword(text):
            intent = Intent.EMERGENCY
        if intent == Intent.EMERGENCY and not entities.sintoma:
            symptoms = extract_symptoms(text, self.knowledge_base)
            if symptoms:
                entities = entities.model_copy(update={"sintoma": symptoms})

        confidence = calculate_confidence(intent, entities, used_fallback)
        logger.info(
            f"nlp: {intent.value} ({confidence})",
            user_id=user_id,
            entity_groups=entities.group_count(),
            fallback=used_fallback,
        )
        return NLPResult(
            intent=intent,
            entities=entities,
            confidence=confidence,
            original_text=text,
            used_fallback=used_fallback,
        )

    async def _analyze(
        self,
        text: str,
        user_id: str,
        recent_history: Optional[Sequence[ConversationMessage]],
    ) -> Optional[Dict[str, Any]]:
        if self.llm is None:
            return None
        try:
            return await self.llm.analyze_intent(text, history=recent_history, user_id=user_id)
        except LLMError as e:
            logger.warning(f"nlp: LLM analysis unavailable, using keywords: {e}", user_id=user_id)
            return None

    def _parse_entities(self, raw: Dict[str, Any]) -> Optional[ExtractedEntities]:
        try:
            entities = ExtractedEntities.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"nlp: discarding malformed entities: {e.error_count()} errors")
            return None
        return self.normalize_entities(entities)

    def normalize_entities(self, entities: ExtractedEntities) -> ExtractedEntities:
        """Canonicalize specialty names, dates, times, periods, phone and CPF."""
        specialties: List[str] = []
        for value in entities.especialidade:
            match = self.knowledge_base.find_specialty(value)
            name = match.name if match else value.strip()
            if name and name not in specialties:
                specialties.append(name)

        temporal = entities.temporal
        parsed_date = self.date_parser.parse_natural_date(temporal.data) if temporal.data else None
        if parsed_date is None and temporal.proxima_semana:
            parsed_date = self.date_parser.next_week_start()
        if parsed_date is None and temporal.proximo_mes:
            parsed_date = self.date_parser.next_month_start()

        parsed_time = None
        if temporal.horario:
            if TimeParser.is_valid_time_format(temporal.horario):
                parsed_time = temporal.horario
            else:
                parsed_time = TimeParser.parse_natural_time(temporal.horario)

        temporal = temporal.model_copy(update={
            "data": parsed_date,
            "horario": parsed_time,
            "periodo": self._period(temporal.periodo),
        })
        preferences = entities.preferencias.model_copy(update={
            "periodo": self._period(entities.preferencias.periodo),
        })

        contact = entities.contato
        email = contact.email if contact.email and ValidationUtils.validate_email(contact.email) else None
        contact = contact.model_copy(update={
            "telefone": PhoneNumberParser.normalize(contact.telefone) if contact.telefone else None,
            "email": email,
        })
        document = entities.documento.model_copy(update={
            "cpf": ValidationUtils.normalize_cpf(entities.documento.cpf) if entities.documento.cpf else None,
        })

        person = entities.pessoa.model_copy(update={
            "nome": (entities.pessoa.nome or "").strip() or None,
            "nome_completo": (entities.pessoa.nome_completo or "").strip() or None,
        })

        existing = entities.agendamento_existente
        if existing.data:
            existing = existing.model_copy(update={
                "data": self.date_parser.parse_natural_date(existing.data) or existing.data,
            })

        return entities.model_copy(update={
            "pessoa": person,
            "documento": document,
            "contato": contact,
            "especialidade": specialties,
            "temporal": temporal,
            "preferencias": preferences,
            "agendamento_existente": existing,
        })

    @staticmethod
    def _period(value: Optional[str]) -> Optional[str]:
        period = TimePeriod.from_string(value) if value else None
        return period.value if period else None

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        normalized = TextProcessor.normalize(text)
        positive = sum(1 for word in POSITIVE_WORDS if word in normalized)
        negative = sum(1 for word in NEGATIVE_WORDS if word in normalized)

        if positive > negative:
            return SentimentResult(sentiment=Sentiment.POSITIVE, confidence=min(0.6 + positive * 0.1, 1.0))
        if negative > positive:
            return SentimentResult(sentiment=Sentiment.NEGATIVE, confidence=min(0.6 + negative * 0.1, 1.0))
        return SentimentResult(sentiment=Sentiment.NEUTRAL, confidence=0.5)
