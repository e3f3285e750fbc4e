"""
Tests for core models and enums.
"""

import pytest
from pydantic import ValidationError

from clinica_ai_agent.core.enums import (
    FlowState,
    Intent,
    MessageRole,
    SlotName,
    TimePeriod,
    UrgencyLevel,
)
from clinica_ai_agent.core.models import (
    ConversationContext,
    ConversationMessage,
    ExtractedEntities,
    SlotValue,
    is_filled_value,
)


class TestEnums:
    """Test enum conversions."""

    def test_intent_from_label(self):
        """LLM labels map by value or member name, anything else is UNKNOWN."""
        assert Intent.from_label("AGENDAR_CONSULTA") == Intent.SCHEDULE_APPOINTMENT
        assert Intent.from_label(" emergencia. ") == Intent.EMERGENCY
        assert Intent.from_label("CHECK_APPOINTMENT") == Intent.CHECK_APPOINTMENT
        assert Intent.from_label("MARCAR_EXAME") == Intent.UNKNOWN
        assert Intent.from_label("") == Intent.UNKNOWN

    def test_time_period_from_string(self):
        """Portuguese period words are recognized."""
        assert TimePeriod.from_string("de manhã") == TimePeriod.MORNING
        assert TimePeriod.from_string("Tarde") == TimePeriod.AFTERNOON
        assert TimePeriod.from_string("à noite") == TimePeriod.EVENING
        assert TimePeriod.from_string("madrugada") is None

    def test_urgency_rank(self):
        """Immediate is the most urgent."""
        ranked = sorted(UrgencyLevel, key=lambda level: level.rank)
        assert ranked[0] == UrgencyLevel.IMMEDIATE
        assert ranked[-1] == UrgencyLevel.SEMI_URGENT


class TestSlotValue:
    """Test slot presence rules."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_empty_values_are_not_filled(self, value):
        assert not is_filled_value(value)
        assert not SlotValue(value=value).is_filled

    @pytest.mark.parametrize("value", ["Ana", 0, False, ["dor no peito"]])
    def test_present_values_are_filled(self, value):
        assert SlotValue(value=value, confidence=0.8).is_filled

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            SlotValue(value="x", confidence=1.5)


class TestConversationContext:
    """Test context helpers."""

    def _context(self):
        return ConversationContext(
            user_id="u1",
            session_id="s1",
            slots_filled={
                SlotName.PATIENT_NAME: SlotValue(value="Ana Souza", confidence=0.9),
                SlotName.SPECIALTY: SlotValue(value="  ", confidence=0.9),
            },
            conversation_history=[
                ConversationMessage(role=MessageRole.USER, content="Oi"),
                ConversationMessage(role=MessageRole.ASSISTANT, content="Olá!"),
                ConversationMessage(role=MessageRole.USER, content="Quero agendar"),
                ConversationMessage(role=MessageRole.ASSISTANT, content="Claro"),
            ],
        )

    def test_defaults(self):
        context = ConversationContext(user_id="u1", session_id="s1")
        assert context.current_intent == Intent.UNKNOWN
        assert context.flow_state == FlowState.INITIAL
        assert context.slots_filled == {}
        assert context.flow_data == {}

    def test_slot_helpers_ignore_blank_values(self):
        context = self._context()
        assert context.slot_value(SlotName.PATIENT_NAME) == "Ana Souza"
        assert context.has_slot(SlotName.PATIENT_NAME)
        assert not context.has_slot(SlotName.SPECIALTY)
        assert context.slot_value(SlotName.SPECIALTY, "none") == "none"

    def test_last_user_message_and_recent(self):
        context = self._context()
        assert context.last_user_message() == "Quero agendar"
        assert [m.content for m in context.recent_messages(2)] == ["Quero agendar", "Claro"]
        assert context.recent_messages(0) == []

    def test_context_is_immutable(self):
        context = self._context()
        with pytest.raises(ValidationError):
            context.flow_state = FlowState.COMPLETED

    def test_json_round_trip_keeps_slot_keys(self):
        context = self._context()
        restored = ConversationContext.model_validate_json(context.model_dump_json())
        assert restored.slot_value(SlotName.PATIENT_NAME) == "Ana Souza"
        assert restored.conversation_history == context.conversation_history


class TestExtractedEntities:
    """Test the canonical entity schema."""

    def test_accepts_camel_case_aliases(self):
        entities = ExtractedEntities.model_validate({
            "pessoa": {"nomeCompleto": "Ana Paula Souza"},
            "temporal": {"proximaSemana": True},
            "agendamentoExistente": {"data": "2030-01-10"},
        })
        assert entities.pessoa.nome_completo == "Ana Paula Souza"
        assert entities.temporal.proxima_semana is True
        assert entities.agendamento_existente.data == "2030-01-10"

    def test_single_values_become_lists(self):
        entities = ExtractedEntities.model_validate({"especialidade": "Cardiologia", "sintoma": None})
        assert entities.especialidade == ["Cardiologia"]
        assert entities.sintoma == []

    def test_unknown_keys_are_ignored(self):
        entities = ExtractedEntities.model_validate({"outro": 1, "contato": {"telefone": "11999887766", "fax": "x"}})
        assert entities.flatten() == {"contato.telefone": "11999887766"}

    def test_flatten_compact_and_group_count(self):
        entities = ExtractedEntities.model_validate({
            "pessoa": {"nome": "Ana"},
            "contato": {"telefone": "11999887766", "email": "ana@example.com"},
            "especialidade": ["Cardiologia"],
        })
        assert entities.flatten() == {
            "pessoa.nome": "Ana",
            "contato.telefone": "11999887766",
            "contato.email": "ana@example.com",
            "especialidade": ["Cardiologia"],
        }
        assert entities.group_count() == 3
        assert entities.compact()["contato"] == {"telefone": "11999887766", "email": "ana@example.com"}
        assert not entities.is_empty()
        assert ExtractedEntities().is_empty()
