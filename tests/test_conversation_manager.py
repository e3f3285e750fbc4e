"""
Tests for the conversation manager turn loop.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from clinica_ai_agent.core.enums import FlowState, Intent, SlotName
from clinica_ai_agent.core.exceptions import LLMError
from clinica_ai_agent.core.models import ConversationContext, SemanticContext, SlotValue, StreamChunk
from clinica_ai_agent.services.conversation.prompts import ERROR_REPLY
from clinica_ai_agent.services.flows import messages


def _intent(label, entities=None, confidence=0.9):
    return {"intent": label, "confidence": confidence, "entities": entities or {}}


def _semantic_double():
    semantic = Mock()
    semantic.get_context = AsyncMock(return_value=SemanticContext())
    semantic.add_conversation_message = AsyncMock(return_value="doc-1")
    semantic.health_check = AsyncMock(return_value={"status": "healthy"})
    return semantic


class TestSchedulingTurns:
    """Test scheduling through the full turn loop."""

    @pytest.mark.asyncio
    async def test_llm_outage_falls_back_to_flow_message(self, manager_factory, mock_llm):
        mock_llm.analyze_intent.side_effect = LLMError("quota")
        mock_llm.generate_response.side_effect = LLMError("quota")
        manager = manager_factory(llm=mock_llm)

        response = await manager.process_message("u1", "Quero agendar uma consulta")

        assert response.intent == Intent.SCHEDULE_APPOINTMENT
        assert response.message == messages.COLLECT_BASIC_INFO
        assert "nome completo" in response.message and "telefone" in response.message
        assert response.requires_input
        assert not response.is_completed
        assert response.data["flowState"] == FlowState.COLLECTING_APPOINTMENT_DETAILS.value

    @pytest.mark.asyncio
    async def test_llm_phrases_non_verbatim_steps(self, manager_factory, mock_llm):
        mock_llm.analyze_intent.return_value = _intent("AGENDAR_CONSULTA")
        manager = manager_factory(llm=mock_llm)

        response = await manager.process_message("u1", "Quero agendar uma consulta")

        assert response.message == "Claro! Como posso ajudar?"
        prompt = mock_llm.generate_response.call_args.args[0]
        assert "ORIENTAÇÃO DO FLUXO" in prompt
        assert messages.COLLECT_BASIC_INFO in prompt
        assert "agendamento médico" in mock_llm.generate_response.call_args.kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_ready_context_books(self, manager_factory, mock_llm, context_manager, repository, weekday_date):
        mock_llm.analyze_intent.return_value = _intent("AGENDAR_CONSULTA")
        manager = manager_factory(llm=mock_llm)
        await context_manager.save_context(ConversationContext(
            user_id="u1",
            session_id="u1",
            conversation_id="conv-b",
            current_intent=Intent.SCHEDULE_APPOINTMENT,
            flow_state=FlowState.READY_TO_BOOK,
            slots_filled={
                name: SlotValue(value=value, confidence=1.0, confirmed=True)
                for name, value in {
                    SlotName.PATIENT_NAME: "Ana Souza",
                    SlotName.PATIENT_PHONE: "11999887766",
                    SlotName.SPECIALTY: "Cardiologia",
                    SlotName.PREFERRED_DATE: weekday_date,
                    SlotName.PREFERRED_TIME: "09:00",
                    SlotName.DOCTOR_ID: "doc-joao-silva",
                }.items()
            },
        ))

        response = await manager.process_message("u1", "Pode marcar, por favor")

        assert response.is_completed
        assert response.data["flowState"] == FlowState.COMPLETED.value
        assert response.data["isCompleted"] is True
        # booking confirmations are shown as written
        mock_llm.generate_response.assert_not_called()

        booked = await repository.find_upcoming_appointments(patient_phone="11999887766")
        assert len(booked) == 1
        assert booked[0].doctor_id == "doc-joao-silva"
        assert booked[0].scheduled_at.date().isoformat() == weekday_date

    @pytest.mark.asyncio
    async def test_multi_turn_booking_without_llm(self, manager_factory, repository, weekday_date):
        manager = manager_factory()

        first = await manager.process_message(
            "u1",
            f"Olá, meu nome é Ana Souza e meu telefone é (11) 99988-7766. "
            f"Quero agendar cardiologia para {weekday_date} às 9h",
            conversation_id="conv-1",
        )
        assert first.intent == Intent.SCHEDULE_APPOINTMENT
        assert first.data["flowState"] == FlowState.PRESENTING_OPTIONS.value

        second = await manager.process_message("u1", "1")
        assert second.intent == Intent.SCHEDULE_APPOINTMENT
        assert second.data["flowState"] == FlowState.CONFIRMING_DETAILS.value

        third = await manager.process_message("u1", "sim")
        assert third.is_completed
        assert not third.requires_input

        booked = await repository.find_upcoming_appointments(patient_phone="11999887766")
        assert len(booked) == 1
        assert booked[0].scheduled_at.date().isoformat() == weekday_date

        stored = await repository.list_messages("conv-1")
        assert [m["role"] for m in stored] == ["user", "assistant"] * 3

    @staticmethod
    async def _present_options(manager, weekday_date):
        response = await manager.process_message(
            "u1",
            f"Meu nome é Ana Souza, telefone (11) 99988-7766. "
            f"Quero agendar cardiologia para {weekday_date} às 9h",
        )
        assert response.data["flowState"] == FlowState.PRESENTING_OPTIONS.value
        return response

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["isso não está certo", "pode ser outro horário?"])
    async def test_unclear_confirmation_books_nothing(self, manager_factory, repository, weekday_date, reply):
        manager = manager_factory()
        await self._present_options(manager, weekday_date)
        chosen = await manager.process_message("u1", "1")
        assert chosen.data["flowState"] == FlowState.CONFIRMING_DETAILS.value

        response = await manager.process_message("u1", reply)

        assert response.data["flowState"] != FlowState.COMPLETED.value
        assert not response.is_completed
        assert await repository.find_upcoming_appointments(patient_phone="11999887766") == []

    @pytest.mark.asyncio
    async def test_negated_confirmation_asks_again(self, manager_factory, repository, weekday_date):
        manager = manager_factory()
        await self._present_options(manager, weekday_date)
        await manager.process_message("u1", "1")

        response = await manager.process_message("u1", "isso não está certo")

        assert response.data["flowState"] == FlowState.COLLECTING_APPOINTMENT_DETAILS.value
        assert SlotName.DOCTOR_ID.value not in response.data

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["prefiro segunda", "quero uma consulta"])
    async def test_weekday_reply_does_not_pick_an_option(self, manager_factory, weekday_date, reply):
        manager = manager_factory()
        await self._present_options(manager, weekday_date)

        response = await manager.process_message("u1", reply)

        assert response.data["flowState"] != FlowState.CONFIRMING_DETAILS.value
        assert SlotName.DOCTOR_ID.value not in response.data


class TestOtherIntents:
    """Test emergency and informational turns."""

    @pytest.mark.asyncio
    async def test_emergency(self, manager_factory):
        manager = manager_factory()

        response = await manager.process_message("u1", "É uma emergência, dor no peito forte")

        assert response.intent == Intent.EMERGENCY
        assert "192" in response.message
        assert response.data["urgencyLevel"] == "immediate"
        assert response.data["flowState"] == FlowState.EMERGENCY_HANDLED.value

    @pytest.mark.asyncio
    async def test_general_question_uses_faq_without_llm(self, manager_factory):
        manager = manager_factory()

        response = await manager.process_message("u1", "Qual o horário de funcionamento?")

        assert response.intent == Intent.GENERAL_INFORMATION
        assert "segunda a sexta" in response.message
        assert response.is_completed

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_apology(self, manager_factory, context_manager):
        context_manager.get_context = AsyncMock(side_effect=RuntimeError("boom"))
        manager = manager_factory()

        response = await manager.process_message("u1", "Oi")

        assert response.message == ERROR_REPLY
        assert response.intent == Intent.UNKNOWN
        assert response.confidence == 0.1


class TestStreaming:
    """Test streamed replies."""

    @pytest.mark.asyncio
    async def test_chunks_then_complete(self, manager_factory, mock_llm):
        async def stream(*args, **kwargs):
            yield StreamChunk(content="Funcionamos")
            yield StreamChunk(content=" de 7h às 19h.")
            yield StreamChunk(content="Funcionamos de 7h às 19h.", is_complete=True)

        mock_llm.analyze_intent.return_value = _intent("INFORMACOES_GERAIS")
        mock_llm.generate_streaming_response = stream
        manager = manager_factory(llm=mock_llm)

        chunks = [c async for c in manager.process_message_streaming("u1", "Qual o horário de funcionamento?")]

        assert [c.content for c in chunks[:-1]] == ["Funcionamos", " de 7h às 19h."]
        assert not any(c.is_complete for c in chunks[:-1])
        assert chunks[-1].is_complete
        assert chunks[-1].content == "Funcionamos de 7h às 19h."
        assert chunks[-1].intent == Intent.GENERAL_INFORMATION

    @pytest.mark.asyncio
    async def test_stream_failure_before_output_falls_back(self, manager_factory, mock_llm):
        async def stream(*args, **kwargs):
            raise LLMError("stream dropped")
            yield  # pragma: no cover

        mock_llm.analyze_intent.return_value = _intent("INFORMACOES_GERAIS")
        mock_llm.generate_streaming_response = stream
        manager = manager_factory(llm=mock_llm)

        chunks = [c async for c in manager.process_message_streaming("u1", "Qual o horário de funcionamento?")]

        assert chunks[-1].is_complete
        assert "segunda a sexta" in chunks[-1].content

    @pytest.mark.asyncio
    async def test_verbatim_steps_are_not_streamed_from_llm(self, manager_factory):
        manager = manager_factory()

        chunks = [c async for c in manager.process_message_streaming("u1", "Quero agendar uma consulta")]

        assert [c.content for c in chunks] == [messages.COLLECT_BASIC_INFO, messages.COLLECT_BASIC_INFO]
        assert chunks[-1].next_steps


class TestSessionSerialization:
    """Test that turns of one session never overlap."""

    @staticmethod
    def _tracking_llm(mock_llm):
        state = {"active": 0, "peak": 0}

        async def slow_analyze(*args, **kwargs):
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            await asyncio.sleep(0.02)
            state["active"] -= 1
            return _intent("INFORMACOES_GERAIS")

        mock_llm.analyze_intent.side_effect = slow_analyze
        return state

    @pytest.mark.asyncio
    async def test_same_session_is_serialized(self, manager_factory, mock_llm):
        state = self._tracking_llm(mock_llm)
        manager = manager_factory(llm=mock_llm)

        await asyncio.gather(
            manager.process_message("u1", "Onde fica a clínica?", session_id="s1"),
            manager.process_message("u1", "Aceitam convênio?", session_id="s1"),
        )

        assert state["peak"] == 1
        assert mock_llm.analyze_intent.await_count == 2

    @pytest.mark.asyncio
    async def test_different_sessions_run_concurrently(self, manager_factory, mock_llm):
        state = self._tracking_llm(mock_llm)
        manager = manager_factory(llm=mock_llm)

        await asyncio.gather(
            manager.process_message("u1", "Onde fica a clínica?", session_id="s1"),
            manager.process_message("u2", "Aceitam convênio?", session_id="s2"),
        )

        assert state["peak"] == 2


class TestPersistenceAndHealth:
    """Test message persistence and the aggregated health check."""

    @pytest.mark.asyncio
    async def test_semantic_store_receives_both_messages(self, manager_factory, mock_llm):
        mock_llm.analyze_intent.return_value = _intent("INFORMACOES_GERAIS")
        semantic = _semantic_double()
        manager = manager_factory(llm=mock_llm, semantic=semantic)

        await manager.process_message("u1", "Aceitam convênio?", conversation_id="conv-9")

        semantic.get_context.assert_awaited_once_with("Aceitam convênio?", "u1", "conv-9")
        roles = [c.args[2] for c in semantic.add_conversation_message.await_args_list]
        assert roles == ["user", "assistant"]
        assert semantic.add_conversation_message.await_args_list[1].args[1] == "Claro! Como posso ajudar?"

    @pytest.mark.asyncio
    async def test_no_conversation_id_skips_repository(self, manager_factory, repository):
        manager = manager_factory()
        await manager.process_message("u1", "Oi")
        assert await repository.list_messages("u1") == []

    @pytest.mark.asyncio
    async def test_health_check(self, manager_factory, mock_llm):
        manager = manager_factory(llm=mock_llm, semantic=_semantic_double())
        health = await manager.health_check()
        assert health == {"gemini": True, "chroma": True, "overall": True, "active_sessions": 0}

        degraded = await manager_factory(llm=mock_llm).health_check()
        assert degraded["gemini"] and not degraded["chroma"]
        assert not degraded["overall"]
