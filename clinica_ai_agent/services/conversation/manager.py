"""
Conversation manager: runs one user turn end to end.

Order per turn: load or create the context, append the user message, run
NLP, update intent and slots, drive the flow, gather semantic context, ask
the LLM for the reply, append and persist both messages.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from ...config import Settings, get_settings
from ...core.enums import FlowState, FlowStep, Intent, MessageRole, SlotName
from ...core.exceptions import LLMError
from ...core.models import (
    ConversationChunk,
    ConversationContext,
    ConversationMessage,
    ConversationResponse,
    FlowResult,
    NLPResult,
    SemanticContext,
)
from ...knowledge import KnowledgeBase
from ...utils.logging import get_logger
from ...utils.text import TextProcessor
from ..clinic import ClinicRepository
from ..context import ConversationContextManager, NEXT_STEP_HINTS, SessionLockRegistry
from ..flows import (
    AWAITING_REPLY_STATES,
    FLOW_INTENTS,
    TERMINAL_STATES,
    VERBATIM_STEPS,
    ConversationFlowHandler,
    is_legal_state,
    resolve_step,
)
from ..llm import GeminiClient
from ..nlp import NLPPipeline
from ..semantic import SemanticStore
from .prompts import ERROR_REPLY, FALLBACK_REPLY, build_prompt, system_prompt_for


logger = get_logger("clinica.conversation")


@dataclass
class _Turn:
    context: ConversationContext
    nlp: NLPResult
    flow_result: Optional[FlowResult] = None
    semantic: SemanticContext = field(default_factory=SemanticContext)


class ConversationManager:
    """Entry point for the chat channels."""

    def __init__(
        self,
        context_manager: ConversationContextManager,
        nlp: NLPPipeline,
        flow_handler: ConversationFlowHandler,
        knowledge_base: KnowledgeBase,
        llm: Optional[GeminiClient] = None,
        semantic: Optional[SemanticStore] = None,
        repository: Optional[ClinicRepository] = None,
        locks: Optional[SessionLockRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.context_manager = context_manager
        self.nlp = nlp
        self.flow_handler = flow_handler
        self.knowledge_base = knowledge_base
        self.llm = llm
        self.semantic = semantic
        self.repository = repository
        self.locks = locks or SessionLockRegistry()
        self.settings = settings or get_settings()

    async def process_message(
        self,
        user_id: str,
        message: str,
        session_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> ConversationResponse:
        """Process one message. Never raises; failures produce a generic apology."""
        session_id = session_id or user_id
        try:
            async with self.locks.hold(user_id, session_id):
                turn = await self._run_turn(user_id, message, session_id, conversation_id)
                reply = await self._reply(turn)
                context = await self._finish_turn(turn, reply)
                return self._response(context, turn, reply)
        except Exception as e:
            logger.error(
                f"conversation: failed to process message: {e}",
                user_id=user_id,
                session_id=session_id,
                exc_info=True,
            )
            return ConversationResponse(
                message=ERROR_REPLY,
                intent=Intent.UNKNOWN,
                confidence=0.1,
            )

    async def process_message_streaming(
        self,
        user_id: str,
        message: str,
        session_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> AsyncIterator[ConversationChunk]:
        """
        Same turn as ``process_message`` but the reply is yielded as it arrives.

        The last chunk carries the full reply with ``is_complete=True``. The
        session lock is held until the consumer finishes or closes the iterator.
        """
        session_id = session_id or user_id
        try:
            async with self.locks.hold(user_id, session_id):
                turn = await self._run_turn(user_id, message, session_id, conversation_id)
                intent = turn.context.current_intent

                full_reply = ""
                async for content in self._reply_stream(turn):
                    full_reply += content
                    yield ConversationChunk(content=content, is_complete=False, intent=intent)

                context = await self._finish_turn(turn, full_reply)
                yield ConversationChunk(
                    content=full_reply,
                    is_complete=True,
                    intent=context.current_intent,
                    next_steps=self._next_steps(context),
                )
        except Exception as e:
            logger.error(
                f"conversation: streaming failed: {e}",
                user_id=user_id,
                session_id=session_id,
                exc_info=True,
            )
            yield ConversationChunk(content=ERROR_REPLY, is_complete=True, intent=Intent.UNKNOWN)

    # Turn steps

    async def _run_turn(
        self,
        user_id: str,
        message: str,
        session_id: str,
        conversation_id: Optional[str],
    ) -> _Turn:
        context = await self.context_manager.get_context(user_id, session_id)
        if context is None:
            context = await self.context_manager.create_context(
                user_id, session_id, conversation_id=conversation_id
            )
        elif conversation_id and context.conversation_id != conversation_id:
            context = await self.context_manager.update_context(context, {"conversation_id": conversation_id})

        context = await self.context_manager.add_message(
            context, ConversationMessage(role=MessageRole.USER, content=message)
        )

        window = self.settings.nlp_history_window
        history = context.recent_messages(window + 1)[:-1]
        nlp_result = await self.nlp.process_message(message, user_id, history)

        context = await self._update_intent(context, nlp_result, message)
        context = await self.context_manager.update_slots(context, nlp_result.entities, nlp_result.confidence)

        flow_result = None
        if context.current_intent in FLOW_INTENTS:
            context, flow_result = await self._run_flow(context)

        semantic = SemanticContext()
        if self.semantic is not None:
            semantic = await self.semantic.get_context(message, user_id, context.conversation_id)

        return _Turn(context=context, nlp=nlp_result, flow_result=flow_result, semantic=semantic)

    async def _update_intent(
        self, context: ConversationContext, nlp_result: NLPResult, message: str
    ) -> ConversationContext:
        intent = nlp_result.intent
        if intent == Intent.UNKNOWN:
            return context

        # "2" or "sim" answers the pending question whatever the classifier says.
        if (
            context.flow_state in AWAITING_REPLY_STATES
            and intent != Intent.EMERGENCY
            and TextProcessor.is_bare_reply(message)
        ):
            return context

        finished = context.flow_state in TERMINAL_STATES
        if intent != context.current_intent or finished or not is_legal_state(intent, context.flow_state):
            logger.info(
                f"conversation: intent {context.current_intent.value} -> {intent.value}",
                user_id=context.user_id,
                session_id=context.session_id,
            )
            return await self.context_manager.reset_flow(context, intent, clear_transient=finished)
        return context

    async def _run_flow(
        self, context: ConversationContext
    ) -> Tuple[ConversationContext, Optional[FlowResult]]:
        transition = None
        if context.flow_state in AWAITING_REPLY_STATES:
            transition = self.flow_handler.advance(context)

        if transition is not None:
            context = await self.context_manager.apply_slot_updates(context, transition.slot_updates)
            fields: Dict[str, Any] = {"flow_state": transition.flow_state}
            if transition.flow_data is not None:
                fields["flow_data"] = transition.flow_data
            context = await self.context_manager.update_context(context, fields)
        elif context.flow_state in TERMINAL_STATES:
            return context, None

        result = await self.flow_handler.handle(context)
        if result is None:
            return context, None

        intent, state = resolve_step(context.current_intent, result.next_step, context.flow_state)
        if intent != context.current_intent:
            context = await self.context_manager.reset_flow(context, intent)

        fields = {"flow_state": state}
        if result.flow_data is not None:
            fields["flow_data"] = result.flow_data
        elif result.next_step == FlowStep.RESTART:
            fields["flow_data"] = {}
        context = await self.context_manager.update_context(context, fields)
        context = await self.context_manager.apply_slot_updates(context, result.slot_updates)
        return context, result

    # Reply generation

    @staticmethod
    def _is_verbatim(result: Optional[FlowResult]) -> bool:
        return result is not None and (result.next_step in VERBATIM_STEPS or bool(result.errors))

    def _prompt(self, turn: _Turn) -> str:
        return build_prompt(
            self.context_manager.get_context_summary(turn.context),
            turn.nlp,
            turn.semantic,
            self.context_manager.get_missing_slots(turn.context),
            turn.flow_result,
        )

    def _fallback_reply(self, turn: _Turn) -> str:
        if turn.flow_result is not None:
            return turn.flow_result.message
        faqs = self.knowledge_base.find_faqs(turn.nlp.original_text, limit=1)
        if faqs:
            return faqs[0].answer
        return FALLBACK_REPLY

    async def _reply(self, turn: _Turn) -> str:
        if self._is_verbatim(turn.flow_result):
            return turn.flow_result.message
        if self.llm is None:
            return self._fallback_reply(turn)

        try:
            return await self.llm.generate_response(
                self._prompt(turn),
                user_id=turn.context.user_id,
                system_prompt=system_prompt_for(turn.context.current_intent),
                temperature=self.settings.llm_temperature,
                max_output_tokens=self.settings.llm_reply_max_tokens,
            )
        except LLMError as e:
            logger.warning(
                f"conversation: LLM reply unavailable, using fallback: {e}",
                user_id=turn.context.user_id,
                session_id=turn.context.session_id,
            )
            return self._fallback_reply(turn)

    async def _reply_stream(self, turn: _Turn) -> AsyncIterator[str]:
        if self._is_verbatim(turn.flow_result) or self.llm is None:
            yield await self._reply(turn)
            return

        stream = self.llm.generate_streaming_response(
            self._prompt(turn),
            user_id=turn.context.user_id,
            system_prompt=system_prompt_for(turn.context.current_intent),
            temperature=self.settings.llm_temperature,
            max_output_tokens=self.settings.llm_reply_max_tokens,
        )
        produced = False
        try:
            async for chunk in stream:
                if chunk.is_complete:
                    break
                produced = True
                yield chunk.content
        except LLMError as e:
            logger.warning(
                f"conversation: LLM stream failed: {e}",
                user_id=turn.context.user_id,
                session_id=turn.context.session_id,
            )
            if not produced:
                yield self._fallback_reply(turn)
        finally:
            await stream.aclose()

    # Persistence and response

    async def _finish_turn(self, turn: _Turn, reply: str) -> ConversationContext:
        context = await self.context_manager.add_message(
            turn.context, ConversationMessage(role=MessageRole.ASSISTANT, content=reply)
        )
        await self._persist(context, turn.nlp.original_text, MessageRole.USER)
        await self._persist(context, reply, MessageRole.ASSISTANT)
        return context

    async def _persist(self, context: ConversationContext, content: str, role: MessageRole) -> None:
        if context.conversation_id and self.repository is not None:
            try:
                await self.repository.save_message(context.conversation_id, context.user_id, content, role.value)
            except Exception as e:
                logger.error(
                    f"conversation: failed to save message: {e}",
                    user_id=context.user_id,
                    session_id=context.session_id,
                    conversation_id=context.conversation_id,
                    role=role.value,
                )

        if self.semantic is not None:
            await self.semantic.add_conversation_message(
                context.user_id,
                content,
                role.value,
                conversation_id=context.conversation_id,
                session_id=context.session_id,
                intent=context.current_intent.value,
            )

    def _is_completed(self, context: ConversationContext) -> bool:
        if context.current_intent == Intent.GENERAL_INFORMATION:
            return True
        return self.context_manager.are_all_slots_filled(context) and context.flow_state == FlowState.COMPLETED

    def _requires_input(self, context: ConversationContext) -> bool:
        return bool(self.context_manager.get_missing_slots(context)) or context.flow_state != FlowState.COMPLETED

    def _next_steps(self, context: ConversationContext) -> Optional[List[str]]:
        steps = [
            NEXT_STEP_HINTS[SlotName(name)]
            for name in self.context_manager.get_missing_slots(context)
            if SlotName(name) in NEXT_STEP_HINTS
        ]
        return steps or None

    def _response(self, context: ConversationContext, turn: _Turn, reply: str) -> ConversationResponse:
        data: Dict[str, Any] = {
            name.value: slot.value for name, slot in context.slots_filled.items() if slot.confirmed
        }
        data.update({
            "intent": context.current_intent.value,
            "flowState": context.flow_state.value,
            "isCompleted": self._is_completed(context),
        })
        if turn.flow_result is not None:
            data.update(turn.flow_result.data)
            if turn.flow_result.next_step is not None:
                data["nextStep"] = turn.flow_result.next_step.value

        return ConversationResponse(
            message=reply,
            intent=context.current_intent,
            next_steps=self._next_steps(context),
            is_completed=self._is_completed(context),
            requires_input=self._requires_input(context),
            data=data,
            confidence=turn.nlp.confidence,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Aggregate LLM and semantic store health."""
        gemini = await self.llm.health_check() if self.llm is not None else {"status": "unavailable"}
        chroma = await self.semantic.health_check() if self.semantic is not None else {"status": "unavailable"}

        gemini_ok = gemini.get("status") == "healthy"
        chroma_ok = chroma.get("status") == "healthy"
        return {
            "gemini": gemini_ok,
            "chroma": chroma_ok,
            "overall": gemini_ok and chroma_ok,
            "active_sessions": self.locks.active_sessions(),
        }
