"""
Conversation context manager.

Every operation takes a context and returns a new one; mutating operations
also persist the returned copy so the store always holds the latest state.
"""

from typing import Any, Dict, Iterable, List, Optional

from ...core.enums import FlowState, Intent, SlotName
from ...core.models import (
    ConversationContext,
    ConversationMessage,
    ExtractedEntities,
    SlotUpdate,
    SlotValue,
    utcnow,
)
from ...utils.logging import get_logger
from ..flows.transitions import entry_state
from .slots import TRANSIENT_SLOTS, map_entities_to_slots, missing_slots
from .store import ContextStore


logger = get_logger("clinica.context")


def merge_slots(
    context: ConversationContext,
    entities: ExtractedEntities,
    confidence: float = 0.8,
) -> ConversationContext:
    """
    Apply extracted entities to the context's slots without persisting.

    Unconfirmed slots take any new value. Confirmed slots are only replaced
    when the new confidence is at least the stored one. Re-applying a value
    that is already stored leaves the slot untouched.
    """
    confidence = max(0.0, min(1.0, confidence))
    values = map_entities_to_slots(entities)
    if not values:
        return context

    slots = dict(context.slots_filled)
    now = utcnow()
    changed = False

    for name, value in values.items():
        existing = slots.get(name)
        if existing is not None and existing.value == value:
            if confidence > existing.confidence:
                slots[name] = existing.model_copy(update={"confidence": confidence})
                changed = True
            continue
        if existing is not None and existing.confirmed and confidence < existing.confidence:
            continue
        slots[name] = SlotValue(value=value, confidence=confidence, confirmed=False, extracted_at=now)
        changed = True

    if not changed:
        return context

    history = list(context.extracted_entities) + [entities.compact()]
    return context.model_copy(update={
        "slots_filled": slots,
        "extracted_entities": history[-10:],
        "updated_at": now,
    })


class ConversationContextManager:
    """Owns conversation contexts and their persistence."""

    def __init__(self, store: ContextStore, max_history: int = 20):
        self.store = store
        self.max_history = max_history

    async def create_context(
        self,
        user_id: str,
        session_id: str,
        intent: Optional[Intent] = None,
        conversation_id: Optional[str] = None,
    ) -> ConversationContext:
        context = ConversationContext(
            user_id=user_id,
            session_id=session_id,
            conversation_id=conversation_id,
            current_intent=intent or Intent.UNKNOWN,
            flow_state=FlowState.INITIAL,
        )
        await self.store.save(context)
        logger.info(f"context: created for {user_id}:{session_id}")
        return context

    async def get_context(self, user_id: str, session_id: str) -> Optional[ConversationContext]:
        return await self.store.load(user_id, session_id)

    async def save_context(self, context: ConversationContext) -> ConversationContext:
        await self.store.save(context)
        return context

    async def delete_context(self, user_id: str, session_id: str) -> None:
        await self.store.delete(user_id, session_id)

    async def add_message(
        self, context: ConversationContext, message: ConversationMessage
    ) -> ConversationContext:
        """Append to history, keeping the most recent ``max_history`` messages."""
        history = (list(context.conversation_history) + [message])[-self.max_history:]
        updated = context.model_copy(update={
            "conversation_history": history,
            "last_activity": message.timestamp,
            "updated_at": utcnow(),
        })
        return await self.save_context(updated)

    async def update_context(
        self, context: ConversationContext, fields: Dict[str, Any]
    ) -> ConversationContext:
        """Shallow-merge top-level fields such as ``current_intent`` or ``flow_state``."""
        unknown = set(fields) - set(ConversationContext.model_fields)
        if unknown:
            raise ValueError(f"unknown context fields: {sorted(unknown)}")

        updated = context.model_copy(update={**fields, "updated_at": utcnow()})
        updated = ConversationContext.model_validate(updated.model_dump())
        return await self.save_context(updated)

    async def update_slots(
        self,
        context: ConversationContext,
        entities: ExtractedEntities,
        confidence: float = 0.8,
    ) -> ConversationContext:
        updated = merge_slots(context, entities, confidence)
        if updated is context:
            return context
        return await self.save_context(updated)

    async def confirm_slot(self, context: ConversationContext, name: SlotName) -> ConversationContext:
        slot = context.slot(name)
        if slot is None or slot.confirmed:
            return context
        slots = dict(context.slots_filled)
        slots[name] = slot.model_copy(update={"confirmed": True})
        return await self.save_context(
            context.model_copy(update={"slots_filled": slots, "updated_at": utcnow()})
        )

    async def apply_slot_updates(
        self, context: ConversationContext, updates: Iterable[SlotUpdate]
    ) -> ConversationContext:
        """Apply flow-driven writes; these bypass the confidence rule and may clear slots."""
        updates = list(updates)
        if not updates:
            return context

        slots = dict(context.slots_filled)
        now = utcnow()
        for update in updates:
            if update.value is None:
                slots.pop(update.name, None)
            else:
                slots[update.name] = SlotValue(
                    value=update.value,
                    confidence=update.confidence,
                    confirmed=update.confirmed,
                    extracted_at=now,
                )
        return await self.save_context(
            context.model_copy(update={"slots_filled": slots, "updated_at": now})
        )

    async def reset_flow(
        self, context: ConversationContext, intent: Intent, clear_transient: bool = False
    ) -> ConversationContext:
        """Enter ``intent``'s entry state, dropping flow data (and transient slots if asked)."""
        slots = dict(context.slots_filled)
        if clear_transient:
            for name in TRANSIENT_SLOTS:
                slots.pop(name, None)

        updated = context.model_copy(update={
            "current_intent": intent,
            "flow_state": entry_state(intent),
            "flow_data": {},
            "slots_filled": slots,
            "updated_at": utcnow(),
        })
        return await self.save_context(updated)

    def get_missing_slots(self, context: ConversationContext) -> List[str]:
        """Required slots still unfilled for the current intent, in table order."""
        return [name.value for name in missing_slots(context)]

    def are_all_slots_filled(self, context: ConversationContext) -> bool:
        return not self.get_missing_slots(context)

    def get_context_summary(self, context: ConversationContext) -> str:
        lines = [
            f"Intenção: {context.current_intent.value}",
            f"Etapa: {context.flow_state.value}",
        ]

        filled = [
            (name, slot) for name, slot in context.slots_filled.items() if slot.is_filled
        ]
        if filled:
            lines.append("Informações coletadas:")
            for name, slot in filled:
                value = ", ".join(map(str, slot.value)) if isinstance(slot.value, list) else slot.value
                marker = " (confirmado)" if slot.confirmed else ""
                lines.append(f"- {name.value}: {value}{marker}")

        missing = self.get_missing_slots(context)
        if missing:
            lines.append(f"Ainda necessário: {', '.join(missing)}")

        recent = context.recent_messages(3)
        if recent:
            lines.append("Conversa recente:")
            for message in recent:
                lines.append(f"{message.role.value}: {message.content[:100]}")

        return "\n".join(lines)
