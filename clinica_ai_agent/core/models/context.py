"""
Conversation context models.

The context is immutable: every change goes through ``model_copy(update=...)``
and the caller persists the returned copy explicitly.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import FlowState, Intent, MessageRole, SlotName


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def is_filled_value(value: Any) -> bool:
    """A value counts as present unless it is None, blank or an empty collection."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


class SlotValue(BaseModel):
    """Single slot with its extraction confidence and confirmation flag."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    value: Any
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    confirmed: bool = False
    extracted_at: datetime = Field(default_factory=utcnow)

    @property
    def is_filled(self) -> bool:
        return is_filled_value(self.value)


class ConversationMessage(BaseModel):
    """Individual message in the conversation history."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class ConversationContext(BaseModel):
    """Per (user, session) conversation state."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str
    session_id: str
    conversation_id: Optional[str] = None
    current_intent: Intent = Intent.UNKNOWN
    flow_state: FlowState = FlowState.INITIAL
    slots_filled: Dict[SlotName, SlotValue] = Field(default_factory=dict)
    conversation_history: List[ConversationMessage] = Field(default_factory=list)
    extracted_entities: List[Dict[str, Any]] = Field(default_factory=list)
    flow_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    error_count: int = 0
    clarification_count: int = 0

    def slot(self, name: SlotName) -> Optional[SlotValue]:
        """Return the slot if it is filled."""
        slot = self.slots_filled.get(name)
        if slot is None or not slot.is_filled:
            return None
        return slot

    def slot_value(self, name: SlotName, default: Any = None) -> Any:
        """Return the slot's value, or default when unfilled."""
        slot = self.slot(name)
        return slot.value if slot is not None else default

    def has_slot(self, name: SlotName) -> bool:
        return self.slot(name) is not None

    def last_user_message(self) -> Optional[str]:
        for message in reversed(self.conversation_history):
            if message.role == MessageRole.USER:
                return message.content
        return None

    def recent_messages(self, count: int) -> List[ConversationMessage]:
        if count <= 0:
            return []
        return list(self.conversation_history[-count:])
