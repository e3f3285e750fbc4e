"""
Conversation context management.
"""

from .store import ContextStore, create_redis_client
from .manager import ConversationContextManager, merge_slots
from .locks import SessionLockRegistry
from .slots import ENTITY_SLOT_MAP, NEXT_STEP_HINTS, REQUIRED_SLOTS, map_entities_to_slots, missing_slots

__all__ = [
    "ContextStore",
    "create_redis_client",
    "ConversationContextManager",
    "merge_slots",
    "SessionLockRegistry",
    "ENTITY_SLOT_MAP",
    "NEXT_STEP_HINTS",
    "REQUIRED_SLOTS",
    "map_entities_to_slots",
    "missing_slots",
]
