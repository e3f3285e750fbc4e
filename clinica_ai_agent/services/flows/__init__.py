"""
Conversation flows module.
"""

from .transitions import (
    AWAITING_REPLY_STATES,
    FLOW_INTENTS,
    LEGAL_STATES,
    TERMINAL_STATES,
    VERBATIM_STEPS,
    entry_state,
    is_legal_state,
    resolve_step,
)
from . import messages
from .handler import ConversationFlowHandler, booking_key

__all__ = [
    "AWAITING_REPLY_STATES",
    "FLOW_INTENTS",
    "LEGAL_STATES",
    "TERMINAL_STATES",
    "VERBATIM_STEPS",
    "entry_state",
    "is_legal_state",
    "resolve_step",
    "messages",
    "ConversationFlowHandler",
    "booking_key",
]
