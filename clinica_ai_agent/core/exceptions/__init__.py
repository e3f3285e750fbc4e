"""
Custom exceptions for the Clinica AI Agent system.
"""

from .conversation import ConversationError, ContextStoreError
from .llm import (
    LLMError,
    RateLimitExceededError,
    SafetyBlockedError,
    LLMTimeoutError,
    LLMUnavailableError,
)
from .booking import (
    BookingFlowError,
    SlotUnavailableError,
    AppointmentNotFoundError,
    BookingPersistenceError,
)
from .external import SemanticStoreError, NotificationError

__all__ = [
    "ConversationError",
    "ContextStoreError",
    "LLMError",
    "RateLimitExceededError",
    "SafetyBlockedError",
    "LLMTimeoutError",
    "LLMUnavailableError",
    "BookingFlowError",
    "SlotUnavailableError",
    "AppointmentNotFoundError",
    "BookingPersistenceError",
    "SemanticStoreError",
    "NotificationError",
]
