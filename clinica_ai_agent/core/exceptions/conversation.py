"""
Conversation-related exceptions.
"""


class ConversationError(Exception):
    """Base exception for conversation handling errors."""
    pass


class ContextStoreError(ConversationError):
    """Exception raised when the context store cannot be read or written."""
    pass
