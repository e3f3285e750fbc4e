"""
LLM client exceptions.
"""


class LLMError(Exception):
    """Base exception for LLM provider errors."""
    pass


class RateLimitExceededError(LLMError):
    """Exception raised when a user exceeds the request quota for the window."""
    pass


class SafetyBlockedError(LLMError):
    """Exception raised when the provider blocks a prompt or response."""
    pass


class LLMTimeoutError(LLMError):
    """Exception raised when a provider call exceeds the configured timeout."""
    pass


class LLMUnavailableError(LLMError):
    """Exception raised when no provider is configured or reachable."""
    pass
