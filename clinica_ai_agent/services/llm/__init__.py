"""
LLM client module.
"""

from .gemini import GeminiClient, SAFETY_SETTINGS, parse_json_text
from .rate_limiter import RateLimiter

__all__ = [
    "GeminiClient",
    "RateLimiter",
    "SAFETY_SETTINGS",
    "parse_json_text",
]
