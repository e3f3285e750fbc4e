"""
Conversation orchestration module.
"""

from .manager import ConversationManager
from .prompts import build_prompt, system_prompt_for

__all__ = [
    "ConversationManager",
    "build_prompt",
    "system_prompt_for",
]
