"""
Semantic store module.
"""

from .store import SemanticStore, CONVERSATIONS, KNOWLEDGE

__all__ = [
    "SemanticStore",
    "CONVERSATIONS",
    "KNOWLEDGE",
]
