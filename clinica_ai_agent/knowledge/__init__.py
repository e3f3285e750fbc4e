"""
Clinic knowledge base.
"""

from .base import KnowledgeBase, load_knowledge_base

__all__ = [
    "KnowledgeBase",
    "load_knowledge_base",
]
