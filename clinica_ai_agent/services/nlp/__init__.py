"""
NLP module.
"""

from .pipeline import NLPPipeline, calculate_confidence
from .keywords import quick_intent_detection, has_emergency_keyword
from .fallback import extract_entities_fallback, extract_symptoms

__all__ = [
    "NLPPipeline",
    "calculate_confidence",
    "quick_intent_detection",
    "has_emergency_keyword",
    "extract_entities_fallback",
    "extract_symptoms",
]
