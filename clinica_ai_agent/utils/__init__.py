"""
Utility modules for the Clinica AI Agent system.
"""

from .text import TextProcessor
from .phone import PhoneNumberParser
from .date import DateParser, TimeParser
from .validation import ValidationUtils
from .logging import get_logger, setup_logging

__all__ = [
    "TextProcessor",
    "PhoneNumberParser",
    "DateParser",
    "TimeParser",
    "ValidationUtils",
    "get_logger",
    "setup_logging",
]
