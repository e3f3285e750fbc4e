"""
Phone number parsing and validation utilities.
"""

import re
from typing import Optional


class PhoneNumberParser:
    """Phone number parsing utilities for Brazilian numbers."""

    # Loose pattern used to pull a phone out of free text: (11) 99988-7766, 11999887766...
    PHONE_IN_TEXT = re.compile(r"(?:\+?55\s?)?\(?(\d{2})\)?\s?(9?\d{4})[-\s]?(\d{4})")

    @classmethod
    def normalize(cls, phone: str) -> Optional[str]:
        """
        Normalize a Brazilian phone number to DDD + number digits.

        Args:
            phone: Phone number in various formats ("+55 (11) 99988-7766", "11999887766")

        Returns:
            10 or 11 digit string without country code, or None if invalid
        """
        if not phone:
            return None

        digits = re.sub(r"\D", "", str(phone))

        if digits.startswith("55") and len(digits) in (12, 13):
            digits = digits[2:]
        if digits.startswith("0") and len(digits) in (11, 12):
            digits = digits[1:]

        if len(digits) not in (10, 11):
            return None
        if digits[0] == "0" or digits[1] == "0":
            return None
        if len(digits) == 11 and digits[2] != "9":
            return None

        return digits

    @classmethod
    def extract_from_text(cls, text: str) -> Optional[str]:
        """Find the first phone number in free text and normalize it."""
        if not text:
            return None

        for match in cls.PHONE_IN_TEXT.finditer(text):
            normalized = cls.normalize("".join(match.groups()))
            if normalized:
                return normalized
        return None

    @classmethod
    def is_valid(cls, phone: str) -> bool:
        return cls.normalize(phone) is not None

    @classmethod
    def format_for_display(cls, phone: str) -> str:
        """Format as (DD) 9XXXX-XXXX, returning the input unchanged if invalid."""
        normalized = cls.normalize(phone)
        if not normalized:
            return phone

        ddd, number = normalized[:2], normalized[2:]
        return f"({ddd}) {number[:-4]}-{number[-4:]}"
