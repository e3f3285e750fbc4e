"""
Validation utilities for patient data.
"""

import re
from typing import Optional, Tuple


class ValidationUtils:
    """Validation utilities for various data types."""

    CPF_IN_TEXT = re.compile(r"\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b")
    EMAIL_IN_TEXT = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")

    @staticmethod
    def normalize_cpf(cpf: str) -> Optional[str]:
        """Strip formatting from a CPF, returning 11 digits or None."""
        if not cpf:
            return None
        digits = re.sub(r"\D", "", str(cpf))
        return digits if len(digits) == 11 else None

    @classmethod
    def is_valid_cpf(cls, cpf: str) -> bool:
        """
        Check a CPF's two verification digits.

        Args:
            cpf: CPF with or without punctuation

        Returns:
            True if the check digits match
        """
        digits = cls.normalize_cpf(cpf)
        if not digits or digits == digits[0] * 11:
            return False

        numbers = [int(d) for d in digits]
        for position in (9, 10):
            total = sum(numbers[i] * (position + 1 - i) for i in range(position))
            check = (total * 10) % 11 % 10
            if numbers[position] != check:
                return False
        return True

    @staticmethod
    def format_cpf(cpf: str) -> str:
        digits = ValidationUtils.normalize_cpf(cpf)
        if not digits:
            return cpf
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"

    @staticmethod
    def validate_name(name: str) -> Tuple[bool, Optional[str]]:
        """
        Validate name format.

        Args:
            name: Name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not isinstance(name, str):
            return False, "O nome é obrigatório"

        name = name.strip()
        if len(name) < 2:
            return False, "Nome muito curto. Informe seu nome completo"

        if len(name) > 100:
            return False, "Nome muito longo"

        if not re.match(r"^[A-Za-zÀ-ÿ\s'\-\.]+$", name):
            return False, "O nome contém caracteres inválidos"

        return True, None

    @staticmethod
    def validate_email(email: str) -> bool:
        if not email:
            return False
        return re.fullmatch(r"[\w.+-]+@[\w-]+\.[\w.-]+", email.strip()) is not None
