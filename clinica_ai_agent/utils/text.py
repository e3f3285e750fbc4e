"""
Text processing utilities.
"""

import re
import unicodedata
from typing import Iterable, Optional


_ORDINAL_WORDS = {
    "um": 1, "uma": 1, "primeira": 1, "primeiro": 1,
    "dois": 2, "duas": 2, "segunda": 2, "segundo": 2,
    "tres": 3, "terceira": 3, "terceiro": 3,
    "quatro": 4, "quarta": 4, "quarto": 4,
    "cinco": 5, "quinta": 5, "quinto": 5,
}

# Words allowed around an ordinal ("a segunda", "opção dois").
_CHOICE_PREFIXES = {"a", "o", "opcao", "numero"}

_AFFIRMATIVE = {
    "sim", "s", "ok", "okay", "certo", "correto", "confirmo", "confirmar",
    "confirmado", "pode", "pode sim", "isso", "isso mesmo", "perfeito",
    "claro", "com certeza", "exato", "positivo", "beleza", "fechado", "yes",
    "tudo certo", "esta certo", "ta certo",
}

# A confirmation may open with one of these and continue only with filler.
_LEADING_AFFIRMATIVE = {"sim", "confirmo", "ok", "isso", "pode", "perfeito", "claro", "exato", "certo"}
_CONFIRMATION_FILLER = _LEADING_AFFIRMATIVE | {
    "s", "mesmo", "com", "certeza", "por", "favor", "obrigado", "obrigada",
    "marcar", "agendar", "confirmar", "confirmado", "correto", "tudo", "esta",
    "ta", "beleza", "fechado", "pode", "sim",
}

_NEGATIVE = {
    "nao", "n", "negativo", "nao quero", "nao confirmo", "errado",
    "incorreto", "cancela", "deixa", "deixa pra la", "melhor nao", "no",
}


class TextProcessor:
    """Text processing utilities."""

    @staticmethod
    def strip_accents(text: str) -> str:
        normalized = unicodedata.normalize("NFKD", text)
        return "".join(ch for ch in normalized if not unicodedata.combining(ch))

    @classmethod
    def normalize(cls, text: str) -> str:
        """Lowercase, accent-free, single-spaced text for keyword matching."""
        if not isinstance(text, str):
            text = str(text or "")

        text = cls.strip_accents(text.strip().lower())
        text = re.sub(r"[!?.,;:]+", " ", text)
        return re.sub(r"\s+", " ", text).strip()

    @classmethod
    def contains_any(cls, text: str, keywords: Iterable[str]) -> bool:
        haystack = cls.normalize(text)
        return any(cls.normalize(keyword) in haystack for keyword in keywords)

    @classmethod
    def parse_choice(cls, text: str, option_count: int) -> Optional[int]:
        """
        Parse a numbered-option reply ("2", "opção 2", "a segunda").

        Returns:
            Zero-based index, or None when the reply is not a valid choice
        """
        if not text or option_count <= 0:
            return None

        normalized = cls.normalize(text)
        # NFKD turns "º"/"ª" into plain "o"/"a"
        match = re.fullmatch(r"(?:opcao|numero|no|n|a|o)?\s*(\d{1,2})(?:\s*[oa])?", normalized)
        if match:
            number = int(match.group(1))
        else:
            # "segunda" next to other words is usually a weekday, so the
            # ordinal must stand alone apart from an article or "opção"
            words = normalized.split()
            while words and words[0] in _CHOICE_PREFIXES:
                words = words[1:]
            if len(words) != 1 or words[0] not in _ORDINAL_WORDS:
                return None
            number = _ORDINAL_WORDS[words[0]]

        if 1 <= number <= option_count:
            return number - 1
        return None

    @classmethod
    def is_affirmative(cls, text: str) -> bool:
        """
        True only for an explicit yes: a known confirmation phrase, or a
        leading "sim"/"pode"/"isso" followed by nothing but polite filler.
        "pode ser outro horário?" and "isso não está certo" are not a yes.
        """
        normalized = cls.normalize(text)
        if not normalized:
            return False
        if normalized in _AFFIRMATIVE:
            return True

        words = normalized.split()
        if "nao" in words or words[0] not in _LEADING_AFFIRMATIVE:
            return False
        return all(word in _CONFIRMATION_FILLER for word in words)

    @classmethod
    def is_negative(cls, text: str) -> bool:
        normalized = cls.normalize(text)
        if not normalized:
            return False
        if normalized in _NEGATIVE:
            return True

        words = normalized.split()
        if words[0] == "nao":
            return True
        # "isso não está certo", "ok, não"
        return words[0] in _LEADING_AFFIRMATIVE and "nao" in words

    @classmethod
    def is_bare_reply(cls, text: str, option_count: int = 9) -> bool:
        """True when the text only answers a pending question (number, yes or no)."""
        return (
            cls.parse_choice(text, option_count) is not None
            or cls.is_affirmative(text)
            or cls.is_negative(text)
        )

    @staticmethod
    def truncate(text: str, limit: int) -> str:
        if len(text) <= limit:
            return text
        return text[:limit].rstrip() + "..."
