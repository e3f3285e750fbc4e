"""
Entity extraction and NLP result models.

Entities follow one fixed nested schema with Portuguese category keys, so the
LLM extraction prompt, the regex fallback and the slot mapping all agree on the
same paths (``pessoa.nomeCompleto``, ``contato.telefone``...).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import Intent, Sentiment
from .context import is_filled_value, utcnow


class _EntityGroup(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PersonEntities(_EntityGroup):
    nome: Optional[str] = None
    nome_completo: Optional[str] = Field(default=None, alias="nomeCompleto")


class DocumentEntities(_EntityGroup):
    cpf: Optional[str] = None
    rg: Optional[str] = None


class ContactEntities(_EntityGroup):
    telefone: Optional[str] = None
    email: Optional[str] = None


class TemporalEntities(_EntityGroup):
    data: Optional[str] = None
    horario: Optional[str] = None
    periodo: Optional[str] = None
    proxima_semana: bool = Field(default=False, alias="proximaSemana")
    proximo_mes: bool = Field(default=False, alias="proximoMes")


class UrgencyEntities(_EntityGroup):
    nivel: Optional[str] = None
    descricao: Optional[str] = None


class PreferenceEntities(_EntityGroup):
    medico: Optional[str] = None
    periodo: Optional[str] = None
    dias: List[str] = Field(default_factory=list)


class ExistingAppointmentEntities(_EntityGroup):
    id: Optional[str] = None
    data: Optional[str] = None
    medico: Optional[str] = None


class ExtractedEntities(_EntityGroup):
    """Canonical entity schema shared by the LLM and keyword extractors."""

    pessoa: PersonEntities = Field(default_factory=PersonEntities)
    documento: DocumentEntities = Field(default_factory=DocumentEntities)
    contato: ContactEntities = Field(default_factory=ContactEntities)
    especialidade: List[str] = Field(default_factory=list)
    temporal: TemporalEntities = Field(default_factory=TemporalEntities)
    sintoma: List[str] = Field(default_factory=list)
    urgencia: UrgencyEntities = Field(default_factory=UrgencyEntities)
    preferencias: PreferenceEntities = Field(default_factory=PreferenceEntities)
    agendamento_existente: ExistingAppointmentEntities = Field(
        default_factory=ExistingAppointmentEntities, alias="agendamentoExistente"
    )
    convenio: Optional[str] = None

    @field_validator("especialidade", "sintoma", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(v) for v in value if is_filled_value(v)]

    def flatten(self) -> Dict[str, Any]:
        """Dotted-path view of every filled entity, e.g. ``{"contato.telefone": "..."}``."""
        flat: Dict[str, Any] = {}
        for key, value in self.model_dump(by_alias=True).items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    if is_filled_value(sub_value) and sub_value is not False:
                        flat[f"{key}.{sub_key}"] = sub_value
            elif is_filled_value(value):
                flat[key] = value
        return flat

    def group_count(self) -> int:
        """Number of top-level categories carrying at least one value."""
        return len({path.split(".")[0] for path in self.flatten()})

    def is_empty(self) -> bool:
        return not self.flatten()

    def compact(self) -> Dict[str, Any]:
        """Nested dump without empty values, for prompts and history."""
        result: Dict[str, Any] = {}
        for path, value in self.flatten().items():
            if "." in path:
                group, key = path.split(".", 1)
                result.setdefault(group, {})[key] = value
            else:
                result[path] = value
        return result


class NLPResult(BaseModel):
    """Outcome of running a message through the NLP pipeline."""

    model_config = ConfigDict(extra="forbid")

    intent: Intent = Intent.UNKNOWN
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    original_text: str = ""
    processed_at: datetime = Field(default_factory=utcnow)
    used_fallback: bool = False


class SentimentResult(BaseModel):
    """Keyword sentiment of a message."""

    model_config = ConfigDict(extra="forbid")

    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = 0.5
