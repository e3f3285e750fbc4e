"""
Knowledge base entry models.
"""

from typing import Dict, List, Literal
from pydantic import BaseModel, ConfigDict, Field

from ..enums import UrgencyLevel


FAQCategory = Literal["appointment", "insurance", "emergency", "general", "policy"]


class MedicalSpecialty(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str
    common_symptoms: List[str] = Field(default_factory=list)
    common_procedures: List[str] = Field(default_factory=list)
    duration: int = 30
    keywords: List[str] = Field(default_factory=list)
    urgency_indicators: List[str] = Field(default_factory=list)


class FAQEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    question: str
    answer: str
    category: FAQCategory
    keywords: List[str] = Field(default_factory=list)


class EmergencyProtocol(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    symptoms: List[str]
    urgency_level: UrgencyLevel
    response: str
    actions: List[str]


class ClinicPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    topic: str
    policy: str
    applicable_scenarios: List[str] = Field(default_factory=list)


class KnowledgeDocument(BaseModel):
    """Document loaded into the semantic store."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    content: str
    metadata: Dict[str, str] = Field(default_factory=dict)
