"""
Read-only clinic knowledge base.
"""

from typing import Dict, List, Optional, Sequence

from ..core.models import (
    ClinicPolicy,
    EmergencyProtocol,
    FAQEntry,
    KnowledgeDocument,
    MedicalSpecialty,
)
from ..utils.text import TextProcessor
from . import data


class KnowledgeBase:
    """Specialties, FAQs, emergency protocols and policies keyed by id."""

    def __init__(
        self,
        specialties: Sequence[MedicalSpecialty],
        faqs: Sequence[FAQEntry],
        emergency_protocols: Sequence[EmergencyProtocol],
        policies: Sequence[ClinicPolicy],
        emergency_info: str = "",
    ) -> None:
        self._specialties: Dict[str, MedicalSpecialty] = {s.id: s for s in specialties}
        self._faqs: Dict[str, FAQEntry] = {f.id: f for f in faqs}
        self._protocols: Dict[str, EmergencyProtocol] = {p.id: p for p in emergency_protocols}
        self._policies: Dict[str, ClinicPolicy] = {p.id: p for p in policies}
        self._emergency_info = emergency_info

    @property
    def specialties(self) -> Dict[str, MedicalSpecialty]:
        return dict(self._specialties)

    @property
    def emergency_protocols(self) -> Dict[str, EmergencyProtocol]:
        return dict(self._protocols)

    def find_specialty(self, query: str) -> Optional[MedicalSpecialty]:
        """Match a specialty by id, name, keyword or common symptom mentioned in query."""
        needle = TextProcessor.normalize(query)
        if not needle:
            return None

        for specialty in self._specialties.values():
            name = TextProcessor.normalize(specialty.name)
            if needle == specialty.id or name in needle or (len(needle) >= 4 and needle in name):
                return specialty

        for specialty in self._specialties.values():
            terms = specialty.keywords + specialty.common_symptoms
            if any(TextProcessor.normalize(term) in needle for term in terms):
                return specialty
        return None

    def find_faqs(self, query: str, limit: int = 3) -> List[FAQEntry]:
        needle = TextProcessor.normalize(query)
        if not needle:
            return []

        relevant = [
            faq for faq in self._faqs.values()
            if any(TextProcessor.normalize(k) in needle for k in faq.keywords)
            or needle in TextProcessor.normalize(faq.question)
            or needle in TextProcessor.normalize(faq.answer)
        ]
        return relevant[:limit]

    def check_emergency(self, symptoms: Sequence[str]) -> Optional[EmergencyProtocol]:
        """
        Match reported symptoms against the emergency protocols.

        A protocol matches when any of its symptoms contains a reported
        symptom or is contained in one (case and accent insensitive). When
        several protocols match, the most urgent wins; ties keep table order.
        """
        reported = [TextProcessor.normalize(s) for s in symptoms if s]
        reported = [s for s in reported if s]
        if not reported:
            return None

        matches = []
        for protocol in self._protocols.values():
            for protocol_symptom in protocol.symptoms:
                expected = TextProcessor.normalize(protocol_symptom)
                if any(expected in user or user in expected for user in reported):
                    matches.append(protocol)
                    break

        if not matches:
            return None
        return min(matches, key=lambda p: p.urgency_level.rank)

    def get_policy(self, topic: str) -> Optional[ClinicPolicy]:
        needle = TextProcessor.normalize(topic)
        if not needle:
            return None

        for policy in self._policies.values():
            scenarios = [TextProcessor.normalize(s) for s in policy.applicable_scenarios]
            if any(s in needle for s in scenarios) or needle in TextProcessor.normalize(policy.topic):
                return policy
        return None

    def get_all_specialties(self) -> List[MedicalSpecialty]:
        return list(self._specialties.values())

    def get_faqs_by_category(self, category: Optional[str] = None) -> List[FAQEntry]:
        if not category:
            return list(self._faqs.values())
        return [faq for faq in self._faqs.values() if faq.category == category]

    def get_emergency_info(self) -> str:
        return self._emergency_info

    def known_symptoms(self) -> List[str]:
        """Every symptom phrase known to protocols and specialties, longest first."""
        phrases = set()
        for protocol in self._protocols.values():
            phrases.update(protocol.symptoms)
        for specialty in self._specialties.values():
            phrases.update(specialty.common_symptoms)
            phrases.update(specialty.urgency_indicators)
        return sorted(phrases, key=len, reverse=True)

    def to_documents(self) -> List[KnowledgeDocument]:
        """Render every entry as a document for the semantic store."""
        documents = []

        for s in self._specialties.values():
            documents.append(KnowledgeDocument(
                id=f"specialty_{s.id}",
                content=(
                    f"{s.name}: {s.description} Sintomas comuns: {', '.join(s.common_symptoms)}. "
                    f"Procedimentos: {', '.join(s.common_procedures)}."
                ),
                metadata={"type": "knowledge", "source": "medical_specialty", "specialty": s.id},
            ))

        for faq in self._faqs.values():
            documents.append(KnowledgeDocument(
                id=f"faq_{faq.id}",
                content=f"Pergunta: {faq.question} Resposta: {faq.answer}",
                metadata={"type": "faq", "source": "clinic_faq", "category": faq.category},
            ))

        for p in self._protocols.values():
            documents.append(KnowledgeDocument(
                id=f"emergency_{p.id}",
                content=(
                    f"Sintomas de emergência: {', '.join(p.symptoms)}. Nível: {p.urgency_level.value}. "
                    f"Resposta: {p.response} Ações: {', '.join(p.actions)}."
                ),
                metadata={"type": "knowledge", "source": "emergency_protocol", "urgency": p.urgency_level.value},
            ))

        for policy in self._policies.values():
            documents.append(KnowledgeDocument(
                id=f"policy_{policy.id}",
                content=f"{policy.topic}: {policy.policy}",
                metadata={"type": "knowledge", "source": "clinic_policy", "topic": policy.topic},
            ))

        return documents


def load_knowledge_base() -> KnowledgeBase:
    """Build the knowledge base from the bundled tables."""
    return KnowledgeBase(
        specialties=[MedicalSpecialty(**item) for item in data.SPECIALTIES],
        faqs=[FAQEntry(**item) for item in data.FAQS],
        emergency_protocols=[EmergencyProtocol(**item) for item in data.EMERGENCY_PROTOCOLS],
        policies=[ClinicPolicy(**item) for item in data.CLINIC_POLICIES],
        emergency_info=data.EMERGENCY_INFO,
    )
