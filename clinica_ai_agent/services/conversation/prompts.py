"""
Reply prompts used by the conversation manager.
"""

import json
from typing import List, Optional

from ...core.enums import Intent
from ...core.models import FlowResult, NLPResult, SemanticContext


BASE_SYSTEM_PROMPT = (
    "Você é um assistente especializado em agendamento médico da clínica.\n"
    "Seu objetivo é ajudar pacientes de forma eficiente e amigável.\n"
    "Seja sempre cordial, profissional e preciso. Responda sempre em português do Brasil."
)

INTENT_SYSTEM_PROMPTS = {
    Intent.SCHEDULE_APPOINTMENT: (
        "FOCO: Ajudar a agendar nova consulta médica\n"
        "COLETA NECESSÁRIA: nome, telefone, especialidade, preferência de data/horário\n"
        "PROCESSO: Colete informações gradualmente, confirme dados, apresente opções disponíveis"
    ),
    Intent.RESCHEDULE_APPOINTMENT: (
        "FOCO: Remarcar consulta existente\n"
        "COLETA NECESSÁRIA: dados do paciente, identificação da consulta atual\n"
        "PROCESSO: Identifique consulta, confirme nova data/horário, processe alteração"
    ),
    Intent.CANCEL_APPOINTMENT: (
        "FOCO: Cancelar consulta existente\n"
        "COLETA NECESSÁRIA: dados do paciente, identificação da consulta\n"
        "PROCESSO: Identifique consulta, confirme cancelamento, explique política"
    ),
    Intent.CHECK_APPOINTMENT: (
        "FOCO: Informar as consultas agendadas do paciente\n"
        "COLETA NECESSÁRIA: nome completo ou telefone do paciente"
    ),
    Intent.EMERGENCY: (
        "FOCO: Avaliar situação de emergência\n"
        "PRIORIDADE: Segurança do paciente\n"
        "PROCESSO: Avalie urgência, colete sintomas, direcione para atendimento adequado"
    ),
    Intent.GENERAL_INFORMATION: (
        "FOCO: Fornecer informações sobre a clínica\n"
        "ÁREAS: especialidades, horários, convênios, localização, procedimentos"
    ),
}

STYLE_RULES = (
    "RESPONDA DE FORMA:\n"
    "1. Natural e conversacional\n"
    "2. Profissional mas amigável\n"
    "3. Focada em resolver o problema do usuário\n"
    "4. Solicitando informações faltantes quando necessário"
)

ERROR_REPLY = "Desculpe, ocorreu um erro ao processar sua mensagem. Pode tentar novamente?"
FALLBACK_REPLY = (
    "Desculpe, estou com dificuldade para responder agora. "
    "Pode reformular sua mensagem ou tentar novamente em instantes?"
)


def system_prompt_for(intent: Intent) -> str:
    focus = INTENT_SYSTEM_PROMPTS.get(intent)
    return f"{BASE_SYSTEM_PROMPT}\n\n{focus}" if focus else BASE_SYSTEM_PROMPT


def build_prompt(
    summary: str,
    nlp_result: NLPResult,
    semantic: SemanticContext,
    missing_slots: List[str],
    flow_result: Optional[FlowResult] = None,
) -> str:
    """Assemble the structured reply prompt for one turn."""
    sections = ["CONTEXTO DA CONVERSA:", summary]

    if semantic.relevant_knowledge:
        sections.append("\nCONHECIMENTO RELEVANTE:")
        sections.extend(f"- {item.content}" for item in semantic.relevant_knowledge)

    if semantic.recent_history:
        sections.append("\nHISTÓRICO RECENTE:")
        # stored newest first; show the three latest in reading order
        for item in reversed(semantic.recent_history[:3]):
            sections.append(f"- {item.content[:150]}")

    if semantic.similar_conversations:
        sections.append("\nCONVERSAS SEMELHANTES:")
        sections.extend(f"- {item.content[:150]}" for item in semantic.similar_conversations)

    sections.append("\nPROCESSAMENTO NLP:")
    sections.append(f"Intent detectado: {nlp_result.intent.value}")
    sections.append(f"Confiança: {nlp_result.confidence}")
    entities = nlp_result.entities.compact()
    if entities:
        sections.append("Entidades extraídas:")
        for key, value in entities.items():
            sections.append(f"- {key}: {json.dumps(value, ensure_ascii=False)}")

    if missing_slots:
        sections.append(f"\nINFORMAÇÕES AINDA NECESSÁRIAS: {', '.join(missing_slots)}")

    if flow_result is not None:
        sections.append("\nORIENTAÇÃO DO FLUXO (transmita esta mensagem ao usuário):")
        sections.append(flow_result.message)

    sections.append("\nMENSAGEM ATUAL DO USUÁRIO:")
    sections.append(nlp_result.original_text)
    sections.append(f"\n{STYLE_RULES}")

    return "\n".join(sections)
