"""
User-facing flow messages (Brazilian Portuguese).
"""

from typing import Iterable, Sequence

from ...core.models import Appointment, AppointmentData, AppointmentSlot, EmergencyProtocol
from ...utils.date import DateParser
from ...utils.phone import PhoneNumberParser


COLLECT_BASIC_INFO = (
    "Para agendar sua consulta, preciso de algumas informações básicas. "
    "Pode me informar seu nome completo e telefone para contato?"
)
COLLECT_NAME = "Perfeito! Agora preciso do seu nome completo."
COLLECT_PHONE = "Ótimo! E qual seu telefone para contato?"
COLLECT_TIME_PREFERENCES = (
    "Perfeito! Agora me diga quando você gostaria de agendar. Tem alguma preferência de "
    'data e horário? Por exemplo: "próxima semana de manhã" ou "quinta-feira à tarde".'
)
NO_AVAILABILITY = (
    "Infelizmente não temos disponibilidade exatamente no período que você solicitou. "
    "Pode me sugerir outras opções de data e horário? Ou posso verificar a próxima semana."
)
SLOT_TAKEN = "Poxa, esse horário acabou de ser ocupado. "
SCHEDULING_ERROR = "Ocorreu um erro no processo de agendamento. Vamos tentar novamente."
BOOKING_ERROR = (
    "Ocorreu um erro ao agendar sua consulta. Nossa equipe foi notificada. "
    "Tente novamente ou entre em contato pelo telefone."
)
UNRECOGNIZED_SCHEDULING_STATE = "Estado do fluxo não reconhecido. Vamos recomeçar o agendamento."

IDENTIFY_FOR_RESCHEDULE = (
    "Para reagendar, preciso identificar sua consulta atual. Pode me informar seu nome "
    "completo e a data da consulta que deseja alterar?"
)
IDENTIFY_FOR_CANCEL = (
    "Para cancelar sua consulta, preciso de seus dados. Qual seu nome completo e quando "
    "é a consulta que deseja cancelar?"
)
IDENTIFY_FOR_CHECK = "Para verificar suas consultas, me informe seu nome completo ou telefone."
VERIFY_PATIENT_DATA = (
    "Não encontrei consultas agendadas com esses dados. Pode verificar o nome ou "
    "telefone informados?"
)
COLLECT_NEW_TIME = "Para qual data e horário você gostaria de reagendar?"
NO_NEW_AVAILABILITY = (
    "Não encontrei horários livres com o mesmo médico nesse período. "
    "Pode me sugerir outra data ou período?"
)
RESCHEDULING_ERROR = "Erro ao reagendar consulta. Tente novamente."
UNRECOGNIZED_RESCHEDULING_STATE = "Problema no fluxo de reagendamento. Vamos recomeçar."
CANCELLATION_ERROR = "Erro ao cancelar consulta. Tente novamente."
UNRECOGNIZED_CANCELLATION_STATE = "Problema no cancelamento. Vamos tentar novamente."
CANCELLATION_ABORTED = "Tudo bem! Sua consulta foi mantida. Posso ajudar em algo mais?"
CHECK_ERROR = "Erro ao buscar consultas. Tente novamente."
DEFAULT_CANCELLATION_POLICY = "Cancelamentos devem ser feitos com 24h de antecedência."

EMERGENCY_FALLBACK = (
    "Em caso de emergência real, procure atendimento médico imediato ou chame o SAMU (192)."
)
SCHEDULE_URGENT = (
    "Entendo sua preocupação. Vou tentar agendar uma consulta urgente para você.\n\n"
    "Com base nos sintomas que descreveu, recomendo uma avaliação médica o mais breve possível.\n\n"
    "Pode me informar seu nome completo e telefone para que eu possa verificar a "
    "disponibilidade mais próxima?"
)

BOOKING_REMINDERS = (
    "Lembretes importantes:\n"
    "• Chegue 15 minutos antes do horário\n"
    "• Traga documento com foto e cartão do convênio\n"
    "• Em caso de cancelamento, avise com 24h de antecedência"
)


def _bullets(items: Iterable[str]) -> str:
    return "\n".join(f"• {item}" for item in items)


def collect_specialty(specialty_names: Sequence[str]) -> str:
    return (
        "Agora preciso saber qual especialidade médica você precisa. Temos as seguintes "
        f"disponíveis:\n\n{_bullets(specialty_names)}\n\nQual especialidade você gostaria de agendar?"
    )


def slot_options(slots: Sequence[AppointmentSlot], prefix: str = "") -> str:
    lines = "\n".join(
        f"{i}. {slot.doctor_name} - {DateParser.format_for_display(slot.date)} às {slot.time}"
        for i, slot in enumerate(slots, start=1)
    )
    return (
        f"{prefix}Encontrei algumas opções para você:\n\n{lines}\n\n"
        "Qual dessas opções você prefere? Digite o número da sua escolha."
    )


def confirm_details(data: AppointmentData, doctor_name: str = "") -> str:
    doctor_line = f"Médico: {doctor_name}\n" if doctor_name else ""
    return (
        "Por favor, confirme os dados da sua consulta:\n\n"
        f"Nome: {data.patient_name}\n"
        f"Telefone: {PhoneNumberParser.format_for_display(data.patient_phone)}\n"
        f"Especialidade: {data.specialty}\n"
        f"{doctor_line}"
        f"Data e horário: {DateParser.format_for_display(data.preferred_date)} às {data.preferred_time}\n\n"
        'Está tudo correto? Digite "sim" para confirmar ou me diga o que precisa alterar.'
    )


def booking_success(appointment: Appointment) -> str:
    return (
        "[SUCESSO] Consulta agendada com sucesso!\n\n"
        "Detalhes:\n"
        f"• Paciente: {appointment.patient_name}\n"
        f"• Médico: {appointment.doctor_name}\n"
        f"• Especialidade: {appointment.specialty_name}\n"
        f"• Data: {appointment.date_display}\n"
        f"• Horário: {appointment.time_display}\n\n"
        f"{BOOKING_REMINDERS}\n\n"
        "Você receberá uma confirmação por SMS/WhatsApp em breve."
    )


def appointment_details(appointment: Appointment) -> str:
    return (
        f"Paciente: {appointment.patient_name}\n"
        f"Especialidade: {appointment.specialty_name} - {appointment.doctor_name}\n"
        f"Data: {appointment.date_display} às {appointment.time_display}"
    )


def appointment_found_for_reschedule(appointment: Appointment) -> str:
    return f"Encontrei sua consulta:\n\n{appointment_details(appointment)}\n\n{COLLECT_NEW_TIME}"


def appointment_list(appointments: Sequence[Appointment]) -> str:
    return "\n".join(
        f"{i}. {apt.specialty_name} - {apt.doctor_name} - {apt.date_display} às {apt.time_display}"
        for i, apt in enumerate(appointments, start=1)
    )


def select_appointment(appointments: Sequence[Appointment], action: str) -> str:
    return (
        f"Encontrei várias consultas agendadas:\n\n{appointment_list(appointments)}\n\n"
        f"Digite o número da consulta que deseja {action}."
    )


def upcoming_appointments(appointments: Sequence[Appointment]) -> str:
    if len(appointments) == 1:
        return f"Você tem uma consulta agendada:\n\n{appointment_details(appointments[0])}"
    return f"Suas próximas consultas:\n\n{appointment_list(appointments)}"


def rescheduled(appointment: Appointment) -> str:
    return (
        "[SUCESSO] Consulta reagendada com sucesso!\n\n"
        f"{appointment_details(appointment)}\n\n"
        "Você receberá uma confirmação por SMS/WhatsApp em breve."
    )


def confirm_cancellation(appointment: Appointment, policy: str) -> str:
    return (
        f"Encontrei sua consulta:\n\n{appointment_details(appointment)}\n\n"
        f"Sobre nossa política de cancelamento:\n\n{policy}\n\n"
        'Você confirma o cancelamento da sua consulta? Responda "sim" ou "não".'
    )


def cancelled(appointment: Appointment) -> str:
    return (
        "Consulta cancelada com sucesso!\n\n"
        f"{appointment_details(appointment)}\n\n"
        "Você receberá uma confirmação por SMS. Se precisar, posso ajudar a agendar uma nova consulta."
    )


def emergency(protocol: EmergencyProtocol) -> str:
    return (
        "[EMERGÊNCIA] SITUAÇÃO DE EMERGÊNCIA IDENTIFICADA\n\n"
        f"{protocol.response}\n\n"
        f"AÇÕES RECOMENDADAS:\n{_bullets(protocol.actions)}\n\n"
        "[URGENTE] Se a situação for grave, não hesite em chamar o SAMU (192) imediatamente.\n\n"
        "Nossa clínica também tem plantão 24h disponível."
    )
