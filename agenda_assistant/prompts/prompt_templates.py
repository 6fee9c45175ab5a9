"""Extraction prompt construction and user-facing reply text."""

import json
from datetime import date
from typing import Any, Optional

WEEKDAYS_PT = [
    "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
    "sexta-feira", "sábado", "domingo",
]

FIELD_DISPLAY_NAMES: dict[str, str] = {
    "title": "título",
    "date": "data",
    "time": "hora",
    "guests": "convidados",
}

GREETING_REPLY = (
    "Olá! Sou seu assistente de agenda. Diga o que você quer agendar "
    "(título, data, hora e convidados) ou peça para salvar um contato."
)
UNRELATED_REPLY = (
    "Posso ajudar apenas com agendamentos de reuniões e com sua lista de contatos. "
    "O que você gostaria de agendar?"
)
UNKNOWN_INTENT_REPLY = "Não consegui entender sua mensagem. Pode reformular?"
RETRY_REPLY = (
    "Tive um problema para processar seu pedido. Vamos tentar de novo. "
    "O que você gostaria de agendar?"
)
DIRECTORY_APOLOGY_REPLY = (
    "Desculpe, não consegui acessar sua lista de contatos agora. "
    "Tente novamente em instantes."
)
CONTACT_CLARIFICATION_REPLY = (
    "Para salvar um contato preciso do nome e de um e-mail válido. "
    "Exemplo: salvar contato Vini vini@exemplo.com"
)


def build_extraction_prompt(
    message: str, context: Optional[dict[str, Any]], today: date
) -> str:
    """Build the user prompt sent to the extraction model for one turn."""
    parts = [f"Hoje é {WEEKDAYS_PT[today.weekday()]}, {today.isoformat()}."]
    if context:
        parts.append(
            "O usuário já forneceu algumas informações para um agendamento. "
            f"O rascunho atual é: {json.dumps(context, ensure_ascii=False)}. "
            "A nova mensagem dele provavelmente é uma continuação disso."
        )
    parts.append(f'Mensagem do usuário: "{message}"')
    parts.append("JSON de resposta:")
    return "\n".join(parts)


def build_missing_fields_reply(missing: list[str]) -> str:
    """Ask for the missing fields in their fixed order."""
    names = [FIELD_DISPLAY_NAMES.get(name, name) for name in missing]
    return f"Entendido! Para continuar, preciso que me informe: {', '.join(names)}."


def build_unresolved_guests_notice(unresolved: list[str], dropped: bool) -> str:
    """Tell the user which guest names were not found in the directory."""
    names = ", ".join(unresolved)
    if dropped:
        return (
            f"Atenção: não encontrei {names} na sua lista de contatos, "
            "então não serão convidados."
        )
    return (
        f"Não encontrei {names} na sua lista de contatos. "
        "Informe o e-mail ou salve o contato antes de continuar."
    )


def build_event_confirmation(title: str, link: str) -> str:
    reply = f'✅ Reunião "{title}" agendada com sucesso!'
    if link:
        reply += f" Link: {link}"
    return reply


def build_event_failure(detail: str) -> str:
    return (
        "❌ Ops! Algo deu errado ao criar o evento no calendário. "
        f"Detalhe: {detail}. Seu rascunho foi mantido: "
        'responda "tentar de novo" para repetir.'
    )


def build_event_description(guests: list[str]) -> str:
    return f"Reunião agendada via WhatsApp. Convidado(s): {', '.join(guests)}"


def build_contact_saved_reply(name: str, email: str) -> str:
    return f'Contato "{name}" salvo com o e-mail {email}.'


def build_duplicate_contact_reply(email: str, existing_name: str) -> str:
    owner = f' ao contato "{existing_name}"' if existing_name else " a outro contato"
    return (
        f"O e-mail {email} já pertence{owner}. "
        "O cadastro existente foi mantido."
    )
