"""
Locale catalog for user-facing notification and alert texts.

pt-BR is the default deployment locale; en is available for English
deployments. Unknown locales fall back to pt-BR.
"""

from __future__ import annotations

import os

from nexticket.config import LOCALE

DEFAULT_LOCALE = "pt-BR"

MESSAGES: dict[str, dict[str, str]] = {
    "pt-BR": {
        "status_changed": "O status do seu chamado foi alterado para: {status}",
        "requester_message": "Nova interação de {requester} no chamado #{record_id}",
        "agent_reply": 'O suporte respondeu seu chamado: "{title}"',
        "record_created": 'Novo chamado criado por {requester}: "{title}"',
        "record_gone": "Este chamado não existe mais ou você não tem acesso.",
        "save_failed": "Erro ao salvar no banco de dados.",
        "update_failed": "Erro ao atualizar: {reason}",
        "delete_failed": "Erro ao excluir: {reason}",
        "upload_failed": "Erro no upload.",
        "message_not_found": "Mensagem não encontrada.",
        "variant_unsupported": "Operação não disponível para este tipo de registro.",
        "elevated_only": "Apenas a equipe de suporte pode realizar esta ação.",
        "login_invalid": "Credenciais inválidas.",
        "login_inactive": "Usuário inativo. Contate o administrador.",
        "login_unreachable": "Erro ao conectar ao servidor.",
        "password_required": "A senha é obrigatória para novos usuários.",
        "user_save_failed": "Erro ao salvar usuário: {reason}",
        "user_not_found": "Usuário não encontrado.",
    },
    "en": {
        "status_changed": "Your ticket status changed to: {status}",
        "requester_message": "New reply from {requester} on ticket #{record_id}",
        "agent_reply": 'Support replied to your ticket: "{title}"',
        "record_created": 'New ticket created by {requester}: "{title}"',
        "record_gone": "This ticket no longer exists or you do not have access.",
        "save_failed": "Failed to save to the database.",
        "update_failed": "Failed to update: {reason}",
        "delete_failed": "Failed to delete: {reason}",
        "upload_failed": "Upload failed.",
        "message_not_found": "Message not found.",
        "variant_unsupported": "Operation not available for this record type.",
        "elevated_only": "Only the support team can do this.",
        "login_invalid": "Invalid credentials.",
        "login_inactive": "Your account is inactive. Contact the administrator.",
        "login_unreachable": "Could not reach the server.",
        "password_required": "A password is required for new users.",
        "user_save_failed": "Failed to save user: {reason}",
        "user_not_found": "User not found.",
    },
}

STATUS_LABELS: dict[str, dict[str, str]] = {
    "pt-BR": {
        "OPEN": "Aberto",
        "IN_PROGRESS": "Em Andamento",
        "RESOLVED": "Resolvido",
        "CLOSED": "Fechado",
        "PENDING": "Pendente",
        "PAID": "Pago",
        "OVERDUE": "Vencido",
    },
    "en": {
        "OPEN": "Open",
        "IN_PROGRESS": "In Progress",
        "RESOLVED": "Resolved",
        "CLOSED": "Closed",
        "PENDING": "Pending",
        "PAID": "Paid",
        "OVERDUE": "Overdue",
    },
}


def current_locale() -> str:
    """Deployment locale, read fresh so tests and dotenv can override it."""
    locale = os.getenv("NEXTICKET_LOCALE") or LOCALE
    return locale if locale in MESSAGES else DEFAULT_LOCALE


def render(key: str, locale: str | None = None, **fields: object) -> str:
    """Render a catalog entry. Raises KeyError for an unknown key."""
    catalog = MESSAGES.get(locale or current_locale(), MESSAGES[DEFAULT_LOCALE])
    return catalog[key].format(**fields)


def status_label(status: str, locale: str | None = None) -> str:
    labels = STATUS_LABELS.get(locale or current_locale(), STATUS_LABELS[DEFAULT_LOCALE])
    return labels.get(status, status)
