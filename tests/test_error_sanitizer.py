"""Tests for client-facing error sanitization"""

from __future__ import annotations

from nexticket.utils.error_sanitizer import (
    GENERIC_MESSAGES,
    get_safe_error_detail,
    sanitize_error_message,
)


def test_plain_client_error_passes_through():
    assert sanitize_error_message("Credenciais inválidas.", 401) == "Credenciais inválidas."


def test_store_rejection_passes_through_on_502():
    message = "Erro ao atualizar: permission denied"
    assert sanitize_error_message(message, 502) == message


def test_postgrest_internals_are_hidden():
    message = 'PGRST116: relation "public.tickets" does not exist'
    assert sanitize_error_message(message, 502) == GENERIC_MESSAGES[502]


def test_tokens_and_paths_are_hidden():
    assert sanitize_error_message("Bearer eyJhbGciOi.abc.def", 401) == GENERIC_MESSAGES[401]
    assert (
        sanitize_error_message("failed in /srv/app/nexticket/sync/synchronizer.py", 400)
        == GENERIC_MESSAGES[400]
    )


def test_server_errors_are_generic():
    assert sanitize_error_message("division by zero", 500) == GENERIC_MESSAGES[500]


def test_structured_or_long_messages_are_generic():
    assert sanitize_error_message("bad {json}", 400) == GENERIC_MESSAGES[400]
    assert sanitize_error_message("x " * 100, 400) == GENERIC_MESSAGES[400]


def test_empty_message_uses_generic():
    assert sanitize_error_message("", 404) == GENERIC_MESSAGES[404]


def test_safe_detail_prefers_context_for_5xx():
    error = RuntimeError("connection reset by peer")

    assert get_safe_error_detail(error, 503, context="Tente novamente") == "Tente novamente"
    assert get_safe_error_detail(error, 409) == "connection reset by peer"
