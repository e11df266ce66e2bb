"""Centralized configuration for the NexTicket backend.

Re-exports everything from nexticket.infrastructure.settings so callers have
one import point, then adds typed constants for the store client, sessions,
the LLM, and the API. Environment variable overrides use safe defaults so the
app starts without extra env configuration.
"""

from __future__ import annotations

import os

from nexticket.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Remote store ---
STORE_TIMEOUT_SECONDS: float = float(os.getenv("NEXTICKET_STORE_TIMEOUT", "15"))

TICKETS_TABLE: str = "tickets"
BILLS_TABLE: str = "bills"
USERS_TABLE: str = "users"
NOTIFICATIONS_TABLE: str = "notifications"

TICKET_ATTACHMENTS_BUCKET: str = "ticket-attachments"
BILL_ATTACHMENTS_BUCKET: str = "bill-attachments"

# --- Records ---
TICKET_ID_PREFIX: str = "TK-"
TICKET_ID_LENGTH: int = 6
PROVISIONAL_ID_PREFIX: str = "local-"
ATTACHMENT_NAME_MAX_LEN: int = 120

# --- Sessions ---
SESSION_TTL_SECONDS: int = int(os.getenv("NEXTICKET_SESSION_TTL", "28800"))
SESSION_MAX_ENTRIES: int = 1000

# --- LLM ---
LLM_TITLE_MAX_CHARS: int = 200
LLM_BODY_MAX_CHARS: int = 2000

# --- API ---
API_UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
