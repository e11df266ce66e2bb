"""
Exception hierarchy for NexTicket.

Every domain failure derives from NexTicketError so the API layer can map
the whole family with one handler.
"""

from __future__ import annotations


class NexTicketError(Exception):
    """Base exception for NexTicket errors."""


class StoreError(NexTicketError):
    """Failure reported by (or while talking to) the remote store.

    Returned as a value inside StoreResult; only raised by callers that
    decide the failure must be surfaced.
    """

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SyncError(NexTicketError):
    """Base exception for synchronizer failures surfaced to the operator."""


class RemoteWriteError(SyncError):
    """Remote insert/update failed; local state was reconciled by reload."""

    def __init__(self, message: str, record_id: str, cause: StoreError | None = None):
        super().__init__(message)
        self.record_id = record_id
        self.cause = cause


class RemoteDeleteError(SyncError):
    """Remote delete failed; local state was left unchanged."""

    def __init__(self, message: str, record_id: str, cause: StoreError | None = None):
        super().__init__(message)
        self.record_id = record_id
        self.cause = cause


class RecordNotFoundError(SyncError):
    """Record is not in the session's visible collection."""


class PermissionDeniedError(NexTicketError):
    """Actor's role does not allow the operation."""


class AuthenticationError(NexTicketError):
    """Base exception for login failures."""


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password."""


class InactiveUserError(AuthenticationError):
    """Credentials are valid but the account is INACTIVE."""


class UserDirectoryError(NexTicketError):
    """User administration write failed."""


class UnsupportedOperationError(NexTicketError):
    """Operation does not apply to the active variant (e.g. messages on a bill)."""
