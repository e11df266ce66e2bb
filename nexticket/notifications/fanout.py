"""
Notification dispatcher.

Turns rule output into notification rows. Direct notifications are inserted
one row each; role broadcasts look up every ACTIVE user with the role and
insert one batch. Dispatch is best-effort: failures are logged and counted,
never raised, so a confirmed record write is never undone by a lost alert.
"""

from __future__ import annotations

from collections.abc import Iterable

from nexticket.config import NOTIFICATIONS_TABLE, USERS_TABLE
from nexticket.infrastructure.store import RemoteStore
from nexticket.notifications.rules import Outgoing
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, log_event
from nexticket.records.models import Role, UserStatus
from nexticket.utils.redaction import redact

logger = get_logger(__name__)


def notification_row(recipient_email: str, record_id: str, message: str) -> dict:
    return {
        "recipient_email": recipient_email,
        "ticket_id": record_id,
        "message": message,
        "read": False,
    }


class NotificationDispatcher:
    """Writes notification rows for rule output."""

    def __init__(self, store: RemoteStore):
        self.store = store

    async def dispatch(self, outgoing: Iterable[Outgoing]) -> int:
        """Send every notification; returns the number of rows written."""
        sent = 0
        for item in outgoing:
            if item.is_broadcast:
                sent += await self.send_to_role(
                    item.role, item.record_id, item.message, exclude_email=item.exclude_email
                )
            else:
                sent += await self.send(item.recipient_email, item.record_id, item.message)
        return sent

    async def send(self, recipient_email: str, record_id: str, message: str) -> int:
        result = await self.store.insert(
            NOTIFICATIONS_TABLE, notification_row(recipient_email, record_id, message)
        )
        if not result.ok:
            counter("notifications.send_failed")
            logger.error(
                "Failed to send notification to %s for %s: %s",
                redact(recipient_email),
                record_id,
                result.error,
            )
            return 0

        counter("notifications.sent")
        return 1

    async def send_to_role(
        self,
        role: Role | str,
        record_id: str,
        message: str,
        exclude_email: str | None = None,
    ) -> int:
        role_value = role.value if isinstance(role, Role) else role
        users = await self.store.select(
            USERS_TABLE,
            columns="email",
            filters={"role": role_value, "status": UserStatus.ACTIVE.value},
        )
        if not users.ok:
            counter("notifications.role_lookup_failed")
            logger.error("Failed to look up %s users for %s: %s", role_value, record_id, users.error)
            return 0

        recipients = [u["email"] for u in users.rows if u.get("email") != exclude_email]
        if not recipients:
            return 0

        result = await self.store.insert(
            NOTIFICATIONS_TABLE,
            [notification_row(email, record_id, message) for email in recipients],
        )
        if not result.ok:
            counter("notifications.broadcast_failed")
            logger.error("Failed to send group notification for %s: %s", record_id, result.error)
            return 0

        counter("notifications.sent", len(recipients))
        log_event("notifications.broadcast", role=role_value, recipients=len(recipients))
        return len(recipients)
