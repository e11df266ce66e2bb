"""
Notification inbox for the logged-in user.

Lists the user's notifications newest first and applies read/delete
optimistically. A failed write is logged and the inbox reloads from the
store so the local list matches remote state again.
"""

from __future__ import annotations

from collections.abc import Callable

from pydantic import ValidationError

from nexticket.config import NOTIFICATIONS_TABLE
from nexticket.errors import RecordNotFoundError
from nexticket.infrastructure.store import Order, RemoteStore
from nexticket.notifications.messages import render
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter
from nexticket.records.models import Notification, Record
from nexticket.session.context import AppContext

logger = get_logger(__name__)

RecordLookup = Callable[[str], Record | None]


class NotificationInbox:
    def __init__(self, store: RemoteStore, context: AppContext, lookup: RecordLookup):
        self.store = store
        self.context = context
        self._lookup = lookup
        self.notifications: list[Notification] = []

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    async def load(self) -> list[Notification]:
        """Fetch the session user's notifications. Failure keeps the current list."""
        result = await self.store.select(
            NOTIFICATIONS_TABLE,
            filters={"recipient_email": self.context.user.email},
            order=Order("created_at", ascending=False),
        )
        if not result.ok:
            counter("inbox.load_failed")
            logger.error("Error fetching notifications: %s", result.error)
            return self.notifications

        loaded: list[Notification] = []
        for row in result.rows:
            try:
                loaded.append(Notification.from_db_row(row))
            except (KeyError, ValidationError) as e:
                counter("inbox.bad_row")
                logger.warning("Skipping malformed notification row %s: %s", row.get("id"), e)
        self.notifications = loaded
        return self.notifications

    async def mark_read(self, notification_id: str) -> None:
        self.notifications = [
            n.model_copy(update={"read": True}) if n.id == notification_id else n
            for n in self.notifications
        ]
        result = await self.store.update(
            NOTIFICATIONS_TABLE, {"read": True}, filters={"id": notification_id}
        )
        if not result.ok:
            counter("inbox.mark_read_failed")
            logger.error("Failed to mark notification %s read: %s", notification_id, result.error)
            await self.load()

    async def delete(self, notification_id: str) -> None:
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        result = await self.store.delete(NOTIFICATIONS_TABLE, filters={"id": notification_id})
        if not result.ok:
            counter("inbox.delete_failed")
            logger.error("Failed to delete notification %s: %s", notification_id, result.error)
            await self.load()

    async def open_record(self, record_id: str) -> Record:
        """
        Open the record a notification points at.

        Marks the first notification for that record read if it is unread.

        Raises:
            RecordNotFoundError: record was deleted or is not visible
        """
        record = self._lookup(record_id)
        if record is None:
            raise RecordNotFoundError(render("record_gone"))

        self.context.open_detail(record)

        first = next((n for n in self.notifications if n.ticket_id == record_id), None)
        if first is not None and not first.read:
            await self.mark_read(first.id)
        return record

    def clear(self) -> None:
        self.notifications = []
