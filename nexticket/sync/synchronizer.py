"""
Entity Synchronizer - the session's in-memory record collection.

Mutations are optimistic: the local collection (and the open detail record)
changes first, then the remote store is written. On success the change is
confirmed and the notification rule runs; on failure the entry is reverted
to its last confirmed snapshot, the collection is reloaded from the store,
and the error is raised to the caller.

Stale responses are resolved with sequence tokens:
- a load whose response arrives after a newer load was issued is discarded
- a load never overwrites an entry written after the load was issued, nor
  brings back a record deleted after it was issued
- a failed write reverts its entry only if no newer write was issued for it
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import uuid
from collections.abc import Awaitable, Callable
from datetime import date

from pydantic import ValidationError

from nexticket.analysis.classifier import BillAdvisor, TicketClassifier
from nexticket.attachments.service import AttachmentUploader
from nexticket.errors import (
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteDeleteError,
    RemoteWriteError,
    StoreError,
    UnsupportedOperationError,
)
from nexticket.infrastructure.store import RemoteStore
from nexticket.notifications.fanout import NotificationDispatcher
from nexticket.notifications.inbox import NotificationInbox
from nexticket.notifications.messages import render
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, log_event
from nexticket.records.filters import visible_records
from nexticket.records.models import (
    Bill,
    BillStatus,
    FinanceAnalysis,
    Message,
    Record,
    SenderTag,
    TicketAnalysis,
    User,
    utc_now,
)
from nexticket.records.variants import TICKETS, RecordVariant
from nexticket.session.context import AppContext, ViewState
from nexticket.sync.state import Entry, EntryState, RecordCollection

logger = get_logger(__name__)

ConfirmCallback = Callable[[Record], bool | Awaitable[bool]]


def _write_error(result_error: StoreError | None, what: str) -> StoreError:
    """Failure for a write that errored or silently touched zero rows."""
    return result_error or StoreError(f"{what} affected no rows", code="no_rows")


class EntitySynchronizer:
    """
    Optimistic synchronizer for one session.

    One logical mutator per session: operations are awaited one after
    another, and the only suspension points are the remote store calls.
    """

    def __init__(
        self,
        store: RemoteStore,
        context: AppContext,
        variant: RecordVariant = TICKETS,
        dispatcher: NotificationDispatcher | None = None,
        analyzer: TicketClassifier | BillAdvisor | None = None,
        uploader: AttachmentUploader | None = None,
    ):
        self.store = store
        self.context = context
        self.variant = variant
        self.dispatcher = dispatcher or NotificationDispatcher(store)
        self.analyzer = analyzer or (
            TicketClassifier() if variant.name == TICKETS.name else BillAdvisor()
        )
        self.uploader = uploader or AttachmentUploader(store, variant.bucket)
        self.inbox: NotificationInbox | None = (
            NotificationInbox(store, context, self.get) if variant.has_inbox else None
        )

        self.collection = RecordCollection()
        self.loading = False
        self._tokens = itertools.count(1)
        self._last_token = 0
        self._load_seq = 0
        # record id -> token of a delete issued for it
        self._deleted: dict[str, int] = {}
        self._background: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def actor(self) -> User:
        return self.context.user

    def records(self) -> list[Record]:
        """Records visible to the session user, head first."""
        return visible_records(self.collection.records(), self.actor, self.variant)

    def get(self, record_id: str) -> Record | None:
        entry = self.collection.get(record_id)
        if entry is None or not self.variant.is_visible(entry.record, self.actor):
            return None
        return entry.record

    def entry_state(self, record_id: str) -> EntryState | None:
        entry = self.collection.get(record_id)
        return entry.state if entry else None

    def _require(self, record_id: str) -> Entry:
        entry = self.collection.get(record_id)
        if entry is None or not self.variant.is_visible(entry.record, self.actor):
            raise RecordNotFoundError(render("record_gone"))
        return entry

    def open(self, record_id: str) -> Record:
        """Open a record in the detail view."""
        record = self._require(record_id).record
        self.context.open_detail(record)
        return record

    def _next_token(self) -> int:
        self._last_token = next(self._tokens)
        return self._last_token

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    async def load(self) -> list[Record]:
        """
        Fetch every record in the variant's order and replace the collection.

        Failure is logged and leaves the previous collection untouched.
        Entries written after the load was issued keep their local state,
        and records deleted after it was issued stay deleted. The inbox is
        refreshed whatever happens to the record fetch.
        """
        self._load_seq += 1
        seq = self._load_seq
        issued_before = self._last_token
        if len(self.collection) == 0:
            self.loading = True

        try:
            result = await self.store.select(self.variant.table, order=self.variant.order)
        finally:
            if seq == self._load_seq:
                self.loading = False

        if seq != self._load_seq:
            counter("sync.load.stale_discarded")
            logger.debug("Discarding stale load %d (latest is %d)", seq, self._load_seq)
        elif not result.ok:
            counter("sync.load.failed")
            logger.error("Error fetching %s: %s", self.variant.table, result.error)
        else:
            self._apply_rows(result.rows, issued_before)

        if self.inbox is not None:
            await self.inbox.load()

        return self.records()

    def _apply_rows(self, rows: list[dict], issued_before: int) -> None:
        """Replace the collection with fetched rows, keeping newer local writes."""
        newer = {
            e.record.id: e
            for e in self.collection
            if e.is_pending or e.token > issued_before
        }
        entries: list[Entry] = []
        for row in rows:
            try:
                record = self.variant.from_row(row)
            except (KeyError, ValueError, ValidationError) as e:
                counter("sync.load.bad_row")
                logger.warning("Skipping malformed %s row %s: %s", self.variant.name, row.get("id"), e)
                continue
            if self._deleted.get(record.id, 0) > issued_before:
                counter("sync.load.deleted_row_skipped")
                continue
            if record.id in newer:
                entries.append(newer.pop(record.id))
            else:
                entries.append(Entry(record=record, confirmed=record))

        # Creations still in flight are not in the store yet; keep them at the head
        unconfirmed = [e for e in self.collection if e.record.id in newer]
        self.collection.reset(unconfirmed + entries)
        self._deleted = {k: t for k, t in self._deleted.items() if t > issued_before}

        if self.context.selected is not None:
            entry = self.collection.get(self.context.selected.id)
            if entry is not None:
                self.context.selected = entry.record

        counter("sync.load.success")
        logger.info("Loaded %d %s", len(entries), self.variant.name)

    def _schedule_reload(self) -> None:
        task = asyncio.get_running_loop().create_task(self._background_reload())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_reload(self) -> None:
        try:
            await self.load()
        except Exception as e:
            counter("sync.background_reload.error")
            logger.error("Background reload failed: %s", e)

    async def wait_background(self) -> None:
        """Wait for scheduled background reloads to finish."""
        while self._background:
            await asyncio.gather(*list(self._background))

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, draft: Record) -> Record:
        """
        Insert a new record at the head of the collection, then persist it.

        Returns:
            The record as confirmed (bills carry the store-assigned id)

        Raises:
            RemoteWriteError: insert failed; the collection was reloaded
        """
        now = utc_now()
        changes: dict = {"created_at": now, "updated_at": now}
        if isinstance(draft, Bill) and draft.status != BillStatus.PAID.value:
            changes["status"] = Bill.initial_status(draft.due_date).value
        record = self.variant.assign_identity(draft.model_copy(update=changes))

        token = self._next_token()
        entry = Entry(record=record)
        entry.begin_write(record, token)
        self.collection.insert_head(entry)
        self.context.navigate(ViewState.LIST)

        result = await self.store.insert(self.variant.table, self.variant.insert_row(record))
        if not result.ok or not result.rows:
            error = _write_error(result.error, "insert")
            counter("sync.create.failed")
            logger.error("Error creating %s %s: %s", self.variant.name, record.id, error)
            entry.state = EntryState.CLEAN
            await self.load()
            raise RemoteWriteError(render("save_failed"), record.id, error)

        confirmed = record
        if self.variant.store_assigns_id:
            # The provisional id is swapped for the store's id exactly once, here
            confirmed = self.variant.from_row(result.rows[0])
        entry.record = confirmed
        entry.confirm(confirmed, token)
        self.collection.discard_others(entry)

        counter("sync.create.success")
        log_event("sync.create", variant=self.variant.name, record_id=confirmed.id)

        await self._fan_out(None, confirmed)
        self._schedule_reload()
        return confirmed

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update(self, record: Record) -> Record:
        """
        Replace a record optimistically and persist its mutable fields.

        Raises:
            RecordNotFoundError: record is not in the visible collection
            RemoteWriteError: update failed; the entry was reverted and reloaded
        """
        entry = self._require(record.id)
        old = entry.record
        new = record.model_copy(update={"updated_at": utc_now()})

        token = self._next_token()
        entry.begin_write(new, token)
        self.context.refresh_selected(new)

        result = await self.store.update(
            self.variant.table, new.mutable_columns(), filters={"id": new.id}
        )
        if not result.ok or not result.rows:
            error = _write_error(result.error, "update")
            counter("sync.update.failed")
            logger.error("Error updating %s %s: %s", self.variant.name, new.id, error)
            if entry.revert(token):
                self.context.refresh_selected(entry.record)
            await self.load()
            if entry.state == EntryState.REVERTING:
                entry.state = EntryState.CLEAN
            raise RemoteWriteError(
                render("update_failed", reason=error.message), new.id, error
            )

        entry.confirm(new, token)
        counter("sync.update.success")

        await self._fan_out(old, new)
        return new

    async def _fan_out(self, old: Record | None, new: Record) -> None:
        outgoing = self.variant.rule(old, new, self.actor)
        if not outgoing:
            return
        try:
            await self.dispatcher.dispatch(outgoing)
        except Exception as e:
            counter("sync.fanout.error")
            logger.error("Notification fan-out failed for %s: %s", new.id, e)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def remove(self, record_id: str, confirm: ConfirmCallback) -> bool:
        """
        Delete a record remotely, then purge it locally.

        Returns:
            False if the confirmation was declined (nothing happens)

        Raises:
            RecordNotFoundError: record is not in the visible collection
            RemoteDeleteError: delete failed; local state and view are unchanged
        """
        entry = self._require(record_id)

        answer = confirm(entry.record)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            return False

        self._deleted[record_id] = self._next_token()
        result = await self.store.delete(self.variant.table, filters={"id": record_id})
        if not result.ok or not result.rows:
            error = _write_error(result.error, "delete")
            self._deleted.pop(record_id, None)
            counter("sync.delete.failed")
            logger.error("Error deleting %s %s: %s", self.variant.name, record_id, error)
            raise RemoteDeleteError(
                render("delete_failed", reason=error.message), record_id, error
            )

        self.collection.remove(record_id)
        if self.context.is_open(record_id):
            self.context.close_detail()
            self.context.navigate(ViewState.LIST)

        counter("sync.delete.success")
        log_event("sync.delete", variant=self.variant.name, record_id=record_id)
        self._schedule_reload()
        return True

    # -------------------------------------------------------------------------
    # Record helpers
    # -------------------------------------------------------------------------

    def _require_messages(self) -> None:
        if not self.variant.has_messages:
            raise UnsupportedOperationError(render("variant_unsupported"))

    async def add_message(self, record_id: str, text: str) -> Record:
        """Append a message; elevated actors write as AGENT, everyone else as USER."""
        self._require_messages()
        record = self._require(record_id).record
        message = Message(
            id=uuid.uuid4().hex,
            sender=SenderTag.AGENT if self.actor.is_elevated else SenderTag.USER,
            text=text,
        )
        return await self.update(
            record.model_copy(update={"messages": [*record.messages, message]})
        )

    async def delete_message(self, record_id: str, message_id: str) -> Record:
        """Remove one message from the log. Elevated role only."""
        self._require_messages()
        if not self.actor.is_elevated:
            raise PermissionDeniedError(render("elevated_only"))
        record = self._require(record_id).record
        remaining = [m for m in record.messages if m.id != message_id]
        if len(remaining) == len(record.messages):
            raise RecordNotFoundError(render("message_not_found"))
        return await self.update(record.model_copy(update={"messages": remaining}))

    async def attach(
        self,
        record_id: str,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> Record:
        """
        Upload a file and attach it: appended for tickets, set for bills.

        Raises:
            RemoteWriteError: upload or record update failed
        """
        record = self._require(record_id).record
        attachment = await self.uploader.upload(record.id, filename, content, content_type)

        if isinstance(record, Bill):
            changed = record.model_copy(update={"attachment_url": attachment.url})
        else:
            changed = record.model_copy(update={"attachments": [*record.attachments, attachment]})
        return await self.update(changed)

    async def set_status(self, record_id: str, status: str) -> Record:
        """Change status. Raises ValueError for a status outside the variant's enum."""
        value = self.variant.parse_status(status)
        record = self._require(record_id).record
        return await self.update(record.model_copy(update={"status": value}))

    async def mark_paid(self, record_id: str, today: date | None = None) -> Record:
        record = self._require(record_id).record
        if not isinstance(record, Bill):
            raise UnsupportedOperationError(render("variant_unsupported"))
        return await self.update(
            record.model_copy(
                update={
                    "status": BillStatus.PAID.value,
                    "paid_date": today or utc_now().date(),
                }
            )
        )

    async def ensure_analysis(self, record_id: str) -> TicketAnalysis | FinanceAnalysis | None:
        """
        Run the AI analysis once and cache it on the record.

        An existing analysis is returned as-is. None means the model gave no
        usable answer; the record is left untouched.
        """
        record = self._require(record_id).record
        if record.ai_analysis is not None:
            return record.ai_analysis

        analysis = await asyncio.to_thread(self.analyzer.analyze_record, record)
        if analysis is None:
            counter("sync.analysis.unavailable")
            return None

        updated = await self.update(record.model_copy(update={"ai_analysis": analysis}))
        return updated.ai_analysis

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def teardown(self) -> None:
        """Drop all session state (logout)."""
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        self.collection.clear()
        self._deleted.clear()
        self.context.selected = None
        if self.inbox is not None:
            self.inbox.clear()
