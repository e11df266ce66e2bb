"""Unit tests for NotificationInbox"""

from __future__ import annotations

import pytest

from conftest import make_sync, ticket_row
from nexticket.errors import RecordNotFoundError
from nexticket.observability.telemetry import get_counter
from nexticket.session.context import ViewState


def notification_row(id, ticket_id="TK-AAA111", read=False, created_at="2026-10-01T00:00:00+00:00",
                     recipient_email="carla@cliente.com"):
    return {
        "id": id,
        "recipient_email": recipient_email,
        "ticket_id": ticket_id,
        "message": f"aviso {id}",
        "read": read,
        "created_at": created_at,
    }


@pytest.fixture
def seeded(store):
    store.seed("tickets", ticket_row())
    store.seed(
        "notifications",
        notification_row("n1", created_at="2026-10-01T00:00:00+00:00"),
        notification_row("n2", created_at="2026-10-03T00:00:00+00:00"),
        notification_row("n3", read=True, created_at="2026-10-02T00:00:00+00:00"),
        notification_row("n4", recipient_email="ana@nexticket.io"),
    )
    return store


@pytest.mark.asyncio
async def test_lists_only_own_notifications_newest_first(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()

    assert [n.id for n in sync.inbox.notifications] == ["n2", "n3", "n1"]
    assert sync.inbox.unread_count == 2


@pytest.mark.asyncio
async def test_mark_read_is_optimistic_and_persisted(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()
    inbox = sync.inbox
    seen = []

    async def observe():
        seen.append(inbox.unread_count)

    seeded.hook_next("update", "notifications", observe)
    await inbox.mark_read("n1")

    assert seen == [1]
    assert inbox.unread_count == 1
    assert next(r for r in seeded.tables["notifications"] if r["id"] == "n1")["read"] is True


@pytest.mark.asyncio
async def test_failed_mark_read_reloads_from_store(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()
    seeded.fail_next("update", "notifications")

    await sync.inbox.mark_read("n1")

    assert sync.inbox.unread_count == 2
    assert get_counter("inbox.mark_read_failed") == 1


@pytest.mark.asyncio
async def test_delete_removes_locally_and_remotely(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()

    await sync.inbox.delete("n2")

    assert [n.id for n in sync.inbox.notifications] == ["n3", "n1"]
    assert all(r["id"] != "n2" for r in seeded.tables["notifications"])


@pytest.mark.asyncio
async def test_failed_delete_restores_notification(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()
    seeded.fail_next("delete", "notifications")

    await sync.inbox.delete("n2")

    assert "n2" in [n.id for n in sync.inbox.notifications]


@pytest.mark.asyncio
async def test_open_record_opens_detail_and_marks_read(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()

    record = await sync.inbox.open_record("TK-AAA111")

    assert record.id == "TK-AAA111"
    assert sync.context.view == ViewState.DETAIL
    assert sync.context.selected.id == "TK-AAA111"
    assert next(n for n in sync.inbox.notifications if n.id == "n2").read is True


@pytest.mark.asyncio
async def test_open_deleted_record_reports_missing(seeded, requester):
    seeded.seed("notifications", notification_row("n9", ticket_id="TK-GONE99"))
    sync = make_sync(seeded, requester)
    await sync.load()

    with pytest.raises(RecordNotFoundError) as exc_info:
        await sync.inbox.open_record("TK-GONE99")

    assert str(exc_info.value) == "Este chamado não existe mais ou você não tem acesso."
    assert sync.context.view == ViewState.DASHBOARD


@pytest.mark.asyncio
async def test_failed_inbox_load_keeps_previous_list(seeded, requester):
    sync = make_sync(seeded, requester)
    await sync.load()
    seeded.fail_next("select", "notifications")

    await sync.inbox.load()

    assert len(sync.inbox.notifications) == 3
