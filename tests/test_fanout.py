"""Unit tests for NotificationDispatcher"""

from __future__ import annotations

import pytest

from nexticket.notifications.fanout import NotificationDispatcher
from nexticket.notifications.rules import Outgoing
from nexticket.observability.telemetry import get_counter
from nexticket.records.models import Role


@pytest.mark.asyncio
async def test_role_fanout_reaches_each_active_elevated_user_in_one_batch(store):
    dispatcher = NotificationDispatcher(store)

    sent = await dispatcher.send_to_role(Role.DEV, "TK-1", "Novo chamado")

    recipients = sorted(n["recipient_email"] for n in store.tables["notifications"])
    assert sent == 2
    assert recipients == ["ana@nexticket.io", "bruno@nexticket.io"]
    assert store.count("insert", "notifications") == 1
    assert all(n["read"] is False for n in store.tables["notifications"])


@pytest.mark.asyncio
async def test_role_fanout_excludes_actor(store):
    dispatcher = NotificationDispatcher(store)

    await dispatcher.send_to_role(Role.DEV, "TK-1", "x", exclude_email="ana@nexticket.io")

    assert [n["recipient_email"] for n in store.tables["notifications"]] == ["bruno@nexticket.io"]


@pytest.mark.asyncio
async def test_role_fanout_with_nobody_left_inserts_nothing(store):
    store.tables["users"] = [u for u in store.tables["users"] if u["role"] != "DEV"]
    dispatcher = NotificationDispatcher(store)

    assert await dispatcher.send_to_role(Role.DEV, "TK-1", "x") == 0
    assert store.count("insert", "notifications") == 0


@pytest.mark.asyncio
async def test_failures_are_logged_not_raised(store):
    store.fail_next("insert", "notifications")
    store.fail_next("select", "users")
    dispatcher = NotificationDispatcher(store)

    sent = await dispatcher.dispatch(
        [
            Outgoing(record_id="TK-1", message="a", recipient_email="carla@cliente.com"),
            Outgoing(record_id="TK-1", message="b", role=Role.DEV),
        ]
    )

    assert sent == 0
    assert get_counter("notifications.send_failed") == 1
    assert get_counter("notifications.role_lookup_failed") == 1
    assert store.tables["notifications"] == []


@pytest.mark.asyncio
async def test_direct_notification_row_shape(store):
    await NotificationDispatcher(store).send("carla@cliente.com", "TK-9", "msg")

    row = store.tables["notifications"][0]
    assert row["recipient_email"] == "carla@cliente.com"
    assert row["ticket_id"] == "TK-9"
    assert row["message"] == "msg"
    assert row["read"] is False
