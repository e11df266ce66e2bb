"""
Pytest configuration for NexTicket tests

Provides an in-memory RemoteStore with failure injection, seeded users, and
row builders shared across test files.
"""

from __future__ import annotations

import copy
import itertools
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import bcrypt
import pytest

from nexticket.errors import StoreError
from nexticket.infrastructure.store import Order, StoreResult
from nexticket.observability import telemetry
from nexticket.records.models import User
from nexticket.records.variants import TICKETS, RecordVariant
from nexticket.session.context import AppContext
from nexticket.sync.synchronizer import EntitySynchronizer

PASSWORD = "s3nha-forte"
_TEST_HASH = bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


class FakeStore:
    """
    In-memory RemoteStore.

    Failures are queued per operation ("update") or per operation and table
    ("update:tickets"); each queued failure is consumed by one call. Hooks
    are awaited before an operation runs, which lets a test interleave two
    in-flight calls.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.files: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[str, list[StoreError]] = defaultdict(list)
        self._hooks: dict[str, list[Callable[[], Awaitable[None]]]] = defaultdict(list)
        self._ids = itertools.count(1000)

    # --- test controls ------------------------------------------------------

    def fail_next(self, op: str, table: str | None = None, message: str = "boom", times: int = 1):
        key = f"{op}:{table}" if table else op
        for _ in range(times):
            self._failures[key].append(StoreError(message, status_code=500, code="test"))

    def hook_next(self, op: str, table: str, hook: Callable[[], Awaitable[None]]) -> None:
        self._hooks[f"{op}:{table}"].append(hook)

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        for row in rows:
            self.tables[table].append(copy.deepcopy(row))

    def count(self, op: str, table: str) -> int:
        return sum(1 for call in self.calls if call == (op, table))

    async def _enter(self, op: str, table: str) -> StoreError | None:
        self.calls.append((op, table))
        hooks = self._hooks.get(f"{op}:{table}")
        if hooks:
            await hooks.pop(0)()
        for key in (f"{op}:{table}", op):
            queued = self._failures.get(key)
            if queued:
                return queued.pop(0)
        return None

    @staticmethod
    def _matches(row: dict[str, Any], filters) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    # --- RemoteStore --------------------------------------------------------

    async def select(self, table, *, columns="*", filters=None, order: Order | None = None, single=False):
        error = await self._enter("select", table)
        if error:
            return StoreResult(error=error)

        rows = [copy.deepcopy(r) for r in self.tables[table] if self._matches(r, filters)]
        if order is not None:
            rows.sort(key=lambda r: (r.get(order.column) is None, r.get(order.column) or ""))
            if not order.ascending:
                rows.reverse()
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]
        if single:
            if len(rows) != 1:
                return StoreResult(error=StoreError("not a single row", status_code=406))
            return StoreResult(data=rows[0])
        return StoreResult(data=rows)

    async def insert(self, table, rows):
        error = await self._enter("insert", table)
        if error:
            return StoreResult(error=error)

        batch = rows if isinstance(rows, list) else [rows]
        stored = []
        for row in batch:
            row = copy.deepcopy(dict(row))
            if not row.get("id"):
                row["id"] = str(next(self._ids))
            if any(r.get("id") == row["id"] for r in self.tables[table]):
                return StoreResult(error=StoreError("duplicate key", status_code=409))
            row.setdefault("created_at", datetime.now(UTC).isoformat())
            self.tables[table].append(row)
            stored.append(copy.deepcopy(row))
        return StoreResult(data=stored)

    async def update(self, table, values, *, filters):
        error = await self._enter("update", table)
        if error:
            return StoreResult(error=error)

        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(copy.deepcopy(dict(values)))
                updated.append(copy.deepcopy(row))
        return StoreResult(data=updated)

    async def delete(self, table, *, filters):
        error = await self._enter("delete", table)
        if error:
            return StoreResult(error=error)

        kept, deleted = [], []
        for row in self.tables[table]:
            (deleted if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return StoreResult(data=deleted)

    async def upload(self, bucket, path, content, *, content_type="application/octet-stream"):
        error = await self._enter("upload", bucket)
        if error:
            return StoreResult(error=error)
        self.files[(bucket, path)] = (content, content_type)
        return StoreResult(data={"Key": f"{bucket}/{path}"})

    def get_public_url(self, bucket, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{bucket}/{path}"

    async def aclose(self):
        return None


# ============================================================================
# Builders
# ============================================================================


def user_row(id, name, email, role="USER", status="ACTIVE"):
    return {
        "id": id,
        "name": name,
        "email": email,
        "role": role,
        "status": status,
        "avatar": name[0].upper(),
        "password_hash": _TEST_HASH,
    }


USER_ROWS = [
    user_row("u-ana", "Ana Souza", "ana@nexticket.io", role="DEV"),
    user_row("u-bruno", "Bruno Lima", "bruno@nexticket.io", role="DEV"),
    user_row("u-davi", "Davi Rocha", "davi@nexticket.io", role="DEV", status="INACTIVE"),
    user_row("u-carla", "Carla Dias", "carla@cliente.com"),
    user_row("u-eva", "Eva Nunes", "eva@cliente.com", status="INACTIVE"),
]


def ticket_row(id="TK-AAA111", owner_email="carla@cliente.com", requester="Carla Dias", **overrides):
    row = {
        "id": id,
        "title": "Não consigo acessar o portal",
        "description": "Erro 403 desde ontem",
        "requester": requester,
        "owner_email": owner_email,
        "status": "OPEN",
        "priority": "MEDIUM",
        "category": "ACCESS",
        "ai_analysis": None,
        "messages": [],
        "attachments": [],
        "created_at": "2026-10-01T12:00:00+00:00",
        "updated_at": "2026-10-01T12:00:00+00:00",
    }
    row.update(overrides)
    return row


def bill_row(id="b-1", user_id="u-carla", **overrides):
    row = {
        "id": id,
        "user_id": user_id,
        "title": "Conta de luz",
        "amount": 180.5,
        "category": "UTILITIES",
        "status": "PENDING",
        "due_date": "2026-11-10",
        "paid_date": None,
        "notes": None,
        "attachment_url": None,
        "ai_analysis": None,
        "created_at": "2026-10-01T12:00:00+00:00",
        "updated_at": "2026-10-01T12:00:00+00:00",
    }
    row.update(overrides)
    return row


def user_by_email(email: str) -> User:
    return User.from_db_row(next(r for r in USER_ROWS if r["email"] == email))


def make_sync(store: FakeStore, user: User, variant: RecordVariant = TICKETS, **kwargs):
    return EntitySynchronizer(store, AppContext(user=user), variant, **kwargs)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Pin locale, keep the LLM off by default, and reset counters per test."""
    monkeypatch.setenv("NEXTICKET_LOCALE", "pt-BR")
    monkeypatch.setenv("NEXTICKET_USE_LLM", "false")
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def store() -> FakeStore:
    fake = FakeStore()
    fake.seed("users", *USER_ROWS)
    return fake


@pytest.fixture
def dev() -> User:
    return user_by_email("ana@nexticket.io")


@pytest.fixture
def requester() -> User:
    return user_by_email("carla@cliente.com")
