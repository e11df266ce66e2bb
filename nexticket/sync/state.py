"""
Synchronizer bookkeeping.

Each record in the session collection is wrapped in an Entry carrying its
write state, the last snapshot the store confirmed, and the token of the
most recent write issued for it. Tokens come from one monotonically
increasing sequence per synchronizer, so "issued after" is a plain integer
comparison.

    CLEAN --write issued--> PENDING_WRITE --confirmed--> CLEAN
                                          --failed-----> REVERTING --reload--> CLEAN
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from nexticket.records.models import Record


class EntryState(str, Enum):
    CLEAN = "clean"
    PENDING_WRITE = "pending_write"
    REVERTING = "reverting"


@dataclass
class Entry:
    record: Record
    confirmed: Record | None = None
    state: EntryState = EntryState.CLEAN
    token: int = 0

    @property
    def is_pending(self) -> bool:
        return self.state == EntryState.PENDING_WRITE

    def begin_write(self, record: Record, token: int) -> None:
        self.record = record
        self.state = EntryState.PENDING_WRITE
        self.token = token

    def confirm(self, record: Record, token: int) -> None:
        """Record a store confirmation. Only the latest write returns the entry to CLEAN."""
        self.confirmed = record
        if self.token == token:
            self.state = EntryState.CLEAN

    def revert(self, token: int) -> bool:
        """Roll back to the confirmed snapshot unless a newer write superseded this one."""
        if self.token != token:
            return False
        if self.confirmed is not None:
            self.record = self.confirmed
        self.state = EntryState.REVERTING
        return True


class RecordCollection:
    """Ordered entries keyed by record id. Index 0 is the head."""

    def __init__(self) -> None:
        self._entries: list[Entry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __contains__(self, record_id: str) -> bool:
        return self.get(record_id) is not None

    def records(self) -> list[Record]:
        return [e.record for e in self._entries]

    def get(self, record_id: str) -> Entry | None:
        for entry in self._entries:
            if entry.record.id == record_id:
                return entry
        return None

    def insert_head(self, entry: Entry) -> None:
        self._entries.insert(0, entry)

    def remove(self, record_id: str) -> Entry | None:
        for i, entry in enumerate(self._entries):
            if entry.record.id == record_id:
                return self._entries.pop(i)
        return None

    def discard_others(self, keep: Entry) -> None:
        """Drop every entry other than `keep` that carries the same record id."""
        self._entries = [
            e for e in self._entries if e is keep or e.record.id != keep.record.id
        ]

    def reset(self, entries: list[Entry]) -> None:
        self._entries = list(entries)

    def clear(self) -> None:
        self._entries = []
