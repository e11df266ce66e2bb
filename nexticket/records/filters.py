"""Read-time filters over the session collection."""

from __future__ import annotations

from collections.abc import Iterable

from nexticket.records.models import Record, User
from nexticket.records.variants import RecordVariant


def visible_records(
    records: Iterable[Record], user: User | None, variant: RecordVariant
) -> list[Record]:
    """Elevated users see everything; everyone else sees only what they own."""
    if user is None:
        return []
    if user.is_elevated:
        return list(records)
    return [r for r in records if variant.is_visible(r, user)]


def search_records(
    records: Iterable[Record], query: str | None = None, status: str | None = None
) -> list[Record]:
    """Case-insensitive title search plus an optional exact status filter ("ALL" = any)."""
    needle = (query or "").strip().lower()
    matches = []
    for record in records:
        if needle and needle not in record.title.lower():
            continue
        if status and status != "ALL" and record.status != status:
            continue
        matches.append(record)
    return matches
