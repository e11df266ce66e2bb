"""
Dashboard aggregates.

Chart data only; rendering is the client's business. Amounts are rounded
to cents so repeated float addition never leaks into the payload.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Any

from nexticket.records.models import (
    Bill,
    BillStatus,
    Record,
    Ticket,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)


def _cents(value: float) -> float:
    return round(value, 2)


def ticket_stats(tickets: Sequence[Ticket]) -> dict[str, Any]:
    by_status = Counter(t.status for t in tickets)
    by_priority = Counter(t.priority for t in tickets)
    by_category = Counter(t.category for t in tickets)
    return {
        "total": len(tickets),
        "open": by_status.get(TicketStatus.OPEN.value, 0),
        "by_status": {s.value: by_status.get(s.value, 0) for s in TicketStatus},
        "by_priority": {p.value: by_priority.get(p.value, 0) for p in TicketPriority},
        "by_category": {c.value: by_category.get(c.value, 0) for c in TicketCategory},
    }


def bill_stats(bills: Sequence[Bill]) -> dict[str, Any]:
    """
    Totals for the bill dashboard.

    pending includes OVERDUE bills. Monthly totals are keyed by due month,
    labelled MM/YY and listed in chronological order.
    """
    total = sum(b.amount for b in bills)
    paid = sum(b.amount for b in bills if b.status == BillStatus.PAID.value)
    pending = sum(
        b.amount for b in bills if b.status in (BillStatus.PENDING.value, BillStatus.OVERDUE.value)
    )
    overdue_count = sum(1 for b in bills if b.status == BillStatus.OVERDUE.value)

    by_category: dict[str, float] = {}
    for bill in bills:
        by_category[bill.category] = by_category.get(bill.category, 0.0) + bill.amount

    monthly: dict[tuple[int, int], float] = {}
    for bill in bills:
        key = (bill.due_date.year, bill.due_date.month)
        monthly[key] = monthly.get(key, 0.0) + bill.amount

    return {
        "total": _cents(total),
        "paid": _cents(paid),
        "pending": _cents(pending),
        "overdue_count": overdue_count,
        "by_category": [
            {"name": name, "value": _cents(value)} for name, value in by_category.items()
        ],
        "monthly": [
            {"name": f"{month:02d}/{str(year)[-2:]}", "total": _cents(monthly[(year, month)])}
            for year, month in sorted(monthly)
        ],
    }


def dashboard_stats(records: Sequence[Record], variant_name: str) -> dict[str, Any]:
    if variant_name == "bills":
        return bill_stats(records)  # type: ignore[arg-type]
    return ticket_stats(records)  # type: ignore[arg-type]
