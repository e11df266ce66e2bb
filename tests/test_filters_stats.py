"""Tests for read-time filters and dashboard aggregates"""

from __future__ import annotations

from conftest import bill_row, ticket_row, user_by_email
from nexticket.records.filters import search_records, visible_records
from nexticket.records.models import Bill, Ticket
from nexticket.records.stats import bill_stats, dashboard_stats, ticket_stats
from nexticket.records.variants import BILLS, TICKETS

TICKETS_FIXTURE = [
    Ticket.from_db_row(ticket_row("TK-1", title="Impressora travada", status="OPEN", priority="HIGH")),
    Ticket.from_db_row(
        ticket_row("TK-2", owner_email="outra@cliente.com", title="VPN lenta", status="IN_PROGRESS")
    ),
    Ticket.from_db_row(ticket_row("TK-3", title="Nova impressora", status="CLOSED", category="OTHER")),
]

BILLS_FIXTURE = [
    Bill.from_db_row(bill_row("b-1", amount=100.10, status="PAID", due_date="2026-09-05")),
    Bill.from_db_row(bill_row("b-2", amount=200.20, status="PENDING", due_date="2026-10-05")),
    Bill.from_db_row(
        bill_row("b-3", amount=50, status="OVERDUE", category="FOOD", due_date="2026-09-20")
    ),
]


class TestVisibility:
    def test_elevated_user_sees_everything(self):
        dev = user_by_email("ana@nexticket.io")
        assert len(visible_records(TICKETS_FIXTURE, dev, TICKETS)) == 3

    def test_owner_sees_own_tickets_only(self):
        carla = user_by_email("carla@cliente.com")
        assert [t.id for t in visible_records(TICKETS_FIXTURE, carla, TICKETS)] == ["TK-1", "TK-3"]

    def test_bills_match_on_user_id(self):
        carla = user_by_email("carla@cliente.com")
        others = [Bill.from_db_row(bill_row("b-9", user_id="u-bruno"))]
        assert visible_records(others, carla, BILLS) == []

    def test_no_user_sees_nothing(self):
        assert visible_records(TICKETS_FIXTURE, None, TICKETS) == []


class TestSearch:
    def test_title_search_is_case_insensitive(self):
        assert [t.id for t in search_records(TICKETS_FIXTURE, "IMPRESSORA")] == ["TK-1", "TK-3"]

    def test_status_filter_and_all(self):
        assert [t.id for t in search_records(TICKETS_FIXTURE, status="CLOSED")] == ["TK-3"]
        assert len(search_records(TICKETS_FIXTURE, status="ALL")) == 3

    def test_combined_filters(self):
        assert search_records(TICKETS_FIXTURE, "impressora", "IN_PROGRESS") == []


class TestStats:
    def test_ticket_counts(self):
        stats = ticket_stats(TICKETS_FIXTURE)

        assert stats["total"] == 3
        assert stats["open"] == 1
        assert stats["by_status"]["RESOLVED"] == 0
        assert stats["by_priority"]["HIGH"] == 1
        assert stats["by_category"]["OTHER"] == 1

    def test_bill_totals_round_to_cents(self):
        stats = bill_stats(BILLS_FIXTURE)

        assert stats["total"] == 350.30
        assert stats["paid"] == 100.10
        assert stats["pending"] == 250.20
        assert stats["overdue_count"] == 1

    def test_bill_breakdowns(self):
        stats = bill_stats(BILLS_FIXTURE)

        assert {"name": "FOOD", "value": 50} in stats["by_category"]
        assert stats["monthly"] == [
            {"name": "09/26", "total": 150.10},
            {"name": "10/26", "total": 200.20},
        ]

    def test_empty_collection_keeps_shape(self):
        assert dashboard_stats([], "bills")["monthly"] == []
        assert dashboard_stats([], "tickets")["total"] == 0
