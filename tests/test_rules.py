"""Unit tests for the notification fan-out rules"""

from __future__ import annotations

from conftest import bill_row, ticket_row, user_by_email
from nexticket.notifications.rules import silent_rule, ticket_rule
from nexticket.records.models import Bill, Message, Role, Ticket

DEV = user_by_email("ana@nexticket.io")
REQUESTER = user_by_email("carla@cliente.com")


def _ticket(**overrides) -> Ticket:
    return Ticket.from_db_row(ticket_row(**overrides))


def _with_message(ticket: Ticket, sender: str, text: str = "oi") -> Ticket:
    message = Message(id=f"m{len(ticket.messages)}", sender=sender, text=text)
    return ticket.model_copy(update={"messages": [*ticket.messages, message]})


class TestStatusChange:
    def test_owner_notified_once_with_localized_status(self):
        old = _ticket()
        new = old.model_copy(update={"status": "IN_PROGRESS"})

        out = ticket_rule(old, new, DEV)

        assert len(out) == 1
        assert out[0].recipient_email == "carla@cliente.com"
        assert out[0].record_id == old.id
        assert out[0].message == "O status do seu chamado foi alterado para: Em Andamento"

    def test_english_locale(self, monkeypatch):
        monkeypatch.setenv("NEXTICKET_LOCALE", "en")
        old = _ticket()
        new = old.model_copy(update={"status": "RESOLVED"})

        out = ticket_rule(old, new, DEV)

        assert out[0].message == "Your ticket status changed to: Resolved"

    def test_owner_changing_own_status_is_silent(self):
        old = _ticket()
        new = old.model_copy(update={"status": "CLOSED"})

        assert ticket_rule(old, new, REQUESTER) == []

    def test_unchanged_record_is_silent(self):
        old = _ticket()
        assert ticket_rule(old, old.model_copy(), DEV) == []


class TestMessages:
    def test_requester_message_goes_to_elevated_role(self):
        old = _ticket()
        new = _with_message(old, "USER")

        out = ticket_rule(old, new, REQUESTER)

        assert len(out) == 1
        assert out[0].role == Role.DEV
        assert out[0].exclude_email == REQUESTER.email
        assert out[0].message == f"Nova interação de Carla Dias no chamado #{old.id}"

    def test_agent_reply_goes_to_owner(self):
        old = _ticket()
        new = _with_message(old, "AGENT")

        out = ticket_rule(old, new, DEV)

        assert len(out) == 1
        assert out[0].recipient_email == "carla@cliente.com"
        assert out[0].message == f'O suporte respondeu seu chamado: "{old.title}"'

    def test_agent_reply_on_own_ticket_is_silent(self):
        old = _ticket(owner_email=DEV.email, requester=DEV.name)
        new = _with_message(old, "AGENT")

        assert ticket_rule(old, new, DEV) == []

    def test_status_change_and_reply_both_fire(self):
        old = _ticket()
        new = _with_message(old, "AGENT").model_copy(update={"status": "RESOLVED"})

        out = ticket_rule(old, new, DEV)

        assert len(out) == 2
        assert all(o.recipient_email == "carla@cliente.com" for o in out)

    def test_mismatched_sender_and_role_is_silent(self):
        old = _ticket()
        new = _with_message(old, "USER")

        assert ticket_rule(old, new, DEV) == []


class TestCreation:
    def test_creation_broadcasts_to_elevated_excluding_creator(self):
        new = _ticket()

        out = ticket_rule(None, new, REQUESTER)

        assert len(out) == 1
        assert out[0].is_broadcast
        assert out[0].exclude_email == REQUESTER.email
        assert out[0].message == f'Novo chamado criado por Carla Dias: "{new.title}"'


def test_bill_rule_is_silent():
    old = Bill.from_db_row(bill_row())
    new = old.model_copy(update={"status": "PAID"})

    assert silent_rule(old, new, REQUESTER) == []
    assert silent_rule(None, new, REQUESTER) == []
