"""
Deployment variants.

A variant bundles everything that differs between the ticket desk and the
bill tracker: record model, table, bucket, ordering, owner identity, id
assignment, status enumeration, and notification rule.
"""

from __future__ import annotations

import secrets
import string
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from nexticket.config import (
    BILL_ATTACHMENTS_BUCKET,
    BILLS_TABLE,
    PROVISIONAL_ID_PREFIX,
    TICKET_ATTACHMENTS_BUCKET,
    TICKET_ID_LENGTH,
    TICKET_ID_PREFIX,
    TICKETS_TABLE,
)
from nexticket.infrastructure.store import Order
from nexticket.notifications.rules import NotificationRule, silent_rule, ticket_rule
from nexticket.records.models import Bill, BillStatus, Record, Ticket, TicketStatus, User

_TAG_ALPHABET = string.ascii_uppercase + string.digits


def new_ticket_id() -> str:
    """Short human-readable tag, e.g. TK-7Q2M4X."""
    suffix = "".join(secrets.choice(_TAG_ALPHABET) for _ in range(TICKET_ID_LENGTH))
    return f"{TICKET_ID_PREFIX}{suffix}"


def new_provisional_id() -> str:
    """Local id used until the store assigns the real one."""
    return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_provisional(record_id: str) -> bool:
    return record_id.startswith(PROVISIONAL_ID_PREFIX)


@dataclass(frozen=True)
class RecordVariant:
    """Per-deployment record configuration."""

    name: str
    model: type[Record]
    table: str
    bucket: str
    order: Order
    owner_user_attr: str  # User attribute compared against the record owner_key
    status_enum: type[Enum]
    rule: NotificationRule
    store_assigns_id: bool
    has_messages: bool
    has_inbox: bool

    def owner_identity(self, user: User) -> str:
        return str(getattr(user, self.owner_user_attr))

    def is_visible(self, record: Record, user: User) -> bool:
        return user.is_elevated or record.owner_key == self.owner_identity(user)

    def new_id(self) -> str:
        return new_provisional_id() if self.store_assigns_id else new_ticket_id()

    def assign_identity(self, record: Record) -> Record:
        """Give a draft its id unless it already carries a real one."""
        if record.id and not is_provisional(record.id) and not self.store_assigns_id:
            return record
        return record.model_copy(update={"id": self.new_id()})

    def insert_row(self, record: Record) -> dict[str, Any]:
        row = record.to_db_dict()
        if self.store_assigns_id:
            row.pop("id", None)
        return row

    def from_row(self, row: dict[str, Any]) -> Record:
        return self.model.from_db_row(row)

    def parse_status(self, value: str) -> str:
        """Validate a status against the closed enumeration. Raises ValueError."""
        return self.status_enum(value).value


TICKETS = RecordVariant(
    name="tickets",
    model=Ticket,
    table=TICKETS_TABLE,
    bucket=TICKET_ATTACHMENTS_BUCKET,
    order=Order("created_at", ascending=False),
    owner_user_attr="email",
    status_enum=TicketStatus,
    rule=ticket_rule,
    store_assigns_id=False,
    has_messages=True,
    has_inbox=True,
)

BILLS = RecordVariant(
    name="bills",
    model=Bill,
    table=BILLS_TABLE,
    bucket=BILL_ATTACHMENTS_BUCKET,
    order=Order("due_date", ascending=True),
    owner_user_attr="id",
    status_enum=BillStatus,
    rule=silent_rule,
    store_assigns_id=True,
    has_messages=False,
    has_inbox=False,
)

VARIANTS = {TICKETS.name: TICKETS, BILLS.name: BILLS}


def get_variant(name: str) -> RecordVariant:
    """Look up a variant by name. Raises ValueError for an unknown name."""
    try:
        return VARIANTS[name]
    except KeyError:
        raise ValueError(f"Unknown variant {name!r} (expected one of {sorted(VARIANTS)})") from None
