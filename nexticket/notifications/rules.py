"""
Notification fan-out rules.

A rule is a pure function of (old, new, actor) returning the notifications
to create. old is None for a creation. Rules never touch the store; the
dispatcher turns their output into rows.

Nobody is notified of their own action: direct notifications addressed to
the actor are dropped and role broadcasts exclude the actor.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from nexticket.notifications.messages import render, status_label
from nexticket.records.models import Record, Role, SenderTag, Ticket, User


@dataclass(frozen=True)
class Outgoing:
    """One notification to create.

    Exactly one of recipient_email (direct) or role (broadcast to every
    ACTIVE user holding the role) is set.
    """

    record_id: str
    message: str
    recipient_email: str | None = None
    role: Role | None = None
    exclude_email: str | None = None

    @property
    def is_broadcast(self) -> bool:
        return self.role is not None


NotificationRule = Callable[[Record | None, Record, User], list[Outgoing]]


def _direct(record_id: str, recipient: str, message: str, actor: User) -> list[Outgoing]:
    if recipient == actor.email:
        return []
    return [Outgoing(record_id=record_id, message=message, recipient_email=recipient)]


def _to_elevated(record_id: str, message: str, actor: User) -> list[Outgoing]:
    return [
        Outgoing(record_id=record_id, message=message, role=Role.DEV, exclude_email=actor.email)
    ]


def ticket_rule(old: Ticket | None, new: Ticket, actor: User) -> list[Outgoing]:
    """
    Ticket fan-out.

    - creation: every active elevated user hears about the new ticket
    - status change: the owner gets the localized new status
    - appended message: requester messages go to elevated users, agent
      replies go to the owner
    """
    if old is None:
        return _to_elevated(
            new.id,
            render("record_created", requester=new.requester, title=new.title),
            actor,
        )

    outgoing: list[Outgoing] = []

    if old.status != new.status:
        outgoing += _direct(
            new.id,
            new.owner_email,
            render("status_changed", status=status_label(new.status)),
            actor,
        )

    if len(new.messages) > len(old.messages):
        last = new.messages[-1]
        if last.sender == SenderTag.USER and not actor.is_elevated:
            outgoing += _to_elevated(
                new.id,
                render("requester_message", requester=new.requester, record_id=new.id),
                actor,
            )
        elif last.sender == SenderTag.AGENT and actor.is_elevated:
            outgoing += _direct(
                new.id,
                new.owner_email,
                render("agent_reply", title=new.title),
                actor,
            )

    return outgoing


def silent_rule(old: Record | None, new: Record, actor: User) -> list[Outgoing]:
    """Bills send no notifications."""
    return []
