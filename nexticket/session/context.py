"""
Per-session application context.

Holds the logged-in user, the current view, and the record open in the
detail view. Created on login, torn down on logout; every component that
needs the actor or navigation state receives it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from nexticket.records.models import Record, User


class ViewState(str, Enum):
    DASHBOARD = "DASHBOARD"
    LIST = "LIST"
    DETAIL = "DETAIL"
    USERS = "USERS"
    NOTIFICATIONS = "NOTIFICATIONS"


@dataclass
class AppContext:
    user: User
    view: ViewState = ViewState.DASHBOARD
    selected: Record | None = None

    @property
    def is_elevated(self) -> bool:
        return self.user.is_elevated

    def navigate(self, view: ViewState) -> None:
        self.view = view
        if view == ViewState.DASHBOARD:
            self.selected = None

    def open_detail(self, record: Record) -> None:
        self.selected = record
        self.view = ViewState.DETAIL

    def is_open(self, record_id: str) -> bool:
        return self.selected is not None and self.selected.id == record_id

    def refresh_selected(self, record: Record) -> None:
        """Keep the open detail in step with the collection."""
        if self.is_open(record.id):
            self.selected = record

    def close_detail(self) -> None:
        """Clear the open record and fall back to the list."""
        self.selected = None
        if self.view == ViewState.DETAIL:
            self.view = ViewState.LIST
