"""
User administration.

Elevated users manage the team: list, search, create, edit, and switch an
account between ACTIVE and INACTIVE. Passwords are only ever written as
bcrypt hashes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError, field_validator

from nexticket.auth.passwords import hash_password
from nexticket.config import USERS_TABLE
from nexticket.errors import PermissionDeniedError, UserDirectoryError
from nexticket.infrastructure.store import Order, RemoteStore
from nexticket.notifications.messages import render
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter
from nexticket.records.models import Role, User, UserStatus, avatar_for
from nexticket.session.context import AppContext

logger = get_logger(__name__)


class UserForm(BaseModel):
    """Fields an administrator can set on an account."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: Role = Role.USER
    status: UserStatus = UserStatus.ACTIVE
    password: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("invalid email")
        return v


class UserDirectory:
    def __init__(self, store: RemoteStore, context: AppContext):
        self.store = store
        self.context = context
        self.users: list[User] = []

    def _require_elevated(self) -> None:
        if not self.context.is_elevated:
            raise PermissionDeniedError(render("elevated_only"))

    async def load(self) -> list[User]:
        """All users ordered by name. Failure keeps the current list."""
        self._require_elevated()
        result = await self.store.select(USERS_TABLE, order=Order("name"))
        if not result.ok:
            counter("users.load_failed")
            logger.error("Error fetching users: %s", result.error)
            return self.users

        users = []
        for row in result.rows:
            try:
                users.append(User.from_db_row(row))
            except (KeyError, ValidationError) as e:
                logger.warning("Skipping malformed user row %s: %s", row.get("id"), e)
        self.users = users
        return self.users

    def search(self, query: str | None) -> list[User]:
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.users)
        return [u for u in self.users if needle in u.name.lower() or needle in u.email.lower()]

    def get(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    async def create(self, form: UserForm) -> User:
        """
        Create an account. A password is required.

        Raises:
            UserDirectoryError: missing password or the store rejected the insert
        """
        self._require_elevated()
        if not form.password:
            raise UserDirectoryError(render("password_required"))

        row = {
            "name": form.name,
            "email": form.email,
            "role": form.role.value,
            "status": form.status.value,
            "avatar": avatar_for(form.name),
            "password_hash": hash_password(form.password),
        }
        result = await self.store.insert(USERS_TABLE, row)
        if not result.ok or not result.rows:
            counter("users.create_failed")
            reason = result.error.message if result.error else "no rows"
            logger.error("Error creating user: %s", reason)
            raise UserDirectoryError(render("user_save_failed", reason=reason))

        counter("users.created")
        await self.load()
        return User.from_db_row(result.rows[0])

    async def update(self, user_id: str, form: UserForm) -> User:
        """
        Edit an account. The password changes only when a new one is given.

        Raises:
            UserDirectoryError: the store rejected the update
        """
        self._require_elevated()
        values = {
            "name": form.name,
            "email": form.email,
            "role": form.role.value,
            "status": form.status.value,
            "avatar": avatar_for(form.name),
        }
        if form.password:
            values["password_hash"] = hash_password(form.password)

        result = await self.store.update(USERS_TABLE, values, filters={"id": user_id})
        if not result.ok or not result.rows:
            counter("users.update_failed")
            reason = result.error.message if result.error else render("user_not_found")
            logger.error("Error updating user %s: %s", user_id, reason)
            raise UserDirectoryError(render("user_save_failed", reason=reason))

        counter("users.updated")
        await self.load()
        return User.from_db_row(result.rows[0])

    async def toggle_status(self, user_id: str) -> User:
        """
        Flip ACTIVE/INACTIVE optimistically.

        Raises:
            UserDirectoryError: unknown user, or the store rejected the change
                (the list is reloaded first)
        """
        self._require_elevated()
        current = self.get(user_id)
        if current is None:
            raise UserDirectoryError(render("user_not_found"))

        new_status = UserStatus.INACTIVE if current.is_active else UserStatus.ACTIVE
        toggled = current.model_copy(update={"status": new_status.value})
        self.users = [toggled if u.id == user_id else u for u in self.users]

        result = await self.store.update(
            USERS_TABLE, {"status": new_status.value}, filters={"id": user_id}
        )
        if not result.ok or not result.rows:
            counter("users.toggle_failed")
            reason = result.error.message if result.error else render("user_not_found")
            logger.error("Error toggling user %s: %s", user_id, reason)
            await self.load()
            raise UserDirectoryError(render("user_save_failed", reason=reason))

        counter("users.toggled")
        return toggled
