"""
Login against the users table.

Wrong email and wrong password are indistinguishable to the caller
(InvalidCredentialsError); a correct password on an INACTIVE account is
reported separately (InactiveUserError).
"""

from __future__ import annotations

from pydantic import ValidationError

from nexticket.auth.passwords import verify_password
from nexticket.config import USERS_TABLE
from nexticket.errors import AuthenticationError, InactiveUserError, InvalidCredentialsError
from nexticket.infrastructure.store import RemoteStore
from nexticket.notifications.messages import render
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, log_event
from nexticket.records.models import User
from nexticket.utils.redaction import redact

logger = get_logger(__name__)


class AuthService:
    def __init__(self, store: RemoteStore):
        self.store = store

    async def login(self, email: str, password: str) -> User:
        """
        Authenticate a user by email and password.

        Returns:
            The logged-in User

        Raises:
            InvalidCredentialsError: unknown email or wrong password
            InactiveUserError: valid credentials on an INACTIVE account
            AuthenticationError: the store could not be reached
        """
        email = email.strip().lower()
        result = await self.store.select(USERS_TABLE, filters={"email": email})
        if not result.ok:
            counter("auth.login.store_error")
            logger.error("Login lookup failed for %s: %s", redact(email), result.error)
            raise AuthenticationError(render("login_unreachable"))

        row = result.rows[0] if result.rows else None
        if row is None or not verify_password(password, row.get("password_hash")):
            counter("auth.login.invalid")
            logger.info("Invalid credentials for %s", redact(email))
            raise InvalidCredentialsError(render("login_invalid"))

        try:
            user = User.from_db_row(row)
        except (KeyError, ValidationError) as e:
            counter("auth.login.bad_row")
            logger.error("Malformed user row for %s: %s", redact(email), e)
            raise InvalidCredentialsError(render("login_invalid")) from e

        if not user.is_active:
            counter("auth.login.inactive")
            logger.info("Inactive user %s attempted login", redact(email))
            raise InactiveUserError(render("login_inactive"))

        counter("auth.login.success")
        log_event("auth.login", user=redact(user.email), role=user.role)
        return user
