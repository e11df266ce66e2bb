"""
Session registry and the bearer-token dependency.

A session is created on login and holds the AppContext plus the
components bound to it (synchronizer, user directory). Sessions live in a
TTLCache, so idle ones expire without a sweeper. Every successful lookup
re-stores the session, which restarts its idle clock.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass

from cachetools import TTLCache
from fastapi import Header, HTTPException, Request, status

from nexticket.config import SESSION_MAX_ENTRIES, SESSION_TTL_SECONDS
from nexticket.infrastructure.store import RemoteStore
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter
from nexticket.records.models import User
from nexticket.records.variants import RecordVariant
from nexticket.session.context import AppContext
from nexticket.sync.synchronizer import EntitySynchronizer
from nexticket.users.service import UserDirectory

logger = get_logger(__name__)


@dataclass
class AppSession:
    token: str
    context: AppContext
    sync: EntitySynchronizer
    users: UserDirectory

    @property
    def user(self) -> User:
        return self.context.user


class SessionRegistry:
    def __init__(
        self,
        ttl: int = SESSION_TTL_SECONDS,
        maxsize: int = SESSION_MAX_ENTRIES,
        timer=time.monotonic,
    ):
        self._sessions: TTLCache[str, AppSession] = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, user: User, store: RemoteStore, variant: RecordVariant) -> AppSession:
        """Build a fresh context for a logged-in user."""
        context = AppContext(user=user)
        session = AppSession(
            token=secrets.token_urlsafe(32),
            context=context,
            sync=EntitySynchronizer(store, context, variant),
            users=UserDirectory(store, context),
        )
        self._sessions[session.token] = session
        counter("sessions.opened")
        return session

    def get(self, token: str) -> AppSession | None:
        session = self._sessions.get(token)
        if session is not None:
            self._sessions[token] = session
        return session

    def close(self, token: str) -> bool:
        """Tear a session down. Returns False if it was unknown or already expired."""
        session = self._sessions.pop(token, None)
        if session is None:
            return False
        session.sync.teardown()
        session.users.users = []
        counter("sessions.closed")
        return True


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid authentication scheme")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer {token}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return token


def get_session(request: Request, authorization: str | None = Header(None)) -> AppSession:
    """
    Dependency resolving the caller's session from the Authorization header.

    Usage:
        @router.get("/api/records")
        async def list_records(session: AppSession = Depends(get_session)):
            ...
    """
    token = _bearer_token(authorization)
    session = request.app.state.sessions.get(token)
    if session is None:
        counter("sessions.unknown_token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
