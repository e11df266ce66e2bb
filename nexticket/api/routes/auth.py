"""Login and logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from nexticket.api.sessions import AppSession, get_session
from nexticket.auth.service import AuthService
from nexticket.observability.logging import get_logger

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str
    avatar: str | None = None


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request) -> LoginResponse:
    """
    Log in and open a session.

    The session's records (and, for tickets, notifications) are loaded
    before the token is returned. 401 on bad credentials, 403 if inactive.
    """
    state = request.app.state
    user = await AuthService(state.store).login(body.email, body.password)

    session = state.sessions.open(user, state.store, state.variant)
    await session.sync.load()

    return LoginResponse(token=session.token, user=UserResponse(**user.model_dump()))


@router.post("/logout")
async def logout(request: Request, session: AppSession = Depends(get_session)) -> dict:
    request.app.state.sessions.close(session.token)
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def me(session: AppSession = Depends(get_session)) -> UserResponse:
    return UserResponse(**session.user.model_dump())
