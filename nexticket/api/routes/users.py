"""Team administration endpoints. Elevated users only (403 otherwise)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from nexticket.api.sessions import AppSession, get_session
from nexticket.session.context import ViewState
from nexticket.users.service import UserForm

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(
    q: str | None = Query(None, max_length=200, description="Name or email substring"),
    session: AppSession = Depends(get_session),
) -> dict:
    await session.users.load()
    session.context.navigate(ViewState.USERS)
    users = session.users.search(q)
    return {"users": [u.model_dump() for u in users], "count": len(users)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(form: UserForm, session: AppSession = Depends(get_session)) -> dict:
    user = await session.users.create(form)
    return user.model_dump()


@router.put("/{user_id}")
async def update_user(
    user_id: str, form: UserForm, session: AppSession = Depends(get_session)
) -> dict:
    user = await session.users.update(user_id, form)
    return user.model_dump()


@router.post("/{user_id}/toggle-status")
async def toggle_status(user_id: str, session: AppSession = Depends(get_session)) -> dict:
    if session.users.get(user_id) is None:
        await session.users.load()
    user = await session.users.toggle_status(user_id)
    return user.model_dump()
