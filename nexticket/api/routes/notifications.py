"""Notification inbox endpoints (ticket deployments only)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from nexticket.api.sessions import AppSession, get_session
from nexticket.notifications.inbox import NotificationInbox
from nexticket.session.context import ViewState

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _inbox(session: AppSession) -> NotificationInbox:
    if session.sync.inbox is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notifications are not available for this deployment.",
        )
    return session.sync.inbox


@router.get("")
async def list_notifications(session: AppSession = Depends(get_session)) -> dict[str, Any]:
    inbox = _inbox(session)
    session.context.navigate(ViewState.NOTIFICATIONS)
    notifications = await inbox.load()
    return {
        "notifications": [n.model_dump(mode="json") for n in notifications],
        "unread_count": inbox.unread_count,
    }


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, session: AppSession = Depends(get_session)) -> dict:
    inbox = _inbox(session)
    await inbox.mark_read(notification_id)
    return {"success": True, "unread_count": inbox.unread_count}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str, session: AppSession = Depends(get_session)
) -> dict:
    inbox = _inbox(session)
    await inbox.delete(notification_id)
    return {"success": True, "unread_count": inbox.unread_count}


@router.post("/open/{record_id}")
async def open_record(record_id: str, session: AppSession = Depends(get_session)) -> dict:
    """Jump from a notification to its record. 404 if it is gone or not visible."""
    inbox = _inbox(session)
    record = await inbox.open_record(record_id)
    return {"record": record.to_db_dict(), "unread_count": inbox.unread_count}
