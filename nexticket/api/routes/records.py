"""
Record endpoints for the active variant (tickets or bills).

Provides endpoints for:
- Listing, searching, opening, creating, editing and deleting records
- Ticket messages and attachments
- AI analysis and bill payment
- Dashboard aggregates
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field, ValidationError

from nexticket.api.sessions import AppSession, get_session
from nexticket.config import API_UPLOAD_MAX_BYTES
from nexticket.observability.logging import get_logger
from nexticket.records.filters import search_records
from nexticket.records.models import Bill, Record, Ticket
from nexticket.records.stats import dashboard_stats
from nexticket.session.context import ViewState
from nexticket.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/records", tags=["records"])
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class RecordCreateRequest(BaseModel):
    """New record. Ticket fields and bill fields share one body; unused ones are ignored."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    priority: str | None = None
    category: str | None = None
    amount: float | None = Field(None, ge=0)
    due_date: date | None = None
    notes: str | None = Field(None, max_length=2000)


class RecordUpdateRequest(BaseModel):
    """Partial edit. Only fields that are set are changed."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    amount: float | None = Field(None, ge=0)
    due_date: date | None = None
    notes: str | None = Field(None, max_length=2000)


class MessageRequest(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class RecordListResponse(BaseModel):
    records: list[dict[str, Any]]
    count: int
    loading: bool = False


def _out(record: Record) -> dict[str, Any]:
    return record.to_db_dict()


def _invalid(e: ValidationError | ValueError) -> HTTPException:
    message = str(e.errors()[0]["msg"]) if isinstance(e, ValidationError) else str(e)
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=sanitize_error_message(message, 400),
    )


def build_draft(session: AppSession, body: RecordCreateRequest) -> Record:
    """Turn a create request into an unsaved record owned by the caller."""
    user = session.user
    if session.sync.variant.model is Bill:
        if body.amount is None or body.due_date is None:
            raise ValueError("amount and due_date are required")
        return Bill(
            id="",
            user_id=user.id,
            title=body.title,
            amount=body.amount,
            category=body.category or "OTHER",
            due_date=body.due_date,
            notes=body.notes,
        )

    return Ticket(
        id="",
        title=body.title,
        description=body.description,
        requester=user.name,
        owner_email=user.email,
        priority=body.priority or "MEDIUM",
        category=body.category or "OTHER",
    )


def apply_changes(record: Record, body: RecordUpdateRequest) -> Record:
    """Validate a partial edit against the record's model."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    allowed = set(type(record).model_fields) - record.IMMUTABLE_COLUMNS
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Fields not editable here: {', '.join(sorted(unknown))}")
    data = record.model_dump(by_alias=True)
    data.update(changes)
    return type(record).model_validate(data)


# ============================================================================
# Collection Endpoints
# ============================================================================


@router.get("", response_model=RecordListResponse)
async def list_records(
    q: str | None = Query(None, max_length=200, description="Case-insensitive title search"),
    status_filter: str | None = Query(None, alias="status", description="Status or ALL"),
    refresh: bool = Query(False, description="Reload from the store first"),
    session: AppSession = Depends(get_session),
) -> RecordListResponse:
    if refresh:
        await session.sync.load()
    session.context.navigate(ViewState.LIST)
    records = search_records(session.sync.records(), q, status_filter)
    return RecordListResponse(
        records=[_out(r) for r in records],
        count=len(records),
        loading=session.sync.loading,
    )


@router.get("/stats")
async def record_stats(session: AppSession = Depends(get_session)) -> dict[str, Any]:
    """Dashboard aggregates over the caller's visible records."""
    session.context.navigate(ViewState.DASHBOARD)
    return dashboard_stats(session.sync.records(), session.sync.variant.name)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    body: RecordCreateRequest, session: AppSession = Depends(get_session)
) -> dict[str, Any]:
    try:
        draft = build_draft(session, body)
    except (ValidationError, ValueError) as e:
        raise _invalid(e) from e

    record = await session.sync.create(draft)
    return _out(record)


# ============================================================================
# Single Record Endpoints
# ============================================================================


@router.get("/{record_id}")
async def get_record(record_id: str, session: AppSession = Depends(get_session)) -> dict[str, Any]:
    """Open a record in the detail view."""
    return _out(session.sync.open(record_id))


@router.put("/{record_id}")
async def update_record(
    record_id: str, body: RecordUpdateRequest, session: AppSession = Depends(get_session)
) -> dict[str, Any]:
    current = session.sync.open(record_id)
    try:
        changed = apply_changes(current, body)
    except (ValidationError, ValueError) as e:
        raise _invalid(e) from e

    record = await session.sync.update(changed)
    return _out(record)


@router.delete("/{record_id}")
async def delete_record(
    record_id: str,
    confirm: bool = Query(False, description="Must be true to actually delete"),
    session: AppSession = Depends(get_session),
) -> dict[str, Any]:
    deleted = await session.sync.remove(record_id, confirm=lambda _record: confirm)
    return {"deleted": deleted, "view": session.context.view.value}


@router.post("/{record_id}/messages")
async def add_message(
    record_id: str, body: MessageRequest, session: AppSession = Depends(get_session)
) -> dict[str, Any]:
    return _out(await session.sync.add_message(record_id, body.text))


@router.delete("/{record_id}/messages/{message_id}")
async def delete_message(
    record_id: str, message_id: str, session: AppSession = Depends(get_session)
) -> dict[str, Any]:
    return _out(await session.sync.delete_message(record_id, message_id))


@router.post("/{record_id}/attachments")
async def upload_attachment(
    record_id: str,
    file: UploadFile = File(...),
    session: AppSession = Depends(get_session),
) -> dict[str, Any]:
    content = await file.read()
    if len(content) > API_UPLOAD_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large.",
        )
    record = await session.sync.attach(
        record_id, file.filename or "file", content, file.content_type
    )
    return _out(record)


@router.post("/{record_id}/analysis")
async def analyze_record(
    record_id: str, session: AppSession = Depends(get_session)
) -> dict[str, Any]:
    """Run the AI analysis once; a cached analysis is returned without a new call."""
    analysis = await session.sync.ensure_analysis(record_id)
    return {
        "available": analysis is not None,
        "analysis": analysis.model_dump(by_alias=True) if analysis is not None else None,
    }


@router.post("/{record_id}/paid")
async def mark_paid(record_id: str, session: AppSession = Depends(get_session)) -> dict[str, Any]:
    return _out(await session.sync.mark_paid(record_id))
