"""
Domain models for NexTicket.

Two record families share one shape: a Ticket (support desk) and a Bill
(household expenses). Both carry a stable id, an owner identity, closed
enumerations, free text, timestamps, and an optional AI analysis payload.
Rows are stored snake_case; analysis payloads keep their camelCase keys.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def parse_dt(val: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as written by the store (handles trailing Z)."""
    if val is None or isinstance(val, datetime):
        return val
    return datetime.fromisoformat(val.replace("Z", "+00:00"))


def parse_date(val: str | date | None) -> date | None:
    if val is None or isinstance(val, date):
        return val
    return date.fromisoformat(val[:10])


# ============================================================================
# Users
# ============================================================================


class Role(str, Enum):
    """User role. DEV is the elevated role (cross-owner visibility, admin actions)."""

    DEV = "DEV"
    USER = "USER"


class UserStatus(str, Enum):
    """Login gate."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


def avatar_for(name: str) -> str:
    """Avatar is the upper-cased first letter of the display name."""
    return name.strip()[:1].upper()


class User(BaseModel):
    """A person who can log in. Email is unique and is the visibility join key."""

    model_config = ConfigDict(frozen=False, use_enum_values=True)

    id: str
    name: str
    email: str
    role: Role = Role.USER
    status: UserStatus = UserStatus.ACTIVE
    avatar: str | None = None

    @property
    def is_elevated(self) -> bool:
        return self.role == Role.DEV

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> User:
        """Create User from a users row. The password hash never leaves the row."""
        return cls(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            role=Role(row.get("role") or Role.USER.value),
            status=UserStatus(row.get("status") or UserStatus.ACTIVE.value),
            avatar=row.get("avatar") or avatar_for(row["name"]),
        )


# ============================================================================
# AI analysis payloads
# ============================================================================


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TicketCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    BILLING = "BILLING"
    ACCESS = "ACCESS"
    FEATURE_REQUEST = "FEATURE_REQUEST"
    OTHER = "OTHER"


class Sentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"
    FRUSTRATED = "FRUSTRATED"


class SentimentLabel(str, Enum):
    GOOD = "Good"
    WARNING = "Warning"
    BAD = "Bad"


class TicketAnalysis(BaseModel):
    """Triage suggestion for a ticket."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    priority: TicketPriority
    category: TicketCategory
    sentiment: Sentiment
    summary: str
    suggested_reply: str = Field(alias="suggestedReply")


class FinanceAnalysis(BaseModel):
    """Spending advice for a bill."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    is_expensive: bool = Field(alias="isExpensive")
    savings_tip: str = Field(alias="savingsTip")
    category_insight: str = Field(alias="categoryInsight")
    sentiment_label: SentimentLabel = Field(alias="sentimentLabel")


# ============================================================================
# Records
# ============================================================================


class Record(BaseModel):
    """
    Common shape of a tracked record.

    Subclasses declare which columns are identity/owner (never sent on
    update) and how to map to and from store rows.
    """

    model_config = ConfigDict(frozen=False, use_enum_values=True)

    IMMUTABLE_COLUMNS: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    id: str
    title: str
    status: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title cannot be empty")
        return v.strip()

    @property
    def owner_key(self) -> str:
        """Identity compared against the session user for visibility."""
        raise NotImplementedError

    def to_db_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def mutable_columns(self) -> dict[str, Any]:
        """Row values a remote update may touch (identity and owner excluded)."""
        return {k: v for k, v in self.to_db_dict().items() if k not in self.IMMUTABLE_COLUMNS}


class SenderTag(str, Enum):
    """Who wrote a ticket message."""

    USER = "USER"  # Requester side
    AGENT = "AGENT"  # Support side
    SYSTEM = "SYSTEM"


class Message(BaseModel):
    """One entry of a ticket's append-only message log."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    sender: SenderTag
    text: str
    timestamp: datetime = Field(default_factory=utc_now)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


class Attachment(BaseModel):
    """A file stored in the variant's bucket."""

    name: str
    url: str = ""
    type: str = "application/octet-stream"
    size: int = 0


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Ticket(Record):
    """A support ticket, owned by the requester's email."""

    IMMUTABLE_COLUMNS: ClassVar[frozenset[str]] = frozenset(
        {"id", "owner_email", "requester", "created_at"}
    )

    description: str = ""
    requester: str
    owner_email: str
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    category: TicketCategory = TicketCategory.OTHER
    ai_analysis: TicketAnalysis | None = None
    messages: list[Message] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def owner_key(self) -> str:
        return self.owner_email

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for the tickets table."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "requester": self.requester,
            "owner_email": self.owner_email,
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "ai_analysis": self.ai_analysis.model_dump(by_alias=True)
            if self.ai_analysis
            else None,
            "messages": [m.to_json() for m in self.messages],
            "attachments": [a.model_dump() for a in self.attachments],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Ticket:
        """Create Ticket from a tickets row."""
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row.get("description") or "",
            requester=row.get("requester") or "",
            owner_email=row["owner_email"],
            status=TicketStatus(row["status"]),
            priority=TicketPriority(row.get("priority") or TicketPriority.MEDIUM.value),
            category=TicketCategory(row.get("category") or TicketCategory.OTHER.value),
            ai_analysis=TicketAnalysis.model_validate(row["ai_analysis"])
            if row.get("ai_analysis")
            else None,
            messages=[Message.model_validate(m) for m in row.get("messages") or []],
            attachments=[Attachment.model_validate(a) for a in row.get("attachments") or []],
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class BillStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class BillCategory(str, Enum):
    HOUSING = "HOUSING"  # Rent, condo fees
    UTILITIES = "UTILITIES"  # Power, water, internet
    FOOD = "FOOD"
    TRANSPORT = "TRANSPORT"
    LEISURE = "LEISURE"
    HEALTH = "HEALTH"
    OTHER = "OTHER"


class Bill(Record):
    """A household bill, owned by the user id."""

    IMMUTABLE_COLUMNS: ClassVar[frozenset[str]] = frozenset({"id", "user_id", "created_at"})

    user_id: str
    amount: float = Field(ge=0)
    category: BillCategory = BillCategory.OTHER
    status: BillStatus = BillStatus.PENDING
    due_date: date
    paid_date: date | None = None
    notes: str | None = None
    attachment_url: str | None = None
    ai_analysis: FinanceAnalysis | None = None

    @property
    def owner_key(self) -> str:
        return self.user_id

    @classmethod
    def initial_status(cls, due_date: date, today: date | None = None) -> BillStatus:
        """A bill created past its due date starts OVERDUE."""
        today = today or utc_now().date()
        return BillStatus.OVERDUE if due_date < today else BillStatus.PENDING

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for the bills table."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "status": self.status,
            "due_date": self.due_date.isoformat(),
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
            "notes": self.notes,
            "attachment_url": self.attachment_url,
            "ai_analysis": self.ai_analysis.model_dump(by_alias=True)
            if self.ai_analysis
            else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Bill:
        """Create Bill from a bills row."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row["title"],
            amount=float(row["amount"]),
            category=BillCategory(row.get("category") or BillCategory.OTHER.value),
            status=BillStatus(row["status"]),
            due_date=parse_date(row["due_date"]),
            paid_date=parse_date(row.get("paid_date")),
            notes=row.get("notes"),
            attachment_url=row.get("attachment_url"),
            ai_analysis=FinanceAnalysis.model_validate(row["ai_analysis"])
            if row.get("ai_analysis")
            else None,
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


# ============================================================================
# Notifications
# ============================================================================


class Notification(BaseModel):
    """An alert addressed to one email about one record."""

    id: str
    recipient_email: str
    ticket_id: str
    message: str
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Notification:
        return cls(
            id=str(row["id"]),
            recipient_email=row["recipient_email"],
            ticket_id=str(row["ticket_id"]),
            message=row["message"],
            read=bool(row.get("read", False)),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
        )
