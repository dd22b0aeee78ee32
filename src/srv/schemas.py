import re
from uuid import uuid4, UUID
from enum import Enum
from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime, timezone
from typing import Any, Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # naive input (e.g. from an HTML datetime-local field) is taken to be UTC already
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("Value must not be null")
    return value


def _strip_not_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Value must not be blank")
    return value


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please use a valid email address")
    return value


# object schemas

# for JWTs:
class Token(BaseModel):
    access_token: str
    token_type: str


class UserRole(str, Enum):
    USER = "user"
    EVENT_PLANNER = "event-planner"
    SUPER_ADMIN = "super-admin"


class SessionUser(BaseModel):
    """
    The authenticated user for the current request, decoded from the session token. It is never
    looked up in the database.
    """
    id: UUID
    name: str
    email: str
    # kept as a plain string: anything the token carries is a valid (if useless) role
    role: str


# for users:
class UserBase(SQLModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254, index=True)


class UserCreate(UserBase):  # to be used for creating an user in the DB
    password: str = Field(min_length=8)
    role: UserRole = UserRole.USER

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class User(UserBase, table=True):   # to be used when the user is stored in the DB
    id: UUID = Field(default_factory=uuid4,
                     description="User ID (UUID hex)", primary_key=True)
    email: str = Field(max_length=254, index=True, unique=True)
    hashed_password: str
    role: UserRole = Field(default=UserRole.USER)
    created_at: datetime = Field(default_factory=utcnow)


# to be returned to the client (NOTE: should NEVER include password)
class UserPublic(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: UserRole
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class SignupResponse(BaseModel):
    message: str
    email: str


# for events:
class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    ACTIVE = "active"


# only these are ever shown to the public
LISTED_STATUSES = (EventStatus.PUBLISHED, EventStatus.ACTIVE)


class EventVisibility(str, Enum):
    PUBLIC = "Public"
    PRIVATE = "Private"


class EventFormat(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"
    HYBRID = "Hybrid"


class EventBase(SQLModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10)
    date: datetime = Field(index=True)
    end_date: Optional[datetime] = None
    start_time: Optional[str] = Field(default=None, max_length=20)
    end_time: Optional[str] = Field(default=None, max_length=20)
    location: str = Field(min_length=3, max_length=300)
    image: Optional[str] = None
    capacity: int = Field(default=100, ge=1)
    price: float = Field(default=0.0, ge=0)
    # nullable on purpose: older rows may not have one
    category: Optional[str] = Field(default=None, max_length=100, index=True)
    visibility: EventVisibility = Field(default=EventVisibility.PUBLIC)
    type: EventFormat = Field(default=EventFormat.OFFLINE)


class EventCreate(EventBase):
    category: str = Field(min_length=1, max_length=100)

    @field_validator("date", "end_date")
    @classmethod
    def _utc_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(v)

    @field_validator("title", "location", "category")
    @classmethod
    def _no_blank(cls, v: str) -> str:
        return _strip_not_blank(v)


# `None` means "leave as is" only when the field is missing. an explicit null is rejected for
# every column that cannot be cleared
class EventUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10)
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    start_time: Optional[str] = Field(default=None, max_length=20)
    end_time: Optional[str] = Field(default=None, max_length=20)
    location: Optional[str] = Field(default=None, min_length=3, max_length=300)
    image: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    visibility: Optional[EventVisibility] = None
    type: Optional[EventFormat] = None
    status: Optional[EventStatus] = None

    @field_validator(
        "title", "description", "date", "location", "capacity", "price", "category",
        "visibility", "type", "status"
    )
    @classmethod
    def _required_columns(cls, v: Any) -> Any:
        return _not_null(v)

    @field_validator("title", "location", "category")
    @classmethod
    def _no_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_not_blank(v)

    @field_validator("date", "end_date")
    @classmethod
    def _utc_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(v)


class Event(EventBase, table=True):
    """
    Represents a single event in the database.
    """
    id: UUID = Field(default_factory=uuid4,
                     description="ID of the event", primary_key=True)
    slug: str = Field(max_length=220, index=True, unique=True)
    status: EventStatus = Field(default=EventStatus.DRAFT)
    organizer_id: UUID = Field(
        description="ID of the user who created the event", foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EventPublic(EventBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    status: EventStatus
    organizer_id: UUID
    created_at: datetime
    updated_at: datetime


class EventCreatedResponse(BaseModel):
    success: bool = True
    event: EventPublic


class CategoriesResponse(BaseModel):
    categories: list[str]


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class PublicEventsResponse(BaseModel):
    events: list[EventPublic]
    upcoming: list[EventPublic]
    running: list[EventPublic]
    past: list[EventPublic]
    pagination: Pagination


# for tickets & check-ins:
class Ticket(SQLModel, table=True):
    """
    A ticket issued to one attendee for one event.
    """
    # one ticket per user per event, even when two registrations race each other
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_ticket_event_user"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    attendee_name: str
    attendee_email: str
    ticket_number: str = Field(max_length=40, index=True, unique=True)
    ticket_type: str = Field(default="Standard", max_length=50)
    price: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    check_in_count: int = Field(default=0)
    is_checked_in: bool = Field(default=False)
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[UUID] = None


class TicketPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_id: UUID
    user_id: UUID
    attendee_name: str
    attendee_email: str
    ticket_number: str
    ticket_type: str
    price: float
    created_at: datetime
    check_in_count: int
    is_checked_in: bool
    checked_in_at: Optional[datetime] = None
    event_title: Optional[str] = None
    event_date: Optional[datetime] = None


class CheckInMethod(str, Enum):
    QR = "qr"
    MANUAL = "manual"


class CheckIn(SQLModel, table=True):
    """
    One row per check-in attempt, duplicates included.
    """
    __tablename__ = "check_in"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", index=True)
    ticket_id: UUID = Field(foreign_key="ticket.id", index=True)
    attendee_name: str
    attendee_email: str
    checked_in_at: datetime = Field(default_factory=utcnow)
    checked_in_by: UUID
    checked_in_by_name: str
    method: CheckInMethod = Field(default=CheckInMethod.QR)
    is_duplicate: bool = Field(default=False)


class CheckInRequest(BaseModel):
    # both are optional here so that a missing id is reported by the route with a clear message
    ticket_id: Optional[str] = None
    event_id: Optional[str] = None
    method: CheckInMethod = CheckInMethod.QR


class AttendeeInfo(BaseModel):
    name: str
    email: str
    ticket_type: str
    registered_at: datetime


class CheckInResult(BaseModel):
    success: bool
    status: str
    message: str
    check_in_count: Optional[int] = None
    checked_in_at: Optional[datetime] = None
    attendee: Optional[AttendeeInfo] = None


class CheckInStats(BaseModel):
    total: int
    checked_in: int
    remaining: int
    percentage: int


class CheckInPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ticket_id: UUID
    attendee_name: str
    attendee_email: str
    checked_in_at: datetime
    checked_in_by_name: str
    method: CheckInMethod
    is_duplicate: bool


# for email templates:
class TemplateType(str, Enum):
    SUCCESS = "success"
    REJECTION = "rejection"
    TICKET = "ticket"
    CERTIFICATE = "certificate"
    REMINDER = "reminder"
    CUSTOM = "custom"


class EmailTemplateBase(SQLModel):
    template_name: str = Field(min_length=1, max_length=100)
    template_type: TemplateType
    subject: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    event_id: Optional[UUID] = Field(default=None, foreign_key="event.id")
    is_default: bool = False


class EmailTemplateCreate(EmailTemplateBase):
    # only honoured for super-admins, everyone else always creates their own templates
    user_id: Optional[UUID] = None


class EmailTemplateUpdate(SQLModel):
    template_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    template_type: Optional[TemplateType] = None
    subject: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    event_id: Optional[UUID] = None
    is_default: Optional[bool] = None

    @field_validator("template_name", "template_type", "subject", "content", "is_default")
    @classmethod
    def _required_columns(cls, v: Any) -> Any:
        return _not_null(v)

    @field_validator("template_name", "subject", "content")
    @classmethod
    def _no_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_not_blank(v)


class EmailTemplate(EmailTemplateBase, table=True):
    __tablename__ = "email_template"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EmailTemplatePublic(EmailTemplateBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class TemplatePreviewRequest(BaseModel):
    variables: dict[str, Any] = {}


class RenderedTemplate(BaseModel):
    subject: str
    content: str


# generic REST responses
class MessageResponse(BaseModel):
    message: str
