import math
import re
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from crud import events as events_crud
from crud.email_templates import detach_event_templates
from crud.tickets import delete_event_tickets
from srv.gate import can_manage
from srv.schemas import (
    Event, EventCreate, EventPublic, EventStatus, EventUpdate, EventVisibility, LISTED_STATUSES,
    Pagination, PublicEventsResponse, SessionUser, utcnow,
)

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def slugify(title: str) -> str:
    """
    Turns a title into a URL slug: lowercase, no special characters, hyphens instead of spaces.
    """
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-") or "event"


async def unique_slug(session: AsyncSession, title: str) -> str:
    base = slugify(title)
    slug, n = base, 1
    while await events_crud.slug_exists(session, slug):
        n += 1
        slug = f"{base}-{n}"
    return slug


def clean_categories(categories: list[Optional[str]]) -> list[str]:
    """
    Drops NULL and blank categories. The surviving values are returned as stored.
    """
    return [c for c in categories if c and c.strip() != ""]


async def list_categories(session: AsyncSession) -> list[str]:
    return clean_categories(await events_crud.select_distinct_categories(session))


def event_window(event: Event) -> tuple[datetime, datetime]:
    # events without an end date are treated as running for a whole day
    start = event.date
    end = event.end_date if event.end_date else start + timedelta(days=1)
    return start, end


def classify_event(event: Event, now: datetime) -> str:
    """
    Returns "upcoming", "running" or "past" for `event` at time `now`.
    """
    start, end = event_window(event)
    if start > now:
        return "upcoming"
    if end < now:
        return "past"
    return "running"


async def list_public_events(
    session: AsyncSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = MAX_PAGE_SIZE,
    now: Optional[datetime] = None
) -> PublicEventsResponse:
    """
    Lists one page of published/active events and splits it into upcoming, running and past ones.
    A `category` of "all" means no category filter.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    if category == "all":
        category = None

    events, total = await events_crud.select_public_events(
        session, search or None, category or None, (page - 1) * limit, limit)

    now = now or utcnow()
    buckets: dict[str, list[EventPublic]] = {"upcoming": [], "running": [], "past": []}
    public = []
    for e in events:
        item = EventPublic.model_validate(e, from_attributes=True)
        public.append(item)
        buckets[classify_event(e, now)].append(item)

    return PublicEventsResponse(
        events=public,
        upcoming=buckets["upcoming"],
        running=buckets["running"],
        past=buckets["past"],
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )


async def create_event(session: AsyncSession, data: EventCreate, organizer: SessionUser) -> Event:
    """
    Creates an event owned by `organizer`. Public events are published right away; private ones start as drafts.
    """
    event = Event(
        **data.model_dump(),
        slug=await unique_slug(session, data.title),
        organizer_id=organizer.id,
        status=EventStatus.PUBLISHED if data.visibility == EventVisibility.PUBLIC else EventStatus.DRAFT,
    )
    await events_crud.save_event(session, event)
    logger.info("event_created", event_id=str(event.id), organizer_id=str(organizer.id), slug=event.slug)
    return event


async def get_event_for_viewer(
    session: AsyncSession,
    event_id: UUID,
    viewer: Optional[SessionUser]
) -> Event:
    """
    Returns the event if `viewer` may see it. Unlisted events are only visible to their organizer and
    super-admins; to everyone else they do not exist (`LookupError`).
    """
    event = await events_crud.get_event(session, event_id)
    if event is None:
        raise LookupError("Event not found")
    if event.status not in LISTED_STATUSES and not can_manage(viewer, event.organizer_id):
        raise LookupError("Event not found")
    return event


async def get_managed_event(session: AsyncSession, event_id: UUID, actor: SessionUser) -> Event:
    """
    Returns the event if `actor` organizes it (or is a super-admin).

    Raises `LookupError` if it doesn't exist and `PermissionError` if `actor` may not manage it.
    """
    event = await events_crud.get_event(session, event_id)
    if event is None:
        raise LookupError("Event not found")
    if not can_manage(actor, event.organizer_id):
        raise PermissionError("Forbidden: You don't have permission to manage this event")
    return event


async def update_event(session: AsyncSession, event_id: UUID, data: EventUpdate, actor: SessionUser) -> Event:
    event = await get_managed_event(session, event_id, actor)
    changes = data.model_dump(exclude_unset=True)
    if "title" in changes and changes["title"] != event.title:
        event.slug = await unique_slug(session, changes["title"])
    for field, value in changes.items():
        setattr(event, field, value)
    event.updated_at = utcnow()
    await events_crud.save_event(session, event)
    logger.info("event_updated", event_id=str(event.id), fields=sorted(changes))
    return event


async def delete_event(session: AsyncSession, event_id: UUID, actor: SessionUser) -> None:
    event = await get_managed_event(session, event_id, actor)
    await delete_event_tickets(session, event.id)
    await detach_event_templates(session, event.id)
    await events_crud.delete_event(session, event)
    logger.info("event_deleted", event_id=str(event_id), actor_id=str(actor.id))


async def list_organizer_events(session: AsyncSession, organizer_id: UUID) -> list[Event]:
    return await events_crud.select_events_by_organizer(session, organizer_id)


async def list_all_events(session: AsyncSession) -> list[Event]:
    return await events_crud.select_all_events(session)
