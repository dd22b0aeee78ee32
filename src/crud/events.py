from typing import Optional
from uuid import UUID
from sqlalchemy import func
from sqlmodel import col, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
from srv.schemas import Event, LISTED_STATUSES


async def save_event(session: AsyncSession, event: Event) -> Event:
    """
    Inserts (or updates) an event and returns the refreshed row.
    """
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def get_event(session: AsyncSession, event_id: UUID) -> Optional[Event]:
    return await session.get(Event, event_id)


async def slug_exists(session: AsyncSession, slug: str) -> bool:
    result = await session.exec(select(Event.id).where(Event.slug == slug))
    return result.first() is not None


async def select_distinct_categories(session: AsyncSession) -> list[Optional[str]]:
    """
    Returns every distinct value of `Event.category`, including NULL and blank ones.
    """
    result = await session.exec(select(Event.category).distinct())
    return list(result.all())


def escape_like(text: str) -> str:
    # "%" and "_" typed by a user are literal characters, not wildcards
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _public_filters(search: Optional[str], category: Optional[str]) -> list:
    filters = [col(Event.status).in_(LISTED_STATUSES)]
    if search:
        pattern = f"%{escape_like(search)}%"
        filters.append(or_(
            col(Event.title).ilike(pattern, escape="\\"),
            col(Event.description).ilike(pattern, escape="\\"),
            col(Event.location).ilike(pattern, escape="\\"),
        ))
    if category:
        filters.append(Event.category == category)
    return filters


async def select_public_events(
    session: AsyncSession,
    search: Optional[str],
    category: Optional[str],
    offset: int,
    limit: int
) -> tuple[list[Event], int]:
    """
    Filters the published/active events (soonest first) and returns one page of them, along with the
    total number of matches.
    """
    filters = _public_filters(search, category)
    result = await session.exec(
        select(Event).where(*filters).order_by(col(Event.date)).offset(offset).limit(limit))
    events = list(result.all())

    total = await session.exec(select(func.count()).select_from(Event).where(*filters))
    return events, total.one()


async def select_events_by_organizer(session: AsyncSession, organizer_id: UUID) -> list[Event]:
    result = await session.exec(
        select(Event).where(Event.organizer_id == organizer_id).order_by(col(Event.date).desc()))
    return list(result.all())


async def select_all_events(session: AsyncSession) -> list[Event]:
    result = await session.exec(select(Event).order_by(col(Event.created_at).desc()))
    return list(result.all())


async def delete_event(session: AsyncSession, event: Event) -> None:
    await session.delete(event)
    await session.commit()
