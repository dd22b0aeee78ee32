from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlalchemy import delete, func, update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession
from srv.schemas import CheckIn, Event, Ticket


class CapacityExceededError(Exception):
    """Raised when an insert would take an event past its capacity."""


async def insert_ticket(session: AsyncSession, ticket: Ticket, capacity: int) -> Ticket:
    """
    Inserts `ticket` inside a SAVEPOINT and commits it.

    The count is taken again after the insert, in the same transaction, so that two registrations
    racing for the last seat cannot both succeed (`CapacityExceededError`). A second ticket for the
    same user and event fails on the unique constraint (`IntegrityError`). Either way the savepoint
    is rolled back and the session stays usable.
    """
    async with session.begin_nested():
        session.add(ticket)
        await session.flush()
        total = await session.exec(
            select(func.count()).select_from(Ticket).where(Ticket.event_id == ticket.event_id))
        if total.one() > capacity:
            raise CapacityExceededError(str(ticket.event_id))
    await session.commit()
    await session.refresh(ticket)
    return ticket


async def get_ticket(session: AsyncSession, ticket_id: UUID) -> Optional[Ticket]:
    return await session.get(Ticket, ticket_id)


async def get_ticket_by_number(session: AsyncSession, ticket_number: str) -> Optional[Ticket]:
    result = await session.exec(select(Ticket).where(Ticket.ticket_number == ticket_number))
    return result.first()


async def get_user_ticket_for_event(session: AsyncSession, event_id: UUID, user_id: UUID) -> Optional[Ticket]:
    result = await session.exec(
        select(Ticket).where((Ticket.event_id == event_id) & (Ticket.user_id == user_id)))
    return result.first()


async def count_event_tickets(session: AsyncSession, event_id: UUID) -> tuple[int, int]:
    """
    Returns `(total, checked_in)` for an event's tickets.
    """
    total = await session.exec(
        select(func.count()).select_from(Ticket).where(Ticket.event_id == event_id))
    checked_in = await session.exec(
        select(func.count()).select_from(Ticket).where(
            (Ticket.event_id == event_id) & (col(Ticket.is_checked_in).is_(True))))
    return total.one(), checked_in.one()


async def select_user_tickets(session: AsyncSession, user_id: UUID) -> list[tuple[Ticket, Event]]:
    """
    Returns a user's tickets together with the event each one belongs to, newest first.
    """
    result = await session.exec(
        select(Ticket, Event)
        .join(Event, col(Event.id) == col(Ticket.event_id))
        .where(Ticket.user_id == user_id)
        .order_by(col(Ticket.created_at).desc())
    )
    return [(t, e) for t, e in result.all()]


async def increment_check_in(
    session: AsyncSession,
    ticket_id: UUID,
    checked_in_at: datetime,
    checked_in_by: UUID
) -> int:
    """
    Bumps the ticket's check-in counter in the database and returns the new count. Does not commit.
    """
    result = await session.execute(
        update(Ticket)
        .where(col(Ticket.id) == ticket_id)
        .values(
            check_in_count=col(Ticket.check_in_count) + 1,
            is_checked_in=True,
            checked_in_at=checked_in_at,
            checked_in_by=checked_in_by,
        )
        .returning(col(Ticket.check_in_count))
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


async def insert_check_in(session: AsyncSession, ticket: Ticket, check_in: CheckIn) -> CheckIn:
    """
    Stores the check-in log row together with the pending counter update, then reloads the ticket.
    """
    session.add(check_in)
    await session.commit()
    await session.refresh(ticket)
    await session.refresh(check_in)
    return check_in


async def select_check_ins(session: AsyncSession, event_id: UUID, limit: int) -> list[CheckIn]:
    result = await session.exec(
        select(CheckIn)
        .where(CheckIn.event_id == event_id)
        .order_by(col(CheckIn.checked_in_at).desc())
        .limit(limit)
    )
    return list(result.all())


async def delete_event_tickets(session: AsyncSession, event_id: UUID) -> None:
    """
    Removes an event's check-in log and tickets. Does not commit.
    """
    await session.execute(delete(CheckIn).where(col(CheckIn.event_id) == event_id))
    await session.execute(delete(Ticket).where(col(Ticket.event_id) == event_id))
