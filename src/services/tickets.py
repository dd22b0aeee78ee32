import secrets
import string
from typing import Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from crud import tickets as tickets_crud
from crud.events import get_event
from crud.users import get_user_by_id
from services.email_templates import render, resolve_template
from services.events import get_managed_event
from srv.mailer import Mailer
from srv.schemas import (
    AttendeeInfo, CheckIn, CheckInMethod, CheckInResult, CheckInStats, Event, LISTED_STATUSES,
    SessionUser, TemplateType, Ticket, TicketPublic, UserPublic, utcnow,
)

logger = get_logger(__name__)

_TICKET_ALPHABET = string.ascii_uppercase + string.digits


class AlreadyRegisteredError(ValueError):
    """Raised when the user already holds a ticket for the event."""


def generate_ticket_number() -> str:
    """
    Returns a human-readable ticket number, e.g. "TKT-8J2KQ0-4821".
    """
    code = "".join(secrets.choice(_TICKET_ALPHABET) for _ in range(6))
    suffix = "".join(secrets.choice(string.digits) for _ in range(4))
    return f"TKT-{code}-{suffix}"


async def register_for_event(session: AsyncSession, event_id: UUID, attendee: SessionUser) -> tuple[Ticket, Event]:
    """
    Issues a ticket for `attendee`.

    Raises `LookupError` when the event doesn't exist or isn't open, `AlreadyRegisteredError` for a
    second registration and `ValueError` once the event is at capacity.
    """
    event = await get_event(session, event_id)
    if event is None or event.status not in LISTED_STATUSES:
        raise LookupError("Event not found")
    if await tickets_crud.get_user_ticket_for_event(session, event.id, attendee.id):
        raise AlreadyRegisteredError("You are already registered for this event")
    total, _ = await tickets_crud.count_event_tickets(session, event.id)
    if total >= event.capacity:
        raise ValueError("Event is full")

    ticket = Ticket(
        event_id=event.id,
        user_id=attendee.id,
        attendee_name=attendee.name,
        attendee_email=attendee.email,
        ticket_number=generate_ticket_number(),
        price=event.price,
    )
    # the checks above are repeated by the database for concurrent registrations
    try:
        await tickets_crud.insert_ticket(session, ticket, event.capacity)
    except tickets_crud.CapacityExceededError:
        raise ValueError("Event is full")
    except IntegrityError:
        if await tickets_crud.get_user_ticket_for_event(session, event.id, attendee.id):
            raise AlreadyRegisteredError("You are already registered for this event")
        raise
    logger.info("ticket_issued", ticket_id=str(ticket.id), event_id=str(event.id), user_id=str(attendee.id))
    return ticket, event


def ticket_variables(ticket: Ticket, event: Event, organizer_name: str) -> dict[str, str]:
    return {
        "attendeeName": ticket.attendee_name,
        "eventName": event.title,
        "eventDate": event.date.strftime("%A, %B %d, %Y"),
        "eventTime": event.start_time or event.date.strftime("%H:%M"),
        "eventLocation": event.location,
        "ticketId": ticket.ticket_number,
        "organizerName": organizer_name,
    }


async def send_ticket_email(session: AsyncSession, mailer: Mailer, ticket: Ticket, event: Event) -> bool:
    """
    Emails the ticket to its holder using the organizer's default ticket template (or the built-in one).
    """
    organizer = await get_user_by_id(session, event.organizer_id)
    organizer_name = UserPublic.model_validate(organizer, from_attributes=True).full_name if organizer else ""
    subject, content = await resolve_template(session, event.organizer_id, TemplateType.TICKET)
    rendered = render(subject, content, ticket_variables(ticket, event, organizer_name))
    sent = await mailer.send(ticket.attendee_email, rendered.subject, text=rendered.content)
    if not sent:
        logger.warning("ticket_email_not_sent", ticket_id=str(ticket.id))
    return sent


async def list_user_tickets(session: AsyncSession, user_id: UUID) -> list[TicketPublic]:
    tickets = []
    for ticket, event in await tickets_crud.select_user_tickets(session, user_id):
        item = TicketPublic.model_validate(ticket, from_attributes=True)
        item.event_title = event.title
        item.event_date = event.date
        tickets.append(item)
    return tickets


async def _find_ticket(session: AsyncSession, ticket_ref: str) -> Optional[Ticket]:
    # scanners send either the ticket's UUID or its printed ticket number
    try:
        ticket = await tickets_crud.get_ticket(session, UUID(ticket_ref))
    except ValueError:
        ticket = None
    if ticket is None:
        ticket = await tickets_crud.get_ticket_by_number(session, ticket_ref.strip().upper())
    return ticket


async def check_in(
    session: AsyncSession,
    ticket_ref: str,
    event_id: UUID,
    actor: SessionUser,
    method: CheckInMethod = CheckInMethod.QR
) -> CheckInResult:
    """
    Checks a ticket in at an event. Every accepted scan is logged, duplicates included.

    Raises `LookupError` for an unknown event or ticket and `PermissionError` unless `actor` organizes
    the event (or is a super-admin). A ticket for another event is reported as an "invalid" result.
    """
    event = await get_managed_event(session, event_id, actor)
    ticket = await _find_ticket(session, ticket_ref)
    if ticket is None:
        raise LookupError("Ticket not found")
    if ticket.event_id != event.id:
        return CheckInResult(success=False, status="invalid", message="This ticket is for a different event")

    now = utcnow()
    count = await tickets_crud.increment_check_in(session, ticket.id, now, actor.id)
    duplicate = count > 1
    await tickets_crud.insert_check_in(
        session,
        ticket,
        CheckIn(
            event_id=event.id,
            ticket_id=ticket.id,
            attendee_name=ticket.attendee_name,
            attendee_email=ticket.attendee_email,
            checked_in_at=now,
            checked_in_by=actor.id,
            checked_in_by_name=actor.name,
            method=method,
            is_duplicate=duplicate,
        )
    )
    logger.info("ticket_checked_in", ticket_id=str(ticket.id), event_id=str(event.id), duplicate=duplicate)

    attendee = AttendeeInfo(
        name=ticket.attendee_name,
        email=ticket.attendee_email,
        ticket_type=ticket.ticket_type,
        registered_at=ticket.created_at,
    )
    if duplicate:
        return CheckInResult(
            success=False,
            status="already_checked_in",
            message="This ticket has already been checked in",
            check_in_count=ticket.check_in_count,
            checked_in_at=ticket.checked_in_at,
            attendee=attendee,
        )
    return CheckInResult(
        success=True,
        status="checked_in",
        message="Attendee successfully checked in",
        check_in_count=ticket.check_in_count,
        checked_in_at=ticket.checked_in_at,
        attendee=attendee,
    )


async def check_in_stats(session: AsyncSession, event_id: UUID, actor: SessionUser) -> CheckInStats:
    event = await get_managed_event(session, event_id, actor)
    total, checked_in = await tickets_crud.count_event_tickets(session, event.id)
    return CheckInStats(
        total=total,
        checked_in=checked_in,
        remaining=total - checked_in,
        percentage=round(checked_in / total * 100) if total else 0,
    )


async def check_in_history(session: AsyncSession, event_id: UUID, actor: SessionUser, limit: int = 50) -> list[CheckIn]:
    event = await get_managed_event(session, event_id, actor)
    return await tickets_crud.select_check_ins(session, event.id, min(max(limit, 1), 500))
