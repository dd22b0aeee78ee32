from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession
from db.session import get_session
from services import tickets as tickets_service
from ..mailer import Mailer, get_mailer
from ..schemas import (
    CheckInPublic, CheckInRequest, CheckInResult, CheckInStats, SessionUser, TicketPublic,
)
from ..security import get_current_session

router = APIRouter(tags=["tickets"])


def _parse_event_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")


@router.post(
    "/api/events/{event_id}/register",
    response_model=TicketPublic,
    status_code=status.HTTP_201_CREATED
)
async def register_for_event(
    event_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer)
) -> TicketPublic:
    """
    Issues a ticket for the current user and emails it to them. A failed email does not undo the registration.

    Throws a 400 if the event is full.

    Throws a 404 if the event doesn't exist or isn't published.

    Throws a 409 if the user is already registered.
    """
    try:
        ticket, event = await tickets_service.register_for_event(session, event_id, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except tickets_service.AlreadyRegisteredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await tickets_service.send_ticket_email(session, mailer, ticket, event)

    result = TicketPublic.model_validate(ticket, from_attributes=True)
    result.event_title = event.title
    result.event_date = event.date
    return result


@router.get("/api/tickets/my-tickets", response_model=list[TicketPublic])
async def get_my_tickets(
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> list[TicketPublic]:
    """
    Returns the current user's tickets (newest first) with the title and date of each event.
    """
    return await tickets_service.list_user_tickets(session, current_user.id)


@router.post("/api/tickets/check-in", response_model=CheckInResult)
async def check_in_ticket(
    body: CheckInRequest,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> CheckInResult:
    """
    Checks an attendee in by ticket id (or ticket number). Scanning the same ticket again is reported as "already_checked_in" and a ticket for another event as "invalid"; both with `success: false`.

    Throws a 400 if the ticket or event id is missing.

    Throws a 403 unless the user organizes the event or is a super admin.

    Throws a 404 if the event or the ticket doesn't exist.
    """
    if not body.ticket_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ticket ID is required")
    if not body.event_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event ID is required")

    try:
        return await tickets_service.check_in(
            session, body.ticket_id, _parse_event_id(body.event_id), current_user, body.method)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You don't have permission to check in attendees for this event"
        )


@router.get("/api/events/{event_id}/check-ins/stats", response_model=CheckInStats)
async def get_check_in_stats(
    event_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> CheckInStats:
    """
    Returns how many of the event's tickets have been checked in.

    Throws a 403 unless the user organizes the event or is a super admin, and a 404 if it doesn't exist.
    """
    try:
        return await tickets_service.check_in_stats(session, event_id, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You don't have permission to view check-ins for this event"
        )


@router.get("/api/events/{event_id}/check-ins/history", response_model=list[CheckInPublic])
async def get_check_in_history(
    event_id: UUID,
    limit: int = Query(default=50, ge=1, le=500),
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> list[CheckInPublic]:
    """
    Returns the latest check-in attempts for an event (duplicates included), newest first.
    """
    try:
        check_ins = await tickets_service.check_in_history(session, event_id, current_user, limit)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You don't have permission to view check-ins for this event"
        )
    return [CheckInPublic.model_validate(c, from_attributes=True) for c in check_ins]
