from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from db.session import get_session
from services import events as events_service
from ..errors import error_response
from ..gate import ADMIN_ROLES, EVENT_MANAGER_ROLES
from ..schemas import (
    CategoriesResponse, EventCreate, EventCreatedResponse, EventPublic, EventUpdate,
    PublicEventsResponse, SessionUser,
)
from ..security import get_current_session, get_optional_session, require_roles

logger = get_logger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


# static paths must be declared before "/{event_id}"
@router.get(
    "/categories",
    response_model=CategoriesResponse,
    responses={500: {"description": "The category query failed"}}
)
async def get_categories(
    session: AsyncSession = Depends(get_session)
):
    """
    Returns every distinct event category, leaving out empty ones.

    Throws a 500 (with the underlying error message, when there is one) if the query fails.
    """
    try:
        categories = await events_service.list_categories(session)
    except Exception as e:
        logger.error("fetch_categories_failed", error=str(e))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(e) or "An error occurred while fetching categories"
        )
    return CategoriesResponse(categories=categories)


@router.get("/public", response_model=PublicEventsResponse)
async def get_public_events(
    search: Optional[str] = Query(default=None, max_length=200),
    category: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    session: AsyncSession = Depends(get_session)
) -> PublicEventsResponse:
    """
    Lists published events (soonest first), split into upcoming, running and past ones.

    Keyword arguments:

    search -- matched case-insensitively against the title, description and location

    category -- only events in this category ("all" disables the filter)

    limit / page -- pagination (at most 100 per page)
    """
    return await events_service.list_public_events(session, search, category, page, limit)


@router.post(
    "/create",
    response_model=EventCreatedResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_event(
    event_in: EventCreate,
    organizer: SessionUser = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    session: AsyncSession = Depends(get_session)
) -> EventCreatedResponse:
    """
    Creates an event organized by the current user. Public events are published immediately.

    Throws a 400 if the body is invalid.

    Throws a 401 if there is no session and a 403 unless the user is an event planner or a super admin.
    """
    event = await events_service.create_event(session, event_in, organizer)
    return EventCreatedResponse(event=EventPublic.model_validate(event, from_attributes=True))


@router.get("/my-events", response_model=list[EventPublic])
async def get_my_events(
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> list[EventPublic]:
    """
    Returns the events organized by the current user, newest first.
    """
    events = await events_service.list_organizer_events(session, current_user.id)
    return [EventPublic.model_validate(e, from_attributes=True) for e in events]


@router.get("/{event_id}", response_model=EventPublic)
async def get_event(
    event_id: UUID,
    viewer: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> EventPublic:
    """
    Returns a single event.

    Throws a 404 if the event doesn't exist, or if it isn't published and the viewer is neither its organizer nor a super admin.
    """
    try:
        event = await events_service.get_event_for_viewer(session, event_id, viewer)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return EventPublic.model_validate(event, from_attributes=True)


@router.patch("/{event_id}", response_model=EventPublic)
async def update_event(
    event_id: UUID,
    changes: EventUpdate,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> EventPublic:
    """
    Updates some fields of an event. Changing the title also changes the slug.

    Throws a 403 unless the user organizes the event or is a super admin, and a 404 if it doesn't exist.
    """
    try:
        event = await events_service.update_event(session, event_id, changes, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return EventPublic.model_validate(event, from_attributes=True)


@router.delete("/{event_id}", status_code=status.HTTP_200_OK)
async def delete_event(
    event_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> JSONResponse:
    """
    Deletes an event together with its tickets and check-in log.

    Throws a 403 unless the user organizes the event or is a super admin, and a 404 if it doesn't exist.
    """
    try:
        await events_service.delete_event(session, event_id, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return JSONResponse({"message": "Event deleted successfully"})


@admin_router.get("/events", response_model=list[EventPublic])
async def get_all_events(
    _admin: SessionUser = Depends(require_roles(*ADMIN_ROLES)),
    session: AsyncSession = Depends(get_session)
) -> list[EventPublic]:
    """
    Returns every event regardless of status. Super admins only.
    """
    events = await events_service.list_all_events(session)
    return [EventPublic.model_validate(e, from_attributes=True) for e in events]
