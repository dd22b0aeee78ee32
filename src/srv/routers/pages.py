"""
Server-rendered pages. Protected pages go through `gate_page` before touching the database.
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import ValidationError
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from db.session import get_session
from services import events as events_service
from services import tickets as tickets_service
from services.users import authenticate_user, list_users
from ..gate import ADMIN_ROLES, DASHBOARD_PATH, EVENT_MANAGER_ROLES, gate_page
from .auth import set_session_cookie
from ..schemas import EventCreate, SessionUser
from ..security import create_session_token, get_optional_session, settings
from ..templating import render_page

logger = get_logger(__name__)

router = APIRouter(tags=["pages"], include_in_schema=False)


def safe_callback(callback_url: Optional[str]) -> str:
    # only ever redirect back into this site
    if callback_url and callback_url.startswith("/") and not callback_url.startswith("//"):
        return callback_url
    return DASHBOARD_PATH


@router.get("/", response_class=HTMLResponse)
async def home_page(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    listing = await events_service.list_public_events(session, limit=12)
    return render_page(request, "home.html", session_user, events=listing.upcoming + listing.running)


@router.get("/events", response_class=HTMLResponse)
async def events_page(
    request: Request,
    category: Optional[str] = None,
    search: Optional[str] = None,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    listing = await events_service.list_public_events(session, search=search, category=category)
    categories = await events_service.list_categories(session)
    return render_page(
        request, "events.html", session_user,
        listing=listing, categories=categories, selected_category=category or "all", search=search or "",
    )


@router.get("/events/{event_id}", response_class=HTMLResponse)
async def event_detail_page(
    request: Request,
    event_id: UUID,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    try:
        event = await events_service.get_event_for_viewer(session, event_id, session_user)
    except LookupError:
        return render_page(request, "not_found.html", session_user, status_code=status.HTTP_404_NOT_FOUND)
    return render_page(request, "event_detail.html", session_user, event=event)


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    callbackUrl: Optional[str] = None,
    session_user: Optional[SessionUser] = Depends(get_optional_session)
) -> Response:
    # already logged in: nothing to do here
    if session_user is not None:
        return RedirectResponse(safe_callback(callbackUrl), status_code=status.HTTP_303_SEE_OTHER)
    return render_page(request, "login.html", callback_url=safe_callback(callbackUrl))


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> Response:
    form = await request.form()
    email = str(form.get("email") or "")
    password = str(form.get("password") or "")
    callback_url = safe_callback(str(form.get("callbackUrl") or ""))

    user = await authenticate_user(session, email, password) if email and password else None
    if user is None:
        return render_page(
            request, "login.html",
            status_code=status.HTTP_401_UNAUTHORIZED,
            callback_url=callback_url, email=email, error="Invalid email or password",
        )

    response = RedirectResponse(callback_url, status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, create_session_token(user))
    logger.info("user_logged_in", user_id=str(user.id))
    return response


@router.get("/logout")
async def logout() -> Response:
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    redirect = gate_page(session_user, None, "/dashboard")
    if redirect:
        return redirect

    is_manager = session_user.role in EVENT_MANAGER_ROLES
    events = await events_service.list_organizer_events(session, session_user.id) if is_manager else []
    tickets = await tickets_service.list_user_tickets(session, session_user.id)
    return render_page(
        request, "dashboard.html", session_user, is_manager=is_manager, events=events, tickets=tickets)


@router.get("/my-tickets", response_class=HTMLResponse)
async def my_tickets_page(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    redirect = gate_page(session_user, None, "/my-tickets")
    if redirect:
        return redirect
    tickets = await tickets_service.list_user_tickets(session, session_user.id)
    return render_page(request, "my_tickets.html", session_user, tickets=tickets)


@router.get("/create-event", response_class=HTMLResponse)
async def create_event_page(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session)
) -> Response:
    # only event planners and super admins can create events
    redirect = gate_page(session_user, EVENT_MANAGER_ROLES, "/create-event")
    if redirect:
        return redirect
    return render_page(request, "create_event.html", session_user, values={}, errors=[])


@router.post("/create-event", response_class=HTMLResponse)
async def create_event_submit(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    redirect = gate_page(session_user, EVENT_MANAGER_ROLES, "/create-event")
    if redirect:
        return redirect

    form = await request.form()
    # browsers submit untouched optional inputs as empty strings
    values = {k: v for k, v in form.items() if isinstance(v, str) and v.strip() != ""}
    try:
        event_in = EventCreate.model_validate(values)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        return render_page(
            request, "create_event.html", session_user,
            status_code=status.HTTP_400_BAD_REQUEST, values=values, errors=errors,
        )

    event = await events_service.create_event(session, event_in, session_user)
    return RedirectResponse(f"/events/{event.id}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/event-dashboard/{event_id}/check-in", response_class=HTMLResponse)
async def check_in_page(
    request: Request,
    event_id: UUID,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    redirect = gate_page(session_user, EVENT_MANAGER_ROLES, f"/event-dashboard/{event_id}/check-in")
    if redirect:
        return redirect
    try:
        event = await events_service.get_managed_event(session, event_id, session_user)
    except LookupError:
        return render_page(request, "not_found.html", session_user, status_code=status.HTTP_404_NOT_FOUND)
    except PermissionError:
        return render_page(request, "forbidden.html", session_user, status_code=status.HTTP_403_FORBIDDEN)

    stats = await tickets_service.check_in_stats(session, event_id, session_user)
    history = await tickets_service.check_in_history(session, event_id, session_user, limit=50)
    return render_page(request, "check_in.html", session_user, event=event, stats=stats, history=history)


@router.get("/super-admin", response_class=HTMLResponse)
async def super_admin_page(
    request: Request,
    session_user: Optional[SessionUser] = Depends(get_optional_session),
    session: AsyncSession = Depends(get_session)
) -> Response:
    redirect = gate_page(session_user, ADMIN_ROLES, "/super-admin")
    if redirect:
        return redirect
    events = await events_service.list_all_events(session)
    users = await list_users(session)
    return render_page(request, "super_admin.html", session_user, events=events, users=users)
