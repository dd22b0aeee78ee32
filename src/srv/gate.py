"""
Role gate for the server-rendered pages. A page asks the gate first and renders only when it gets
`None` back; otherwise it returns the redirect as-is.
"""
from typing import Iterable, Optional
from urllib.parse import quote
from fastapi import status
from fastapi.responses import RedirectResponse
from srv.schemas import SessionUser, UserRole

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

EVENT_MANAGER_ROLES = frozenset({UserRole.EVENT_PLANNER.value, UserRole.SUPER_ADMIN.value})
ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN.value})


def login_url(callback_url: str) -> str:
    return f"{LOGIN_PATH}?callbackUrl={quote(callback_url, safe='/')}"


def gate_page(
    session_user: Optional[SessionUser],
    allowed_roles: Optional[Iterable[str]],
    callback_url: str
) -> Optional[RedirectResponse]:
    """
    Decides whether a protected page may render.

    Returns a redirect to the login page (carrying `callback_url`) when there is no session, a
    redirect to the dashboard when the session's role is not in `allowed_roles`, and `None` when the
    page may render. `allowed_roles=None` admits any authenticated user.
    """
    if session_user is None:
        return RedirectResponse(login_url(callback_url), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    if allowed_roles is not None and session_user.role not in set(allowed_roles):
        return RedirectResponse(DASHBOARD_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return None


def can_manage(session_user: Optional[SessionUser], organizer_id) -> bool:
    """
    True for the organizer of a resource and for super-admins.
    """
    if session_user is None:
        return False
    return session_user.role == UserRole.SUPER_ADMIN.value or session_user.id == organizer_id
