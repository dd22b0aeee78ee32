from uuid import uuid4
from srv.gate import ADMIN_ROLES, EVENT_MANAGER_ROLES, can_manage, gate_page, login_url
from srv.schemas import SessionUser


def _session(role: str) -> SessionUser:
    return SessionUser(id=uuid4(), name="Test", email="test@example.com", role=role)


def test_no_session_redirects_to_login_with_callback():
    r = gate_page(None, EVENT_MANAGER_ROLES, "/create-event")
    assert r is not None
    assert r.status_code == 307
    assert r.headers["location"] == "/login?callbackUrl=/create-event"


def test_wrong_role_redirects_to_dashboard():
    r = gate_page(_session("user"), EVENT_MANAGER_ROLES, "/create-event")
    assert r is not None
    assert r.status_code == 307
    assert r.headers["location"] == "/dashboard"

    r = gate_page(_session("event-planner"), ADMIN_ROLES, "/super-admin")
    assert r.headers["location"] == "/dashboard"


def test_allowed_role_renders():
    assert gate_page(_session("event-planner"), EVENT_MANAGER_ROLES, "/create-event") is None
    assert gate_page(_session("super-admin"), EVENT_MANAGER_ROLES, "/create-event") is None
    assert gate_page(_session("super-admin"), ADMIN_ROLES, "/super-admin") is None


def test_unknown_role_is_treated_as_not_allowed():
    r = gate_page(_session("superadmin"), ADMIN_ROLES, "/super-admin")
    assert r.headers["location"] == "/dashboard"


def test_any_session_passes_when_no_roles_are_required():
    assert gate_page(_session("user"), None, "/dashboard") is None
    assert gate_page(None, None, "/dashboard").headers["location"] == "/login?callbackUrl=/dashboard"


def test_login_url_keeps_slashes_and_encodes_the_rest():
    assert login_url("/event-dashboard/42/check-in") == "/login?callbackUrl=/event-dashboard/42/check-in"
    assert login_url("/events?category=Music") == "/login?callbackUrl=/events%3Fcategory%3DMusic"


def test_can_manage():
    owner = _session("event-planner")
    assert can_manage(owner, owner.id) is True
    assert can_manage(_session("event-planner"), owner.id) is False
    assert can_manage(_session("super-admin"), owner.id) is True
    assert can_manage(None, owner.id) is False
