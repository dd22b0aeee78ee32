import pytest
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager
from srv.app import app
from srv.mailer import get_mailer
from conftest import FakeMailer


@pytest.mark.asyncio(loop_scope="session")
async def test_signup_login_create_event_and_register(test_engine):
    mailer = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        async with LifespanManager(app):    # fires off startup/shutdown
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
                # a planner signs up and logs in through the login form
                # GOAL: verify that the real engine created by the lifespan is used end to end
                r = await c.post("/api/auth/signup", json={
                    "first_name": "Flow", "last_name": "Planner", "email": "flow-planner@example.com",
                    "password": "password123", "role": "event-planner",
                })
                assert r.status_code in (201, 409), r.text

                r = await c.post("/login", data={
                    "email": "flow-planner@example.com", "password": "password123", "callbackUrl": "/create-event"})
                assert r.status_code == 303
                assert r.headers["location"] == "/create-event"

                # the cookie from the login form now opens the planner page
                r = await c.get("/create-event")
                assert r.status_code == 200

                r = await c.post("/api/events/create", json={
                    "title": "Flow Conference",
                    "description": "An end to end test conference.",
                    "date": "2031-01-01T10:00:00",
                    "location": "Test Hall",
                    "category": "Testing",
                })
                assert r.status_code == 201, r.text
                event_id = r.json()["event"]["id"]

                r = await c.get("/api/events/categories")
                assert "Testing" in r.json()["categories"]

                # the planner registers for their own event
                r = await c.post(f"/api/events/{event_id}/register")
                assert r.status_code == 201, r.text
                assert mailer.sent[-1]["to"] == "flow-planner@example.com"

                r = await c.get("/api/debug/user-role")
                assert r.json()["user"]["role"] == "event-planner"

                r = await c.get("/logout")
                assert r.status_code == 303
                r = await c.get("/dashboard")
                assert r.status_code == 307
    finally:
        app.dependency_overrides.clear()
