import pytest
from core.config import get_settings
from services.contact import send_contact_form_email
from conftest import FakeMailer

settings = get_settings()


def _payload(**overrides):
    body = {"name": "Jane Doe", "email": "jane@example.com", "message": "Hello there!"}
    body.update(overrides)
    return body


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_sends_both_emails(client, fake_mailer):
    """Tests that a valid submission is forwarded to the site inbox and confirmed to the sender."""
    r = await client.post("/api/contact", json=_payload(subject="Sponsorship"))
    assert r.status_code == 200, r.text
    assert r.json() == {"message": "Email sent successfully"}

    assert [m["to"] for m in fake_mailer.sent] == [settings.contact_email, "jane@example.com"]
    assert fake_mailer.sent[0]["subject"] == "Contact Form: Sponsorship"
    assert "Hello there!" in fake_mailer.sent[0]["text"]
    assert fake_mailer.sent[1]["subject"] == f"Thank you for contacting {settings.site_name}"


@pytest.mark.asyncio(loop_scope="session")
@pytest.mark.parametrize("missing", ["name", "email", "message"])
async def test_contact_rejects_missing_fields(client, fake_mailer, missing):
    body = _payload()
    del body[missing]
    r = await client.post("/api/contact", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "Name, email, and message are required"}
    assert fake_mailer.sent == []


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_rejects_empty_fields(client, fake_mailer):
    r = await client.post("/api/contact", json=_payload(message=""))
    assert r.status_code == 400
    assert r.json() == {"error": "Name, email, and message are required"}


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_reports_mail_failure(client, fake_mailer):
    fake_mailer.ok = False
    r = await client.post("/api/contact", json=_payload())
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to send email"}
    # nothing is confirmed to the sender when the forward failed
    assert len(fake_mailer.sent) == 1


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_handles_unexpected_errors(client, fake_mailer):
    fake_mailer.should_raise = True
    r = await client.post("/api/contact", json=_payload())
    assert r.status_code == 500
    assert r.json() == {"error": "An error occurred while submitting the form"}


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_handles_malformed_json(client):
    r = await client.post(
        "/api/contact", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    assert r.json() == {"error": "An error occurred while submitting the form"}


@pytest.mark.asyncio(loop_scope="session")
async def test_contact_email_escapes_html():
    mailer = FakeMailer()
    ok = await send_contact_form_email(mailer, "<b>Eve</b>", "eve@example.com", "<script>x</script>\nbye")
    assert ok is True
    html = mailer.sent[0]["html"]
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html
    assert "<br>bye" in html
    assert mailer.sent[0]["subject"] == "Contact Form: General enquiry"
