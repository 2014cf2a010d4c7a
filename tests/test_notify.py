"""Tests for registration e-mails."""
import json

import httpx
import pytest

from camp import notify
from camp.pricing import calculate_pricing
from camp.registration_service import build_registration
from camp.validation import sanitize_registration


@pytest.fixture
def registration(make_payload):
    data = sanitize_registration(make_payload(fullName="<b>Kiss</b> Anna", mealPlan="lunch"))
    pricing = calculate_pricing(data.camp_type, data.meal_plan, data.accommodation)
    return build_registration(data, pricing), pricing


@pytest.fixture
def brevo(monkeypatch):
    """Enable e-mail and route Brevo calls to an in-memory transport."""
    monkeypatch.setattr(notify.config, "EMAIL_PROVIDER", "brevo")
    monkeypatch.setattr(notify.config, "BREVO_API_KEY", "test-key")
    monkeypatch.setattr(notify.config, "EMAIL_FROM", "seminar@example.com")
    monkeypatch.setattr(notify.config, "ADMIN_NOTIFY_EMAIL", "office@example.com")
    state = {"requests": [], "status": 201}

    def handler(request):
        state["requests"].append(request)
        return httpx.Response(state["status"], json={"messageId": "x"})

    real_client = httpx.AsyncClient

    def client_factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(notify.httpx, "AsyncClient", client_factory)
    return state


def test_messages_escape_html(registration):
    reg, pricing = registration
    messages = notify.build_messages(reg, pricing)
    assert "&lt;b&gt;Kiss&lt;/b&gt; Anna" in messages["participant"]["html"]
    assert "<b>Kiss</b> Anna" in messages["participant"]["text"]
    assert "Total: 182.00 EUR" in messages["participant"]["text"]
    assert messages["admin"]["subject"] == f"New registration - {reg.id}"


@pytest.mark.asyncio
async def test_disabled_without_configuration(registration):
    reg, pricing = registration
    assert not notify.email_enabled()
    assert await notify.send_registration_emails(reg, pricing) == 0


@pytest.mark.asyncio
async def test_sends_participant_and_admin_mail(brevo, registration):
    reg, pricing = registration
    assert await notify.send_registration_emails(reg, pricing) == 2
    recipients = sorted(json.loads(r.content)["to"][0]["email"] for r in brevo["requests"])
    assert recipients == ["anna.kiss@example.com", "office@example.com"]
    assert all(r.headers["api-key"] == "test-key" for r in brevo["requests"])


@pytest.mark.asyncio
async def test_failed_send_is_logged_not_raised(brevo, registration, caplog):
    reg, pricing = registration
    brevo["status"] = 500
    with pytest.raises(RuntimeError):
        await notify.send_registration_emails(reg, pricing)

    await notify.notify_registration(reg, pricing)
    assert "Email send failed" in caplog.text
