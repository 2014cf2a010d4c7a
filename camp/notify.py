"""Registration e-mails through the Brevo transactional API. Best-effort, never blocks a registration."""
from __future__ import annotations

import asyncio
import logging
from html import escape

import httpx

import config
from camp.models import Registration
from camp.pricing import PricingBreakdown

logger = logging.getLogger("camp.notify")

EVENT_NAME = "Ishido Sensei - Summer Seminar 2026"


def email_enabled() -> bool:
    return config.EMAIL_PROVIDER == "brevo" and bool(config.BREVO_API_KEY) and bool(config.EMAIL_FROM)


def format_amount(amount: int, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def build_messages(registration: Registration, pricing: PricingBreakdown) -> dict:
    """Participant confirmation and admin notice, each with subject, html and text bodies."""
    total = format_amount(pricing.total, pricing.currency)
    items = [(item.label, format_amount(item.amount, pricing.currency)) for item in pricing.line_items]
    manage_url = f"{config.APP_BASE_URL.rstrip('/')}/admin"
    name = escape(registration.full_name)
    rid = escape(registration.id)

    participant_html = (
        "<h2>Registration Received</h2>"
        f"<p>Hello {name},</p>"
        f"<p>Thank you for your registration to the {escape(EVENT_NAME)}.</p>"
        f"<p><strong>Registration ID:</strong> {rid}<br /><strong>Date:</strong> {escape(registration.created_at)}</p>"
        "<h3>Selected options</h3>"
        "<ul>" + "".join(f"<li>{escape(label)}: <strong>{escape(amount)}</strong></li>" for label, amount in items) + "</ul>"
        f"<p><strong>Total:</strong> {escape(total)}</p>"
    )
    participant_text = "\n".join(
        [
            "Registration Received",
            "",
            f"Hello {registration.full_name},",
            f"Thank you for your registration to the {EVENT_NAME}.",
            f"Registration ID: {registration.id}",
            f"Date: {registration.created_at}",
            "Selected options:",
            *[f"- {label}: {amount}" for label, amount in items],
            f"Total: {total}",
        ]
    )
    admin_html = (
        "<h2>New Registration</h2>"
        f"<p><strong>Name:</strong> {name}<br />"
        f"<strong>Email:</strong> {escape(registration.email)}<br />"
        f"<strong>Registration ID:</strong> {rid}<br />"
        f"<strong>Total:</strong> {escape(total)}</p>"
        f'<p><a href="{escape(manage_url)}">Open admin panel</a></p>'
    )
    admin_text = "\n".join(
        [
            "New Registration",
            f"Name: {registration.full_name}",
            f"Email: {registration.email}",
            f"Registration ID: {registration.id}",
            f"Total: {total}",
            f"Open admin panel: {manage_url}",
        ]
    )
    return {
        "participant": {
            "subject": f"Registration confirmation - {registration.id}",
            "html": participant_html,
            "text": participant_text,
        },
        "admin": {
            "subject": f"New registration - {registration.id}",
            "html": admin_html,
            "text": admin_text,
        },
    }


async def _send(client: httpx.AsyncClient, to_email: str, to_name: str, message: dict) -> None:
    payload = {
        "sender": {"email": config.EMAIL_FROM, "name": config.EMAIL_FROM_NAME},
        "to": [{"email": to_email, "name": to_name or ""}],
        "subject": message["subject"],
        "htmlContent": message["html"],
        "textContent": message["text"],
    }
    r = await client.post(
        config.BREVO_API_URL,
        json=payload,
        headers={"accept": "application/json", "api-key": config.BREVO_API_KEY},
    )
    if r.status_code >= 400:
        raise RuntimeError(f"Brevo send failed ({r.status_code}): {r.text}")


async def send_registration_emails(registration: Registration, pricing: PricingBreakdown) -> int:
    """Send the confirmation (and admin notice if configured). Returns the number of e-mails sent."""
    if not email_enabled():
        return 0
    messages = build_messages(registration, pricing)
    async with httpx.AsyncClient(timeout=config.EMAIL_REQUEST_TIMEOUT_SECONDS) as client:
        sends = [_send(client, registration.email, registration.full_name, messages["participant"])]
        if config.ADMIN_NOTIFY_EMAIL:
            sends.append(_send(client, config.ADMIN_NOTIFY_EMAIL, "Admin", messages["admin"]))
        results = await asyncio.gather(*sends, return_exceptions=True)
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        raise RuntimeError(" | ".join(str(f) for f in failures))
    return len(results)


async def notify_registration(registration: Registration, pricing: PricingBreakdown) -> None:
    """Background-task entry point: failures are logged and swallowed."""
    try:
        sent = await send_registration_emails(registration, pricing)
    except Exception:
        logger.exception("Email send failed for %s", registration.id)
        return
    if sent:
        logger.info("Sent %d email(s) for %s", sent, registration.id)
