"""Public API routes: price list, registration submission, payment placeholders."""
from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

import config
from camp import registration_service
from camp.notify import email_enabled, notify_registration
from camp.pricing import PriceCatalog
from camp.retry import RetryExhaustedError
from camp.validation import sanitize_registration, validate_registration
from web.api.utils import get_catalog, read_json_body

logger = logging.getLogger("camp.web")

router = APIRouter(prefix="/api", tags=["registration"])


@router.get("/pricing")
async def get_pricing(catalog: PriceCatalog = Depends(get_catalog)):
    """Current option catalog with defaults."""
    return {
        "pricing": catalog.options(),
        "currency": catalog.currency,
        "defaults": {
            "campType": catalog.default_camp_type,
            "mealPlan": catalog.default_meal_plan,
            "accommodation": catalog.default_accommodation,
        },
    }


@router.post("/register", status_code=201)
async def register(
    request: Request,
    background_tasks: BackgroundTasks,
    catalog: PriceCatalog = Depends(get_catalog),
):
    """Validate, price and store a registration. Confirmation e-mails go out after the response."""
    body = await read_json_body(request)
    data = sanitize_registration(body, catalog, config.DEFAULT_BILLING_COUNTRY)
    errors = validate_registration(data)
    if errors:
        logger.info("Registration rejected with %d validation error(s)", len(errors))
        return JSONResponse(status_code=400, content={"errors": errors})

    try:
        registration, pricing = await registration_service.create_registration(data, catalog)
    except RetryExhaustedError:
        raise HTTPException(503, "Saving failed due to high load. Please try again.")

    background_tasks.add_task(notify_registration, registration, pricing)
    mail_on = email_enabled()
    return {
        "message": "Registration saved. Next step: redirect to Stripe Checkout.",
        "registrationId": registration.id,
        "status": registration.status,
        "pricing": pricing.model_dump(by_alias=True),
        "email": {
            "provider": "brevo" if mail_on else "disabled",
            "status": "QUEUED" if mail_on else "DISABLED",
        },
        "compliance": {
            "privacyPolicyVersion": registration.privacy_policy_version,
            "termsVersion": registration.terms_version,
        },
        "payment": {
            "provider": "stripe",
            "status": "NOT_IMPLEMENTED",
            "note": "Redirect to Stripe page is not enabled in demo mode yet.",
            "nextAction": "REDIRECT_TO_STRIPE_CHECKOUT",
        },
    }


# --- Integration placeholders ---


def _not_implemented(error: str, next_step: str) -> JSONResponse:
    return JSONResponse(status_code=501, content={"error": error, "nextStep": next_step})


@router.post("/payments/create-checkout-session")
async def create_checkout_session():
    return _not_implemented(
        "Stripe integration disabled in demo mode.",
        "Integrate Stripe Checkout and call this endpoint from /api/register flow.",
    )


@router.post("/invoices/create")
async def create_invoice():
    return _not_implemented(
        "Szamlazz.hu integration disabled in demo mode.",
        "Trigger this endpoint after successful Stripe webhook processing.",
    )


@router.post("/stripe/webhook")
async def stripe_webhook():
    return _not_implemented(
        "Stripe webhook disabled in demo mode.",
        "Validate signature and update payment status + invoice creation.",
    )
