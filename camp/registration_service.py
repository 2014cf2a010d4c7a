"""Registration service - create registrations and apply admin lifecycle operations.

Write paths go through run_with_retry, each attempt in a fresh session. Reads are not retried.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import config
from camp import store
from camp.models import DELETED, PENDING_PAYMENT, Registration
from camp.models.base import async_session_factory
from camp.pricing import DEFAULT_CATALOG, PriceCatalog, PricingBreakdown, calculate_pricing
from camp.retry import run_with_retry
from camp.validation import RegistrationInput


def utc_now_iso(now: Optional[datetime] = None) -> str:
    """UTC timestamp like 2026-02-26T09:15:00.000Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_registration_id() -> str:
    return f"reg_{uuid.uuid4()}"


def build_registration(
    data: RegistrationInput,
    pricing: PricingBreakdown,
    *,
    created_at: Optional[str] = None,
    privacy_policy_version: Optional[str] = None,
    terms_version: Optional[str] = None,
) -> Registration:
    """New PENDING_PAYMENT registration with the pricing snapshot and the policy versions accepted now."""
    created_at = created_at or utc_now_iso()
    return Registration(
        id=new_registration_id(),
        created_at=created_at,
        status=PENDING_PAYMENT,
        amount=pricing.total,
        currency=pricing.currency,
        camp_type=pricing.selection.camp_type,
        meal_plan=pricing.selection.meal_plan,
        accommodation=pricing.selection.accommodation,
        price_breakdown=pricing.model_dump(by_alias=True),
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
        date_of_birth=data.date_of_birth,
        city=data.city,
        current_grade_iaido=data.current_grade_iaido,
        current_grade_jodo=data.current_grade_jodo,
        wants_exam_iaido=data.wants_exam_iaido,
        target_grade_iaido=data.target_grade_iaido,
        wants_exam_jodo=data.wants_exam_jodo,
        target_grade_jodo=data.target_grade_jodo,
        billing_full_name=data.billing_full_name,
        billing_zip=data.billing_zip,
        billing_city=data.billing_city,
        billing_address=data.billing_address,
        billing_country=data.billing_country,
        food_notes=data.food_notes,
        privacy_consent=data.privacy_consent,
        terms_consent=data.terms_consent,
        privacy_policy_version=privacy_policy_version or config.PRIVACY_POLICY_VERSION,
        terms_version=terms_version or config.TERMS_VERSION,
        privacy_consent_at=created_at if data.privacy_consent else "",
        terms_consent_at=created_at if data.terms_consent else "",
    )


async def create_registration(
    data: RegistrationInput,
    catalog: PriceCatalog = DEFAULT_CATALOG,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> tuple[Registration, PricingBreakdown]:
    """Price and persist a validated registration. Raises RetryExhaustedError under sustained contention."""
    session_factory = session_factory or async_session_factory
    pricing = calculate_pricing(data.camp_type, data.meal_plan, data.accommodation, catalog)
    registration = build_registration(data, pricing)

    async def _insert() -> None:
        async with session_factory() as session:
            await store.insert_registration(session, registration)

    await run_with_retry(_insert)
    return registration, pricing


async def load_registrations(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> list[Registration]:
    session_factory = session_factory or async_session_factory
    async with session_factory() as session:
        return await store.list_registrations(session)


async def mark_deleted(
    registration_id: str,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Soft-delete. Returns affected rows (0 = not found)."""
    session_factory = session_factory or async_session_factory

    async def _update() -> int:
        async with session_factory() as session:
            return await store.update_registration_status(session, registration_id, DELETED)

    return await run_with_retry(_update)


async def anonymize(
    registration_id: str,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Erase personal data. Returns affected rows (0 = not found)."""
    session_factory = session_factory or async_session_factory

    async def _anonymize() -> int:
        async with session_factory() as session:
            return await store.anonymize_registration(session, registration_id)

    return await run_with_retry(_anonymize)
