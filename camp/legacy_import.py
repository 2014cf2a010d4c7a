"""One-time import of registrations from the old JSON file store."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import config
from camp.models import PENDING_PAYMENT, STATUSES, Registration
from camp.pricing import DEFAULT_CATALOG, PriceCatalog, calculate_pricing
from camp.registration_service import new_registration_id, utc_now_iso
from camp.store import count_registrations

logger = logging.getLogger("camp.store")


class LegacyImportError(Exception):
    """The legacy import failed and was rolled back. The service must not start."""


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _pick(item: dict, new_key: str, old_key: str) -> Any:
    """Per-discipline value when set, else the old combined value."""
    value = item.get(new_key)
    if value is None or value == "":
        return item.get(old_key)
    return value


def _created_at(value: Any, registration_id: str) -> Optional[str]:
    """Legacy timestamp rewritten as UTC with milliseconds and Z, so stored values sort chronologically.

    Naive values are taken as UTC. Raises ValueError for unreadable values.
    """
    raw = _text(value).strip()
    if not raw:
        return None
    if raw[-1] in "Zz":
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"Legacy registration {registration_id} has an unreadable createdAt: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return utc_now_iso(parsed)


def _status(value: Any, registration_id: str) -> str:
    status = _text(value).strip().upper()
    if not status:
        return PENDING_PAYMENT
    if status not in STATUSES:
        raise ValueError(f"Legacy registration {registration_id} has an unknown status: {value!r}")
    return status


def _stored_amount(item: dict, recomputed: int, registration_id: str) -> int:
    raw = item.get("amountHuf", item.get("amount"))
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw <= 0:
        return recomputed
    amount = int(raw)
    if amount != recomputed:
        logger.warning(
            "Legacy registration %s total %s differs from current price list (%s); keeping stored total",
            registration_id, amount, recomputed,
        )
    return amount


def registration_from_legacy(
    item: dict,
    catalog: PriceCatalog = DEFAULT_CATALOG,
    now: Optional[str] = None,
) -> Registration:
    """Build a Registration from one legacy JSON record."""
    if not isinstance(item, dict):
        raise ValueError(f"Legacy record is not an object: {item!r}")
    pricing = calculate_pricing(
        item.get("campType") or "iaido",
        item.get("mealPlan") or "none",
        item.get("accommodation") or "none",
        catalog,
    )
    registration_id = _text(item.get("id")) or new_registration_id()

    wants_exam_iaido = bool(_pick(item, "wantsExamIaido", "wantsExam"))
    wants_exam_jodo = bool(item.get("wantsExamJodo"))
    current_grade_iaido = _text(_pick(item, "currentGradeIaido", "currentGrade"))
    current_grade_jodo = _text(item.get("currentGradeJodo"))
    target_grade_iaido = _text(_pick(item, "targetGradeIaido", "targetGrade")) if wants_exam_iaido else ""
    target_grade_jodo = _text(item.get("targetGradeJodo")) if wants_exam_jodo else ""

    return Registration(
        id=registration_id,
        created_at=_created_at(item.get("createdAt"), registration_id) or now or utc_now_iso(),
        status=_status(item.get("status"), registration_id),
        amount=_stored_amount(item, pricing.total, registration_id),
        currency=_text(item.get("currency")) or pricing.currency,
        camp_type=pricing.selection.camp_type,
        meal_plan=pricing.selection.meal_plan,
        accommodation=pricing.selection.accommodation,
        price_breakdown=pricing.model_dump(by_alias=True),
        full_name=_text(item.get("fullName")),
        email=_text(item.get("email")).strip().lower(),
        phone=_text(item.get("phone")),
        date_of_birth=_text(item.get("dateOfBirth")),
        city=_text(item.get("city")),
        current_grade_iaido=current_grade_iaido,
        current_grade_jodo=current_grade_jodo,
        wants_exam_iaido=wants_exam_iaido,
        target_grade_iaido=target_grade_iaido,
        wants_exam_jodo=wants_exam_jodo,
        target_grade_jodo=target_grade_jodo,
        billing_full_name=_text(item.get("billingFullName")),
        billing_zip=_text(item.get("billingZip")),
        billing_city=_text(item.get("billingCity")),
        billing_address=_text(item.get("billingAddress")),
        billing_country=_text(item.get("billingCountry")) or config.DEFAULT_BILLING_COUNTRY,
        food_notes=_text(item.get("foodNotes")),
        privacy_consent=bool(item.get("privacyConsent")),
        terms_consent=bool(item.get("termsConsent")),
        privacy_policy_version=_text(item.get("privacyPolicyVersion")),
        terms_version=_text(item.get("termsVersion")),
        privacy_consent_at=_text(item.get("privacyConsentAt")),
        terms_consent_at=_text(item.get("termsConsentAt")),
    )


def read_legacy_file(path: Path) -> list:
    """Records from the legacy file. Unreadable or non-list content counts as no records."""
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable legacy registrations file %s: %s", path, e)
        return []
    if not isinstance(parsed, list):
        logger.warning("Ignoring legacy registrations file %s: expected a JSON array", path)
        return []
    return parsed


async def import_legacy_if_needed(
    db_engine: AsyncEngine,
    path: Path,
    catalog: Optional[PriceCatalog] = None,
) -> int:
    """Import the legacy file once: only when it exists and the table is empty.

    All rows go in one transaction. Returns the number imported.
    """
    if not path.exists():
        return 0
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        if await count_registrations(session) > 0:
            logger.info("Registrations table not empty; skipping legacy import from %s", path)
            return 0

    records = read_legacy_file(path)
    if not records:
        return 0

    catalog = catalog or DEFAULT_CATALOG
    try:
        async with session_factory() as session:
            async with session.begin():
                for item in records:
                    session.add(registration_from_legacy(item, catalog))
    except Exception as e:
        logger.exception("Legacy import from %s failed; rolled back", path)
        raise LegacyImportError(f"Legacy registration import from {path} failed.") from e
    logger.info("Imported %d legacy registration(s) from %s", len(records), path)
    return len(records)
