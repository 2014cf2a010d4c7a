"""Shared API utilities."""
from __future__ import annotations

import json
from typing import Any

from fastapi import HTTPException, Request

from camp.models import Registration, registration_legacy_view
from camp.pricing import DEFAULT_CATALOG, PriceCatalog


def get_catalog() -> PriceCatalog:
    """Dependency: the price catalog in force. Override in tests to price against another catalog."""
    return DEFAULT_CATALOG


def registration_to_dict(r: Registration) -> dict:
    """JSON shape of a registration for the admin list, including the derived combined grade view."""
    legacy = registration_legacy_view(r)
    return {
        "id": r.id,
        "createdAt": r.created_at,
        "status": r.status,
        "amount": r.amount,
        "currency": r.currency,
        "fullName": r.full_name,
        "email": r.email,
        "phone": r.phone,
        "dateOfBirth": r.date_of_birth or "",
        "city": r.city,
        "currentGradeIaido": r.current_grade_iaido or "",
        "currentGradeJodo": r.current_grade_jodo or "",
        "currentGrade": legacy.current_grade,
        "campType": r.camp_type,
        "mealPlan": r.meal_plan,
        "accommodation": r.accommodation,
        "wantsExamIaido": bool(r.wants_exam_iaido),
        "targetGradeIaido": r.target_grade_iaido or "",
        "wantsExamJodo": bool(r.wants_exam_jodo),
        "targetGradeJodo": r.target_grade_jodo or "",
        "wantsExam": legacy.wants_exam,
        "targetGrade": legacy.target_grade,
        "billingFullName": r.billing_full_name,
        "billingZip": r.billing_zip,
        "billingCity": r.billing_city,
        "billingAddress": r.billing_address,
        "billingCountry": r.billing_country,
        "foodNotes": r.food_notes or "",
        "priceBreakdown": r.price_breakdown,
        "privacyConsent": bool(r.privacy_consent),
        "termsConsent": bool(r.terms_consent),
        "privacyPolicyVersion": r.privacy_policy_version or "",
        "termsVersion": r.terms_version or "",
        "privacyConsentAt": r.privacy_consent_at or "",
        "termsConsentAt": r.terms_consent_at or "",
    }


async def read_json_body(request: Request) -> Any:
    """Parsed JSON body; an empty body reads as {}. Raises 400 for malformed JSON."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        raise HTTPException(400, "Invalid JSON body")
