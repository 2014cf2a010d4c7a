"""Sanitize untrusted registration input and check it against the business rules."""
from __future__ import annotations

import re
from datetime import date
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from camp.pricing import DEFAULT_CATALOG, PriceCatalog, resolve_selection

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[+()\-\s0-9]{7,20}$")
ZIP_PATTERN = re.compile(r"^[0-9]{4}$")
MAX_NOTE_LENGTH = 4000

_TRUE_STRINGS = {"true", "1", "yes", "on"}


class RegistrationInput(BaseModel):
    """Canonical, sanitized registration form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    city: str = ""
    current_grade_iaido: str = ""
    current_grade_jodo: str = ""
    camp_type: str
    meal_plan: str
    accommodation: str
    wants_exam_iaido: bool = False
    target_grade_iaido: str = ""
    wants_exam_jodo: bool = False
    target_grade_jodo: str = ""
    billing_full_name: str = ""
    billing_zip: str = ""
    billing_city: str = ""
    billing_address: str = ""
    billing_country: str = ""
    food_notes: str = ""
    privacy_consent: bool = False
    terms_consent: bool = False


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    """First key that is present and not null. New per-discipline keys are listed before old combined ones."""
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def sanitize_registration(
    payload: Any,
    catalog: PriceCatalog = DEFAULT_CATALOG,
    default_country: str = "Hungary",
) -> RegistrationInput:
    """Coerce an arbitrary JSON body into a RegistrationInput. Never raises."""
    if not isinstance(payload, Mapping):
        payload = {}
    selection = resolve_selection(
        payload.get("campType"), payload.get("mealPlan"), payload.get("accommodation"), catalog
    )
    wants_exam_iaido = _flag(_first_present(payload, "wantsExamIaido", "wantsExam"))
    wants_exam_jodo = _flag(payload.get("wantsExamJodo"))
    target_iaido = _text(_first_present(payload, "targetGradeIaido", "targetGrade"))
    target_jodo = _text(payload.get("targetGradeJodo"))
    country = _text(payload.get("billingCountry")) or default_country
    return RegistrationInput(
        full_name=_text(payload.get("fullName")),
        email=_text(payload.get("email")).lower(),
        phone=_text(payload.get("phone")),
        date_of_birth=_text(payload.get("dateOfBirth")),
        city=_text(payload.get("city")),
        current_grade_iaido=_text(_first_present(payload, "currentGradeIaido", "currentGrade")),
        current_grade_jodo=_text(payload.get("currentGradeJodo")),
        camp_type=selection.camp_type,
        meal_plan=selection.meal_plan,
        accommodation=selection.accommodation,
        wants_exam_iaido=wants_exam_iaido,
        target_grade_iaido=target_iaido if wants_exam_iaido else "",
        wants_exam_jodo=wants_exam_jodo,
        target_grade_jodo=target_jodo if wants_exam_jodo else "",
        billing_full_name=_text(payload.get("billingFullName")),
        billing_zip=_text(payload.get("billingZip")),
        billing_city=_text(payload.get("billingCity")),
        billing_address=_text(payload.get("billingAddress")),
        billing_country=country,
        food_notes=_text(payload.get("foodNotes")),
        privacy_consent=_flag(payload.get("privacyConsent")),
        terms_consent=_flag(payload.get("termsConsent")),
    )


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return len(value) == 10


def validate_registration(data: RegistrationInput) -> list[str]:
    """Return every rule violation as a human-readable message. Empty list means valid."""
    errors: list[str] = []

    if not data.full_name:
        errors.append("Full name is required.")
    if not EMAIL_PATTERN.match(data.email):
        errors.append("A valid email address is required.")
    if not PHONE_PATTERN.match(data.phone):
        errors.append("A valid phone number is required.")
    if data.date_of_birth and not _is_iso_date(data.date_of_birth):
        errors.append("Date of birth must be a valid date (YYYY-MM-DD).")
    if not data.city:
        errors.append("City is required.")

    needs_iaido_grade = data.camp_type in ("iaido", "both") or data.wants_exam_iaido
    needs_jodo_grade = data.camp_type in ("jodo", "both") or data.wants_exam_jodo
    if needs_iaido_grade and not data.current_grade_iaido:
        errors.append("Current Iaido grade is required for the selected option.")
    if needs_jodo_grade and not data.current_grade_jodo:
        errors.append("Current Jodo grade is required for the selected option.")

    if data.wants_exam_iaido and not data.target_grade_iaido:
        errors.append("Iaido target grade is required if Iaido exam is selected.")
    if data.wants_exam_jodo and not data.target_grade_jodo:
        errors.append("Jodo target grade is required if Jodo exam is selected.")
    if data.wants_exam_iaido and data.camp_type == "jodo":
        errors.append("Iaido exam can only be selected with Iaido or Iaido + Jodo participation.")
    if data.wants_exam_jodo and data.camp_type == "iaido":
        errors.append("Jodo exam can only be selected with Jodo or Iaido + Jodo participation.")

    if not data.billing_full_name:
        errors.append("Billing full name is required.")
    if not ZIP_PATTERN.match(data.billing_zip):
        errors.append("Billing ZIP code must be 4 digits.")
    if not data.billing_city:
        errors.append("Billing city is required.")
    if not data.billing_address:
        errors.append("Billing address is required.")
    if not data.billing_country:
        errors.append("Billing country is required.")
    if len(data.food_notes) > MAX_NOTE_LENGTH:
        errors.append(f"Note cannot exceed {MAX_NOTE_LENGTH} characters.")

    if not data.privacy_consent:
        errors.append("Privacy consent is required.")
    if not data.terms_consent:
        errors.append("Accepting participation terms is required.")

    return errors
