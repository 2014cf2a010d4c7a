"""Tests for input sanitization and business-rule validation."""
import pytest

from camp.validation import MAX_NOTE_LENGTH, sanitize_registration, validate_registration


def _errors(payload):
    return validate_registration(sanitize_registration(payload))


def test_valid_payload_has_no_errors(make_payload):
    assert _errors(make_payload()) == []


def test_non_object_body_is_treated_as_empty():
    data = sanitize_registration(["not", "a", "dict"])
    assert data.full_name == ""
    assert data.camp_type == "iaido"
    assert data.billing_country == "Hungary"


def test_sanitize_trims_and_lowercases(make_payload):
    data = sanitize_registration(make_payload(fullName="  Kiss Anna  ", email="  ANNA@Example.COM "))
    assert data.full_name == "Kiss Anna"
    assert data.email == "anna@example.com"


def test_target_grade_dropped_without_exam(make_payload):
    data = sanitize_registration(make_payload(wantsExamIaido=False, targetGradeIaido="3 dan"))
    assert data.target_grade_iaido == ""


@pytest.mark.parametrize("value,expected", [
    (True, True), ("true", True), ("YES", True), ("on", True), ("1", True), (1, True),
    (False, False), ("false", False), ("0", False), (0, False), (None, False), ("", False),
])
def test_boolean_coercion(make_payload, value, expected):
    data = sanitize_registration(make_payload(privacyConsent=value))
    assert data.privacy_consent is expected


def test_new_keys_take_precedence_over_legacy(make_payload):
    data = sanitize_registration(make_payload(currentGradeIaido="3 dan", currentGrade="1 kyu"))
    assert data.current_grade_iaido == "3 dan"


def test_missing_billing_country_defaults(make_payload):
    body = make_payload()
    del body["billingCountry"]
    assert sanitize_registration(body).billing_country == "Hungary"
    assert sanitize_registration(body, default_country="Austria").billing_country == "Austria"


@pytest.mark.parametrize("field,value,message", [
    ("email", "not-an-email", "A valid email address is required."),
    ("phone", "12ab", "A valid phone number is required."),
    ("phone", "123", "A valid phone number is required."),
    ("billingZip", "123", "Billing ZIP code must be 4 digits."),
    ("billingZip", "12345", "Billing ZIP code must be 4 digits."),
    ("city", "   ", "City is required."),
    ("dateOfBirth", "17/05/1990", "Date of birth must be a valid date (YYYY-MM-DD)."),
    ("termsConsent", False, "Accepting participation terms is required."),
])
def test_single_field_errors(make_payload, field, value, message):
    assert _errors(make_payload(**{field: value})) == [message]


def test_grade_required_per_discipline(make_payload):
    errors = _errors(make_payload(campType="both"))
    assert errors == ["Current Jodo grade is required for the selected option."]

    errors = _errors(make_payload(campType="jodo", currentGradeIaido=""))
    assert errors == ["Current Jodo grade is required for the selected option."]


def test_exam_needs_target_grade(make_payload):
    errors = _errors(make_payload(wantsExamIaido=True, targetGradeIaido=""))
    assert errors == ["Iaido target grade is required if Iaido exam is selected."]


def test_jodo_exam_on_iaido_only_camp(make_payload):
    errors = _errors(make_payload(
        wantsExamJodo=True, targetGradeJodo="1 dan", currentGradeJodo="1 kyu",
    ))
    assert errors == ["Jodo exam can only be selected with Jodo or Iaido + Jodo participation."]


def test_note_length_limit(make_payload):
    assert _errors(make_payload(foodNotes="x" * MAX_NOTE_LENGTH)) == []
    assert _errors(make_payload(foodNotes="x" * (MAX_NOTE_LENGTH + 1))) == [
        f"Note cannot exceed {MAX_NOTE_LENGTH} characters."
    ]


def test_errors_follow_form_order():
    errors = _errors({})
    assert errors.index("Full name is required.") < errors.index("City is required.")
    assert errors.index("City is required.") < errors.index("Billing full name is required.")
    assert errors[-2:] == ["Privacy consent is required.", "Accepting participation terms is required."]
