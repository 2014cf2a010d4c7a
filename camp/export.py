"""CSV export of all registrations, including deleted and anonymized ones."""
from __future__ import annotations

import csv
import io
from typing import Iterable, Iterator

from camp.models import Registration

BOM = "\ufeff"
_WRITER_TERMINATOR = "\r\n"

CSV_COLUMNS = [
    "id",
    "created_at",
    "status",
    "full_name",
    "email",
    "phone",
    "city",
    "current_grade_iaido",
    "current_grade_jodo",
    "camp_type",
    "meal_plan",
    "accommodation",
    "wants_exam_iaido",
    "target_grade_iaido",
    "wants_exam_jodo",
    "target_grade_jodo",
    "camp_price_eur",
    "meal_price_eur",
    "accommodation_price_eur",
    "amount_eur",
    "currency",
    "billing_full_name",
    "billing_zip",
    "billing_city",
    "billing_address",
    "billing_country",
    "food_notes",
    "privacy_consent",
    "terms_consent",
    "privacy_policy_version",
    "terms_version",
    "privacy_consent_at",
    "terms_consent_at",
]


def _flag(value: bool) -> str:
    return "true" if value else "false"


def registration_csv_row(r: Registration) -> list:
    return [
        r.id,
        r.created_at,
        r.status,
        r.full_name,
        r.email,
        r.phone,
        r.city,
        r.current_grade_iaido,
        r.current_grade_jodo,
        r.camp_type,
        r.meal_plan,
        r.accommodation,
        _flag(r.wants_exam_iaido),
        r.target_grade_iaido,
        _flag(r.wants_exam_jodo),
        r.target_grade_jodo,
        r.line_item_amount("campType"),
        r.line_item_amount("mealPlan"),
        r.line_item_amount("accommodation"),
        r.amount,
        r.currency,
        r.billing_full_name,
        r.billing_zip,
        r.billing_city,
        r.billing_address,
        r.billing_country,
        r.food_notes,
        _flag(r.privacy_consent),
        _flag(r.terms_consent),
        r.privacy_policy_version,
        r.terms_version,
        r.privacy_consent_at,
        r.terms_consent_at,
    ]


def _encode_row(values: list) -> str:
    buf = io.StringIO()
    # Minimal quoting: fields with a comma, quote, CR or LF are wrapped, quotes doubled.
    # The writer only quotes characters found in its line terminator, so write with CRLF
    # and swap the terminator for LF afterwards.
    csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator=_WRITER_TERMINATOR).writerow(
        ["" if v is None else v for v in values]
    )
    return buf.getvalue()[: -len(_WRITER_TERMINATOR)] + "\n"


def iter_csv_lines(registrations: Iterable[Registration]) -> Iterator[str]:
    """Yield the export line by line: BOM + header first, then one line per registration."""
    yield BOM + _encode_row(CSV_COLUMNS)
    for registration in registrations:
        yield _encode_row(registration_csv_row(registration))


def build_csv_export(registrations: Iterable[Registration]) -> str:
    return "".join(iter_csv_lines(registrations))
