"""Registration model - one participant signed up for the seminar."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from camp.models.base import Base

PENDING_PAYMENT = "PENDING_PAYMENT"
PAID = "PAID"
DELETED = "DELETED"
ANONYMIZED = "ANONYMIZED"

STATUSES = (PENDING_PAYMENT, PAID, DELETED, ANONYMIZED)
TERMINAL_STATUSES = frozenset({DELETED, ANONYMIZED})


class Registration(Base):
    """Seminar registration with its pricing snapshot and consent stamps."""

    __tablename__ = "registrations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[str] = mapped_column(String, nullable=False, index=True)  # ISO-8601 UTC
    status: Mapped[str] = mapped_column(String, nullable=False, default=PENDING_PAYMENT, index=True)

    # Pricing snapshot, captured at creation and never recomputed
    amount: Mapped[int] = mapped_column("amount_huf", Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String, nullable=False)
    camp_type: Mapped[str] = mapped_column(String, nullable=False, default="iaido")
    meal_plan: Mapped[str] = mapped_column(String, nullable=False, default="none")
    accommodation: Mapped[str] = mapped_column(String, nullable=False, default="none")
    price_breakdown: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)  # lowercased
    phone: Mapped[str] = mapped_column(String, nullable=False)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    city: Mapped[str] = mapped_column(String, nullable=False)

    current_grade_iaido: Mapped[str] = mapped_column(String, nullable=False, default="")
    current_grade_jodo: Mapped[str] = mapped_column(String, nullable=False, default="")
    wants_exam_iaido: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    target_grade_iaido: Mapped[Optional[str]] = mapped_column(String, nullable=True, default="")
    wants_exam_jodo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    target_grade_jodo: Mapped[Optional[str]] = mapped_column(String, nullable=True, default="")

    # Pre-split combined columns. Only the startup backfill reads them; see legacy_grade_view()
    combined_current_grade: Mapped[str] = mapped_column("current_grade", String, nullable=False, default="")
    combined_wants_exam: Mapped[bool] = mapped_column("wants_exam", Boolean, nullable=False, default=False)
    combined_target_grade: Mapped[Optional[str]] = mapped_column("target_grade", String, nullable=True, default="")

    billing_full_name: Mapped[str] = mapped_column(String, nullable=False)
    billing_zip: Mapped[str] = mapped_column(String, nullable=False)
    billing_city: Mapped[str] = mapped_column(String, nullable=False)
    billing_address: Mapped[str] = mapped_column(String, nullable=False)
    billing_country: Mapped[str] = mapped_column(String, nullable=False)

    food_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")

    privacy_consent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    terms_consent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    privacy_policy_version: Mapped[str] = mapped_column(String, nullable=False, default="")
    terms_version: Mapped[str] = mapped_column(String, nullable=False, default="")
    privacy_consent_at: Mapped[str] = mapped_column(String, nullable=False, default="")
    terms_consent_at: Mapped[str] = mapped_column(String, nullable=False, default="")

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    def line_item_amount(self, key: str) -> Any:
        """Amount of one stored line item (campType, mealPlan, accommodation), or '' if missing."""
        items = (self.price_breakdown or {}).get("lineItems")
        if not isinstance(items, list):
            return ""
        for item in items:
            if isinstance(item, dict) and item.get("key") == key:
                return item.get("amount", item.get("amountHuf", ""))
        return ""


@dataclass(frozen=True)
class LegacyGradeView:
    """Combined grade/exam view for clients that predate the per-discipline fields."""

    current_grade: str
    wants_exam: bool
    target_grade: str


def legacy_grade_view(
    current_grade_iaido: str,
    current_grade_jodo: str,
    wants_exam_iaido: bool,
    target_grade_iaido: str,
    wants_exam_jodo: bool,
    target_grade_jodo: str,
) -> LegacyGradeView:
    """Derive the combined view. Iaido wins over jodo; the exam flag is either discipline."""
    return LegacyGradeView(
        current_grade=current_grade_iaido or current_grade_jodo or "",
        wants_exam=bool(wants_exam_iaido or wants_exam_jodo),
        target_grade=target_grade_iaido or target_grade_jodo or "",
    )


def registration_legacy_view(reg: Registration) -> LegacyGradeView:
    return legacy_grade_view(
        reg.current_grade_iaido or "",
        reg.current_grade_jodo or "",
        reg.wants_exam_iaido,
        reg.target_grade_iaido or "",
        reg.wants_exam_jodo,
        reg.target_grade_jodo or "",
    )
