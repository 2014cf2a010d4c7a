"""Database models."""
from camp.models.base import Base, init_db
from camp.models.registration import (
    ANONYMIZED,
    DELETED,
    PAID,
    PENDING_PAYMENT,
    STATUSES,
    TERMINAL_STATUSES,
    LegacyGradeView,
    Registration,
    legacy_grade_view,
    registration_legacy_view,
)

__all__ = [
    "Base",
    "Registration",
    "LegacyGradeView",
    "legacy_grade_view",
    "registration_legacy_view",
    "PENDING_PAYMENT",
    "PAID",
    "DELETED",
    "ANONYMIZED",
    "STATUSES",
    "TERMINAL_STATUSES",
    "init_db",
]
