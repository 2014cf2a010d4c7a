"""Aggregate statistics over the registration set for the admin dashboard."""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from camp.models import ANONYMIZED, DELETED, PAID, PENDING_PAYMENT, Registration


class RegistrationStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int  # active registrations only
    deleted_count: int
    anonymized_count: int
    pending_payment: int
    paid: int
    wants_exam_iaido: int
    wants_exam_jodo: int
    wants_exam_total: int
    projected_revenue: int
    by_camp_type: dict[str, int]
    iaido_applicants: int
    jodo_applicants: int
    by_current_grade: dict[str, int]
    by_current_grade_iaido: dict[str, int]
    by_current_grade_jodo: dict[str, int]
    by_target_grade_iaido: dict[str, int]
    by_target_grade_jodo: dict[str, int]
    last_registration_at: Optional[str]


def compute_stats(registrations: Iterable[Registration]) -> RegistrationStats:
    """Stats over registrations in creation order. DELETED and ANONYMIZED rows only show up in their own counts."""
    registrations = list(registrations)
    active = [r for r in registrations if r.is_active]

    by_camp_type = Counter(r.camp_type for r in active)
    by_grade_iaido = Counter(r.current_grade_iaido for r in active if r.current_grade_iaido)
    by_grade_jodo = Counter(r.current_grade_jodo for r in active if r.current_grade_jodo)
    by_target_iaido = Counter(r.target_grade_iaido for r in active if r.wants_exam_iaido and r.target_grade_iaido)
    by_target_jodo = Counter(r.target_grade_jodo for r in active if r.wants_exam_jodo and r.target_grade_jodo)

    return RegistrationStats(
        total=len(active),
        deleted_count=sum(1 for r in registrations if r.status == DELETED),
        anonymized_count=sum(1 for r in registrations if r.status == ANONYMIZED),
        pending_payment=sum(1 for r in active if r.status == PENDING_PAYMENT),
        paid=sum(1 for r in active if r.status == PAID),
        wants_exam_iaido=sum(1 for r in active if r.wants_exam_iaido),
        wants_exam_jodo=sum(1 for r in active if r.wants_exam_jodo),
        wants_exam_total=sum(1 for r in active if r.wants_exam_iaido or r.wants_exam_jodo),
        projected_revenue=sum(int(r.amount or 0) for r in active),
        by_camp_type=dict(by_camp_type),
        iaido_applicants=by_camp_type["iaido"] + by_camp_type["both"],
        jodo_applicants=by_camp_type["jodo"] + by_camp_type["both"],
        by_current_grade=dict(by_grade_iaido),
        by_current_grade_iaido=dict(by_grade_iaido),
        by_current_grade_jodo=dict(by_grade_jodo),
        by_target_grade_iaido=dict(by_target_iaido),
        by_target_grade_jodo=dict(by_target_jodo),
        last_registration_at=active[-1].created_at if active else None,
    )
