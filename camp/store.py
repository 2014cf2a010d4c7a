"""Registration store operations. Each write commits its own transaction."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, literal_column, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from camp.models import ANONYMIZED, DELETED, PAID, PENDING_PAYMENT, STATUSES, Registration

logger = logging.getLogger("camp.store")

# Allowed forward moves for update_registration_status. Anonymization has its own operation
# and is accepted from every status, DELETED included: erasure requests always apply.
_TRANSITIONS = {
    PENDING_PAYMENT: {PAID, DELETED},
    PAID: {DELETED},
    DELETED: set(),
    ANONYMIZED: set(),
}


class StatusTransitionError(Exception):
    """Raised when a status change would move a registration backwards or out of a terminal state."""

    def __init__(self, registration_id: str, current: str, requested: str):
        super().__init__(f"Registration {registration_id} is {current} and cannot become {requested}.")
        self.registration_id = registration_id
        self.current = current
        self.requested = requested


def anonymized_email(registration_id: str) -> str:
    return f"anonymized-{registration_id}@example.invalid"


async def insert_registration(session: AsyncSession, registration: Registration) -> None:
    session.add(registration)
    await session.commit()


async def get_registration(session: AsyncSession, registration_id: str) -> Optional[Registration]:
    return await session.get(Registration, registration_id)


async def count_registrations(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Registration))
    return int(result.scalar_one())


async def list_registrations(session: AsyncSession) -> list[Registration]:
    """All registrations, oldest first by instant (so UTC offsets compare correctly). Ties keep insertion order."""
    result = await session.execute(
        select(Registration).order_by(
            func.julianday(Registration.created_at).asc(),
            literal_column("registrations.rowid").asc(),
        )
    )
    return list(result.scalars().all())


async def _current_status(session: AsyncSession, registration_id: str) -> Optional[str]:
    result = await session.execute(select(Registration.status).where(Registration.id == registration_id))
    return result.scalar_one_or_none()


async def update_registration_status(session: AsyncSession, registration_id: str, status: str) -> int:
    """Move a registration to status. Returns affected rows (0 = not found).

    Repeating the current status is a no-op that still counts as found.
    Raises StatusTransitionError for a move the lifecycle does not allow.
    """
    if status not in STATUSES:
        raise ValueError(f"Unknown registration status: {status!r}")
    allowed_from = [s for s, targets in _TRANSITIONS.items() if status in targets]
    result = await session.execute(
        update(Registration)
        .where(Registration.id == registration_id, Registration.status.in_(allowed_from))
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        await session.commit()
        logger.info("Registration %s set to %s", registration_id, status)
        return result.rowcount
    current = await _current_status(session, registration_id)
    await session.rollback()
    if current is None:
        return 0
    if current == status:
        return 1
    raise StatusTransitionError(registration_id, current, status)


async def anonymize_registration(session: AsyncSession, registration_id: str) -> int:
    """Clear personal data and mark ANONYMIZED. Returns affected rows (0 = not found).

    Keeps id, timestamps, option codes, amounts and consent stamps for statistics and audit.
    """
    result = await session.execute(
        update(Registration)
        .where(Registration.id == registration_id)
        .values(
            status=ANONYMIZED,
            full_name="ANONYMIZED",
            email=anonymized_email(registration_id),
            phone="",
            date_of_birth="",
            city="",
            billing_full_name="",
            billing_zip="",
            billing_city="",
            billing_address="",
            billing_country="",
            food_notes="",
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount:
        logger.info("Registration %s anonymized", registration_id)
    return result.rowcount or 0
