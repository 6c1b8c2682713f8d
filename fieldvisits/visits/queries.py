"""Database query functions for visits and their child records.

Plain async functions taking the caller's session, shared by the visit
service and the notification side channel.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Literal, TypeVar

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldvisits.models.enums import VisitState
from fieldvisits.models.visit import Visit
from fieldvisits.models.visit_email import VisitEmail
from fieldvisits.models.visit_event import VisitEvent
from fieldvisits.models.visit_note import VisitNote

logger = logging.getLogger(__name__)

T = TypeVar("T")

FilterMode = Literal["conjunctive", "precedence"]


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results; `number` is zero-based."""

    content: list[T]
    total_elements: int
    number: int
    size: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total_elements + self.size - 1) // self.size


# ── Single visit ─────────────────────────────────────────────────────


async def get_visit(db: AsyncSession, visit_id: uuid.UUID) -> Visit | None:
    result = await db.execute(select(Visit).where(Visit.id == visit_id))
    return result.scalar_one_or_none()


async def get_visit_for_update(db: AsyncSession, visit_id: uuid.UUID) -> Visit | None:
    """Load a visit holding a row lock until the transaction ends.

    `populate_existing` refreshes an instance already in the identity map
    with the locked row, so the state guard sees the committed value.
    """
    result = await db.execute(
        select(Visit)
        .where(Visit.id == visit_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ── Visit lists ──────────────────────────────────────────────────────


def build_visit_filters(
    *,
    mode: FilterMode,
    customer_id: uuid.UUID | None = None,
    technician_id: uuid.UUID | None = None,
    state: VisitState | None = None,
    from_: datetime | None = None,
    to: datetime | None = None,
) -> list[ColumnElement[bool]]:
    """Translate list parameters into WHERE clauses.

    precedence: technician+from+to wins, then state alone, else no filter;
    customer_id is ignored. conjunctive: every supplied filter is ANDed.
    """
    if mode == "precedence":
        if technician_id is not None and from_ is not None and to is not None:
            return [
                Visit.technician_id == technician_id,
                Visit.scheduled_start_at.between(from_, to),
            ]
        if state is not None:
            return [Visit.state == state]
        return []

    filters: list[ColumnElement[bool]] = []
    if customer_id is not None:
        filters.append(Visit.customer_id == customer_id)
    if technician_id is not None:
        filters.append(Visit.technician_id == technician_id)
    if state is not None:
        filters.append(Visit.state == state)
    if from_ is not None:
        filters.append(Visit.scheduled_start_at >= from_)
    if to is not None:
        filters.append(Visit.scheduled_start_at <= to)
    return filters


async def get_visits_page(
    db: AsyncSession,
    filters: Sequence[ColumnElement[bool]],
    page: int = 0,
    size: int = 50,
) -> Page[Visit]:
    """Paginated visits ordered by scheduled start, then id for a stable order."""
    count_query = select(func.count(Visit.id))
    if filters:
        count_query = count_query.where(*filters)
    total = (await db.execute(count_query)).scalar() or 0

    query = select(Visit)
    if filters:
        query = query.where(*filters)
    query = (
        query.order_by(Visit.scheduled_start_at.asc(), Visit.id.asc())
        .offset(page * size)
        .limit(size)
    )
    result = await db.execute(query)
    return Page(
        content=list(result.scalars().all()),
        total_elements=total,
        number=page,
        size=size,
    )


async def get_technician_visits_between(
    db: AsyncSession,
    technician_id: uuid.UUID,
    start: datetime,
    end: datetime,
    page: int = 0,
    size: int = 50,
) -> Page[Visit]:
    """Visits of one technician whose scheduled start lies in [start, end]."""
    filters = [
        Visit.technician_id == technician_id,
        Visit.scheduled_start_at.between(start, end),
    ]
    return await get_visits_page(db, filters, page=page, size=size)


# ── Child records ────────────────────────────────────────────────────


async def get_visit_events(db: AsyncSession, visit_id: uuid.UUID) -> list[VisitEvent]:
    """Audit trail of a visit, oldest first."""
    result = await db.execute(
        select(VisitEvent)
        .where(VisitEvent.visit_id == visit_id)
        .order_by(VisitEvent.created_at.asc(), VisitEvent.sequence.asc())
    )
    return list(result.scalars().all())


async def get_visit_notes(db: AsyncSession, visit_id: uuid.UUID) -> list[VisitNote]:
    result = await db.execute(
        select(VisitNote)
        .where(VisitNote.visit_id == visit_id)
        .order_by(VisitNote.created_at.asc())
    )
    return list(result.scalars().all())


async def get_visit_emails(db: AsyncSession, visit_id: uuid.UUID) -> list[VisitEmail]:
    result = await db.execute(
        select(VisitEmail)
        .where(VisitEmail.visit_id == visit_id)
        .order_by(VisitEmail.created_at.asc())
    )
    return list(result.scalars().all())
