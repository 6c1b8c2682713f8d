"""Visits REST API — thin FastAPI router over the visit service.

Handlers translate request bodies into service calls and ORM results into
response schemas. Domain errors propagate to the handlers registered in
fieldvisits.api.errors.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fieldvisits.db.engine import get_session
from fieldvisits.errors import VisitValidationError
from fieldvisits.models.base import utcnow
from fieldvisits.models.enums import VisitState
from fieldvisits.schemas.visits import (
    CheckInRequest,
    CheckOutRequest,
    NoteCreate,
    VisitCreate,
    VisitEmailResponse,
    VisitEventResponse,
    VisitNoteResponse,
    VisitPageResponse,
    VisitResponse,
    VisitUpdate,
)
from fieldvisits.visits.service import visit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visits", tags=["visits"])


def parse_date_iso(date_iso: str | None) -> date:
    """Parse a YYYY-MM-DD query value; missing means today (UTC)."""
    if not date_iso:
        return utcnow().date()
    try:
        return date.fromisoformat(date_iso)
    except ValueError as exc:
        raise VisitValidationError(f"Invalid dateIso: {date_iso!r} (expected YYYY-MM-DD)") from exc


# ── Collection ───────────────────────────────────────────────────────


@router.post("", response_model=VisitResponse)
async def create_visit(
    body: VisitCreate,
    db: AsyncSession = Depends(get_session),
) -> VisitResponse:
    visit = await visit_service.create_planned(
        db,
        customer_id=body.customer_id,
        site_id=body.site_id,
        technician_id=body.technician_id,
        start=body.scheduled_start_at,
        end=body.scheduled_end_at,
        priority=body.priority,
        purpose=body.purpose,
        notes_planned=body.notes_planned,
    )
    return VisitResponse.model_validate(visit)


@router.get("", response_model=VisitPageResponse)
async def list_visits(
    customer_id: uuid.UUID | None = Query(None, alias="customerId"),
    technician_id: uuid.UUID | None = Query(None, alias="technicianId"),
    state: VisitState | None = Query(None),
    from_: datetime | None = Query(None, alias="from"),
    to: datetime | None = Query(None),
    page: int = Query(0, ge=0),
    size: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> VisitPageResponse:
    """Paginated visit list, ordered by scheduled start."""
    result = await visit_service.list(
        db,
        customer_id=customer_id,
        technician_id=technician_id,
        state=state,
        from_=from_,
        to=to,
        page=page,
        size=size,
    )
    return VisitPageResponse.from_page(result)


@router.get("/me/today", response_model=list[VisitResponse])
async def my_visits_today(
    technician_id: uuid.UUID = Query(..., alias="technicianId"),
    date_iso: str | None = Query(None, alias="dateIso"),
    db: AsyncSession = Depends(get_session),
) -> list[VisitResponse]:
    """A technician's visits for one UTC calendar day (default: today)."""
    day = parse_date_iso(date_iso)
    visits = await visit_service.my_visits_today(db, technician_id, day)
    return [VisitResponse.model_validate(v) for v in visits]


# ── Single visit ─────────────────────────────────────────────────────


@router.get("/{visit_id}", response_model=VisitResponse)
async def get_visit(visit_id: uuid.UUID, db: AsyncSession = Depends(get_session)) -> VisitResponse:
    return VisitResponse.model_validate(await visit_service.get_by_id(db, visit_id))


@router.patch("/{visit_id}", response_model=VisitResponse)
async def update_visit(
    visit_id: uuid.UUID,
    body: VisitUpdate,
    db: AsyncSession = Depends(get_session),
) -> VisitResponse:
    visit = await visit_service.update_planned(
        db,
        visit_id,
        start=body.scheduled_start_at,
        end=body.scheduled_end_at,
        technician_id=body.technician_id,
        priority=body.priority,
        purpose=body.purpose,
        notes_planned=body.notes_planned,
    )
    return VisitResponse.model_validate(visit)


@router.post("/{visit_id}/check-in", response_model=VisitResponse)
async def check_in(
    visit_id: uuid.UUID,
    body: CheckInRequest,
    db: AsyncSession = Depends(get_session),
) -> VisitResponse:
    visit = await visit_service.check_in(
        db, visit_id, body.actor_id, when=body.when, lat=body.lat, lng=body.lng
    )
    return VisitResponse.model_validate(visit)


@router.post("/{visit_id}/check-out", response_model=VisitResponse)
async def check_out(
    visit_id: uuid.UUID,
    body: CheckOutRequest,
    db: AsyncSession = Depends(get_session),
) -> VisitResponse:
    visit = await visit_service.check_out(
        db,
        visit_id,
        body.actor_id,
        when=body.when,
        lat=body.lat,
        lng=body.lng,
        work_summary=body.work_summary,
    )
    return VisitResponse.model_validate(visit)


@router.post("/{visit_id}/cancel", status_code=204)
async def cancel_visit(
    visit_id: uuid.UUID,
    actor_id: uuid.UUID | None = Query(None, alias="actorId"),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await visit_service.cancel(db, visit_id, actor_id)
    return Response(status_code=204)


@router.post("/{visit_id}/no-show", response_model=VisitResponse)
async def mark_no_show(
    visit_id: uuid.UUID,
    actor_id: uuid.UUID | None = Query(None, alias="actorId"),
    db: AsyncSession = Depends(get_session),
) -> VisitResponse:
    visit = await visit_service.mark_no_show(db, visit_id, actor_id)
    return VisitResponse.model_validate(visit)


# ── Audit trail, notes, emails ───────────────────────────────────────


@router.get("/{visit_id}/events", response_model=list[VisitEventResponse])
async def list_events(
    visit_id: uuid.UUID, db: AsyncSession = Depends(get_session)
) -> list[VisitEventResponse]:
    events = await visit_service.events(db, visit_id)
    return [VisitEventResponse.model_validate(e) for e in events]


@router.post("/{visit_id}/notes", response_model=list[VisitNoteResponse])
async def add_note(
    visit_id: uuid.UUID,
    body: NoteCreate,
    db: AsyncSession = Depends(get_session),
) -> list[VisitNoteResponse]:
    notes = await visit_service.add_note(db, visit_id, body.author_id, body.visibility, body.body)
    return [VisitNoteResponse.model_validate(n) for n in notes]


@router.get("/{visit_id}/notes", response_model=list[VisitNoteResponse])
async def list_notes(
    visit_id: uuid.UUID, db: AsyncSession = Depends(get_session)
) -> list[VisitNoteResponse]:
    notes = await visit_service.notes(db, visit_id)
    return [VisitNoteResponse.model_validate(n) for n in notes]


@router.get("/{visit_id}/emails", response_model=list[VisitEmailResponse])
async def list_emails(
    visit_id: uuid.UUID, db: AsyncSession = Depends(get_session)
) -> list[VisitEmailResponse]:
    emails = await visit_service.emails(db, visit_id)
    return [VisitEmailResponse.model_validate(e) for e in emails]
