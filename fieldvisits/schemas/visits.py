"""Pydantic schemas for the visits REST API.

Wire format is camelCase; snake_case is accepted on input as well.
Enum fields are closed: unknown values are rejected with 422 before any
service code runs.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fieldvisits.models.enums import EmailStatus, NoteVisibility, VisitPriority, VisitState
from fieldvisits.models.visit import Visit
from fieldvisits.visits.queries import Page


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, readable from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Requests ─────────────────────────────────────────────────────────


class VisitCreate(CamelModel):
    customer_id: uuid.UUID
    site_id: uuid.UUID
    technician_id: uuid.UUID
    scheduled_start_at: datetime | None = None
    scheduled_end_at: datetime | None = None
    priority: VisitPriority | None = None
    purpose: str | None = None
    notes_planned: str | None = None


class VisitUpdate(CamelModel):
    """Partial edit of a planned visit; omitted fields stay unchanged."""

    scheduled_start_at: datetime | None = None
    scheduled_end_at: datetime | None = None
    technician_id: uuid.UUID | None = None
    priority: VisitPriority | None = None
    purpose: str | None = None
    notes_planned: str | None = None


class CheckInRequest(CamelModel):
    actor_id: uuid.UUID | None = None
    when: datetime | None = None
    lat: float | None = None
    lng: float | None = None


class CheckOutRequest(CheckInRequest):
    work_summary: str | None = None


class NoteCreate(CamelModel):
    author_id: uuid.UUID
    visibility: NoteVisibility | None = None
    body: str | None = None


# ── Responses ────────────────────────────────────────────────────────


class VisitResponse(CamelModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    site_id: uuid.UUID
    technician_id: uuid.UUID
    state: VisitState
    priority: VisitPriority
    purpose: str | None = None
    scheduled_start_at: datetime
    scheduled_end_at: datetime
    notes_planned: str | None = None
    check_in_at: datetime | None = None
    check_out_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class VisitEventResponse(CamelModel):
    id: uuid.UUID
    visit_id: uuid.UUID
    type: str
    actor_id: uuid.UUID | None = None
    geo_lat: float | None = None
    geo_lng: float | None = None
    payload: str | None = None
    created_at: datetime


class VisitNoteResponse(CamelModel):
    id: uuid.UUID
    visit_id: uuid.UUID
    author_id: uuid.UUID
    visibility: NoteVisibility
    body: str
    created_at: datetime


class VisitEmailResponse(CamelModel):
    id: uuid.UUID
    visit_id: uuid.UUID
    to_email: str
    subject: str | None = None
    status: EmailStatus
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class VisitPageResponse(CamelModel):
    """Zero-based page of visits."""

    content: list[VisitResponse] = Field(default_factory=list)
    total_elements: int
    total_pages: int
    number: int
    size: int

    @classmethod
    def from_page(cls, page: Page[Visit]) -> VisitPageResponse:
        return cls(
            content=[VisitResponse.model_validate(visit) for visit in page.content],
            total_elements=page.total_elements,
            total_pages=page.total_pages,
            number=page.number,
            size=page.size,
        )
