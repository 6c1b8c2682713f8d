"""SQLAlchemy ORM models for the visits service.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from fieldvisits.models.base import Base
from fieldvisits.models.enums import (
    EmailStatus,
    NoteVisibility,
    VisitEventType,
    VisitPriority,
    VisitState,
)
from fieldvisits.models.visit import Visit
from fieldvisits.models.visit_email import VisitEmail
from fieldvisits.models.visit_event import VisitEvent
from fieldvisits.models.visit_note import VisitNote

__all__ = [
    # Base
    "Base",
    # Models
    "Visit",
    "VisitEvent",
    "VisitNote",
    "VisitEmail",
    # Enums
    "VisitState",
    "VisitPriority",
    "NoteVisibility",
    "EmailStatus",
    "VisitEventType",
]
