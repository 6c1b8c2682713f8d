"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization and are persisted as strings.
Unknown values are rejected by the Pydantic schemas before reaching the models.
"""

from __future__ import annotations

from enum import Enum


class VisitState(str, Enum):
    """Visit lifecycle states."""

    PLANNED = "PLANNED"
    STARTED = "STARTED"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({VisitState.DONE, VisitState.CANCELLED, VisitState.NO_SHOW})


class VisitPriority(str, Enum):
    """How urgently the visit should be served."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NoteVisibility(str, Enum):
    """Who may read a visit note."""

    INTERNAL = "INTERNAL"  # staff only
    CUSTOMER = "CUSTOMER"  # also shown to the customer


class EmailStatus(str, Enum):
    """Delivery status of a visit completion email."""

    PENDING = "PENDING"
    SENT = "SENT"
    ERROR = "ERROR"


class VisitEventType(str, Enum):
    """Tags written to the visit event log, one per transition."""

    SCHEDULED = "VisitScheduled"
    UPDATED = "VisitUpdated"
    STARTED = "VisitStarted"
    COMPLETED = "VisitCompleted"
    CANCELLED = "VisitCancelled"
    NO_SHOW = "VisitNoShow"
