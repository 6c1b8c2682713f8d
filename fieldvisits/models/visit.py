"""Visit model — the aggregate root and its lifecycle state machine.

A visit is created PLANNED and moves through the transitions in TRANSITIONS
only. The model never touches the session; the visit service persists it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Enum as SAEnum
from sqlalchemy import CheckConstraint, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fieldvisits.errors import InvalidStateTransition, VisitValidationError
from fieldvisits.models.base import Base, TimestampMixin, UTCDateTime, as_utc
from fieldvisits.models.enums import VisitPriority, VisitState

logger = logging.getLogger(__name__)

PURPOSE_MAX_LENGTH = 200
NOTES_PLANNED_MAX_LENGTH = 2000

# command → (required source state, target state)
TRANSITIONS: dict[str, tuple[VisitState, VisitState]] = {
    "start": (VisitState.PLANNED, VisitState.STARTED),
    "complete": (VisitState.STARTED, VisitState.DONE),
    "cancel": (VisitState.PLANNED, VisitState.CANCELLED),
    "no_show": (VisitState.PLANNED, VisitState.NO_SHOW),
}

# Fields that may be edited while the visit is still PLANNED.
PLANNED_FIELDS = (
    "scheduled_start_at",
    "scheduled_end_at",
    "technician_id",
    "priority",
    "purpose",
    "notes_planned",
)


class Visit(TimestampMixin, Base):
    """A scheduled on-site engagement of a technician at a customer site."""

    __tablename__ = "visits"
    __table_args__ = (
        Index("idx_visits_technician_start", "technician_id", "scheduled_start_at"),
        Index("idx_visits_state", "state"),
        CheckConstraint("scheduled_end_at > scheduled_start_at", name="ck_visits_schedule_order"),
    )

    # External references (not validated by this service)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    site_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    technician_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    # State / priority
    state: Mapped[VisitState] = mapped_column(
        SAEnum(VisitState, native_enum=False, length=20, validate_strings=True),
        default=VisitState.PLANNED,
        nullable=False,
    )
    priority: Mapped[VisitPriority] = mapped_column(
        SAEnum(VisitPriority, native_enum=False, length=10, validate_strings=True),
        default=VisitPriority.MEDIUM,
        nullable=False,
    )

    # Planning
    purpose: Mapped[str | None] = mapped_column(String(PURPOSE_MAX_LENGTH))
    scheduled_start_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    scheduled_end_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    notes_planned: Mapped[str | None] = mapped_column(String(NOTES_PLANNED_MAX_LENGTH))

    # Execution
    check_in_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    check_out_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    # Row version, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # ── Factory ──────────────────────────────────────────────────────

    @classmethod
    def planned(
        cls,
        customer_id: uuid.UUID,
        site_id: uuid.UUID,
        technician_id: uuid.UUID,
        start: datetime | None,
        end: datetime | None,
        priority: VisitPriority | None = None,
        purpose: str | None = None,
        notes_planned: str | None = None,
    ) -> Visit:
        """Build a new PLANNED visit with a fresh id and validated schedule."""
        visit = cls(
            id=uuid.uuid4(),
            customer_id=customer_id,
            site_id=site_id,
            technician_id=technician_id,
            state=VisitState.PLANNED,
            priority=priority or VisitPriority.MEDIUM,
            purpose=purpose,
            scheduled_start_at=as_utc(start) if start is not None else None,
            scheduled_end_at=as_utc(end) if end is not None else None,
            notes_planned=notes_planned,
        )
        visit.validate()
        return visit

    # ── Transitions ──────────────────────────────────────────────────

    def start(self, when: datetime) -> None:
        """PLANNED → STARTED. Records the check-in time if not already set."""
        self._transition("start")
        if self.check_in_at is None:
            self.check_in_at = as_utc(when)

    def complete(self, when: datetime) -> None:
        """STARTED → DONE. Records the check-out time if not already set."""
        self._guard("complete")
        check_out = self.check_out_at or as_utc(when)
        if self.check_in_at is not None and check_out <= self.check_in_at:
            msg = (
                f"check_out_at ({check_out.isoformat()}) must be after "
                f"check_in_at ({self.check_in_at.isoformat()})"
            )
            raise VisitValidationError(msg, self.id)
        self._transition("complete")
        self.check_out_at = check_out

    def cancel(self) -> None:
        """PLANNED → CANCELLED."""
        self._transition("cancel")

    def no_show(self) -> None:
        """PLANNED → NO_SHOW."""
        self._transition("no_show")

    def apply_planned_changes(self, **changes: Any) -> list[str]:
        """Apply a partial edit of planned fields; None values are ignored.

        Returns the names of the fields that were supplied.

        Raises:
            InvalidStateTransition: if the visit is no longer PLANNED.
        """
        if self.state != VisitState.PLANNED:
            raise InvalidStateTransition(self.id, "update", self.state.value)

        unknown = set(changes) - set(PLANNED_FIELDS)
        if unknown:
            msg = f"Fields not editable on a planned visit: {sorted(unknown)}"
            raise VisitValidationError(msg, self.id)

        applied: list[str] = []
        for field in PLANNED_FIELDS:
            value = changes.get(field)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = as_utc(value)
            setattr(self, field, value)
            applied.append(field)
        return applied

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    # ── Validation ───────────────────────────────────────────────────

    def validate(self) -> None:
        """Check schedule ordering, execution ordering and field lengths."""
        self.validate_dates()
        if self.purpose is not None and len(self.purpose) > PURPOSE_MAX_LENGTH:
            raise VisitValidationError(
                f"purpose must be at most {PURPOSE_MAX_LENGTH} characters", self.id
            )
        if self.notes_planned is not None and len(self.notes_planned) > NOTES_PLANNED_MAX_LENGTH:
            raise VisitValidationError(
                f"notes_planned must be at most {NOTES_PLANNED_MAX_LENGTH} characters", self.id
            )

    def validate_dates(self) -> None:
        if self.scheduled_start_at is None or self.scheduled_end_at is None:
            raise VisitValidationError("scheduled_start_at and scheduled_end_at are required", self.id)
        if self.scheduled_end_at <= self.scheduled_start_at:
            raise VisitValidationError("scheduled_end_at must be after scheduled_start_at", self.id)
        if (
            self.check_in_at is not None
            and self.check_out_at is not None
            and self.check_out_at <= self.check_in_at
        ):
            raise VisitValidationError("check_out_at must be after check_in_at", self.id)

    # ── Internals ────────────────────────────────────────────────────

    def _guard(self, command: str) -> VisitState:
        source, target = TRANSITIONS[command]
        if self.state != source:
            raise InvalidStateTransition(self.id, command, self.state.value)
        return target

    def _transition(self, command: str) -> None:
        target = self._guard(command)
        old_state = self.state
        self.state = target
        logger.info(
            "Visit transition: %s --%s--> %s (visit=%s)",
            old_state.value,
            command,
            target.value,
            self.id,
        )

    def __repr__(self) -> str:
        return f"<Visit id={self.id} state={self.state} start={self.scheduled_start_at}>"
