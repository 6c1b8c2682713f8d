"""Visit service — orchestrates the visit lifecycle.

Each command loads the visit (row-locked for mutations), runs the aggregate
transition, flushes the visit and appends exactly one VisitEvent in the
caller's transaction. Domain errors propagate and the caller's session is
rolled back, so a visit change and its event are written together or not
at all.

Check-out is the one command with a side effect: the transaction is
committed first, then the completion notifier runs; its failures are logged
and discarded.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fieldvisits.config import VisitSettings, settings
from fieldvisits.errors import VisitConflict, VisitNotFound, VisitValidationError
from fieldvisits.models.base import utcnow
from fieldvisits.models.enums import NoteVisibility, VisitEventType, VisitPriority, VisitState
from fieldvisits.models.visit import Visit
from fieldvisits.models.visit_email import VisitEmail
from fieldvisits.models.visit_event import VisitEvent
from fieldvisits.models.visit_note import NOTE_BODY_MAX_LENGTH, VisitNote
from fieldvisits.notifications.base import VisitCompletionNotifier
from fieldvisits.notifications.email import visit_email_notifier
from fieldvisits.visits import queries
from fieldvisits.visits.queries import Page

logger = logging.getLogger(__name__)


class VisitService:
    """Commands and queries over visits, their events and notes."""

    def __init__(
        self,
        notifier: VisitCompletionNotifier | None = None,
        visit_settings: VisitSettings | None = None,
    ) -> None:
        self._notifier = notifier or visit_email_notifier
        self._settings = visit_settings or settings.visits

    # ── Commands ─────────────────────────────────────────────────────

    async def create_planned(
        self,
        db: AsyncSession,
        customer_id: uuid.UUID,
        site_id: uuid.UUID,
        technician_id: uuid.UUID,
        start: datetime | None,
        end: datetime | None,
        priority: VisitPriority | None = None,
        purpose: str | None = None,
        notes_planned: str | None = None,
    ) -> Visit:
        """Create a PLANNED visit and record VisitScheduled.

        Raises:
            VisitValidationError: if the schedule is missing or end is not after start.
        """
        visit = Visit.planned(
            customer_id=customer_id,
            site_id=site_id,
            technician_id=technician_id,
            start=start,
            end=end,
            priority=priority,
            purpose=purpose,
            notes_planned=notes_planned,
        )
        db.add(visit)
        await self._flush(db, visit.id)
        await self._append_event(db, visit, VisitEventType.SCHEDULED)

        logger.info(
            "Visit scheduled: id=%s technician=%s start=%s",
            visit.id,
            visit.technician_id,
            visit.scheduled_start_at.isoformat(),
        )
        return visit

    async def update_planned(
        self,
        db: AsyncSession,
        visit_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        technician_id: uuid.UUID | None = None,
        priority: VisitPriority | None = None,
        purpose: str | None = None,
        notes_planned: str | None = None,
    ) -> Visit:
        """Partially edit a PLANNED visit and record VisitUpdated.

        Only the arguments that are not None are applied. The event payload
        lists the fields that were supplied.
        """
        visit = await self._load_for_update(db, visit_id)
        applied = visit.apply_planned_changes(
            scheduled_start_at=start,
            scheduled_end_at=end,
            technician_id=technician_id,
            priority=priority,
            purpose=purpose,
            notes_planned=notes_planned,
        )
        visit.validate()
        await self._flush(db, visit.id)
        await self._append_event(
            db,
            visit,
            VisitEventType.UPDATED,
            payload=",".join(applied) if applied else None,
        )

        logger.info("Visit updated: id=%s fields=%s", visit.id, applied)
        return visit

    async def check_in(
        self,
        db: AsyncSession,
        visit_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        when: datetime | None = None,
        lat: float | None = None,
        lng: float | None = None,
    ) -> Visit:
        """PLANNED → STARTED; `when` defaults to now (UTC)."""
        visit = await self._load_for_update(db, visit_id)
        visit.start(when or utcnow())
        await self._flush(db, visit.id)
        await self._append_event(
            db, visit, VisitEventType.STARTED, actor_id=actor_id, lat=lat, lng=lng
        )
        return visit

    async def check_out(
        self,
        db: AsyncSession,
        visit_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        when: datetime | None = None,
        lat: float | None = None,
        lng: float | None = None,
        work_summary: str | None = None,
    ) -> Visit:
        """STARTED → DONE, commit, then notify.

        The notifier runs only after the visit and its VisitCompleted event
        are committed. Anything it raises is logged and discarded.
        """
        visit = await self._load_for_update(db, visit_id)
        visit.complete(when or utcnow())
        await self._flush(db, visit.id)
        await self._append_event(
            db,
            visit,
            VisitEventType.COMPLETED,
            actor_id=actor_id,
            lat=lat,
            lng=lng,
            payload=work_summary,
        )
        try:
            await db.commit()
        except StaleDataError as exc:
            raise VisitConflict(visit.id) from exc

        try:
            await self._notifier.on_visit_completed(visit)
        except Exception:
            logger.exception("Completion notification failed for visit %s", visit.id)

        return visit

    async def cancel(self, db: AsyncSession, visit_id: uuid.UUID, actor_id: uuid.UUID | None) -> None:
        """PLANNED → CANCELLED."""
        visit = await self._load_for_update(db, visit_id)
        visit.cancel()
        await self._flush(db, visit.id)
        await self._append_event(db, visit, VisitEventType.CANCELLED, actor_id=actor_id)

    async def mark_no_show(
        self, db: AsyncSession, visit_id: uuid.UUID, actor_id: uuid.UUID | None
    ) -> Visit:
        """PLANNED → NO_SHOW."""
        visit = await self._load_for_update(db, visit_id)
        visit.no_show()
        await self._flush(db, visit.id)
        await self._append_event(db, visit, VisitEventType.NO_SHOW, actor_id=actor_id)
        return visit

    async def add_note(
        self,
        db: AsyncSession,
        visit_id: uuid.UUID,
        author_id: uuid.UUID,
        visibility: NoteVisibility | None,
        body: str | None,
    ) -> list[VisitNote]:
        """Attach a note and return all notes of the visit, oldest first.

        Raises:
            VisitNotFound: if the visit does not exist.
            VisitValidationError: if the body is blank or too long.
        """
        visit = await self.get_by_id(db, visit_id)
        if body is None or not body.strip():
            raise VisitValidationError("Note body must not be blank", visit.id)
        if len(body) > NOTE_BODY_MAX_LENGTH:
            raise VisitValidationError(
                f"Note body must be at most {NOTE_BODY_MAX_LENGTH} characters", visit.id
            )

        note = VisitNote.of(visit.id, author_id, visibility or NoteVisibility.INTERNAL, body)
        db.add(note)
        await db.flush()

        logger.info("Note added: visit=%s visibility=%s", visit.id, note.visibility.value)
        return await queries.get_visit_notes(db, visit.id)

    # ── Queries ──────────────────────────────────────────────────────

    async def get_by_id(self, db: AsyncSession, visit_id: uuid.UUID) -> Visit:
        visit = await queries.get_visit(db, visit_id)
        if visit is None:
            raise VisitNotFound(visit_id)
        return visit

    async def list(
        self,
        db: AsyncSession,
        customer_id: uuid.UUID | None = None,
        technician_id: uuid.UUID | None = None,
        state: VisitState | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> Page[Visit]:
        """Paginated visit list; filter semantics follow `list_filter_mode`."""
        if page < 0:
            raise VisitValidationError("page must be >= 0")
        size = size or self._settings.default_page_size
        if size < 1:
            raise VisitValidationError("size must be >= 1")
        size = min(size, self._settings.max_page_size)

        filters = queries.build_visit_filters(
            mode=self._settings.list_filter_mode,
            customer_id=customer_id,
            technician_id=technician_id,
            state=state,
            from_=from_,
            to=to,
        )
        return await queries.get_visits_page(db, filters, page=page, size=size)

    async def my_visits_today(
        self, db: AsyncSession, technician_id: uuid.UUID, day: date
    ) -> list[Visit]:
        """Visits of `technician_id` starting within `day` (UTC).

        The window is [day 00:00Z, next day 00:00Z) expressed as an inclusive
        range ending one microsecond before midnight.
        """
        start, end = day_bounds(day)
        result = await queries.get_technician_visits_between(
            db, technician_id, start, end, page=0, size=self._settings.today_page_size
        )
        return result.content

    async def events(self, db: AsyncSession, visit_id: uuid.UUID) -> list[VisitEvent]:
        return await queries.get_visit_events(db, visit_id)

    async def notes(self, db: AsyncSession, visit_id: uuid.UUID) -> list[VisitNote]:
        return await queries.get_visit_notes(db, visit_id)

    async def emails(self, db: AsyncSession, visit_id: uuid.UUID) -> list[VisitEmail]:
        return await queries.get_visit_emails(db, visit_id)

    # ── Internals ────────────────────────────────────────────────────

    async def _load_for_update(self, db: AsyncSession, visit_id: uuid.UUID) -> Visit:
        visit = await queries.get_visit_for_update(db, visit_id)
        if visit is None:
            raise VisitNotFound(visit_id)
        return visit

    @staticmethod
    async def _flush(db: AsyncSession, visit_id: uuid.UUID) -> None:
        try:
            await db.flush()
        except StaleDataError as exc:
            raise VisitConflict(visit_id) from exc

    @staticmethod
    async def _append_event(
        db: AsyncSession,
        visit: Visit,
        event_type: VisitEventType,
        actor_id: uuid.UUID | None = None,
        lat: float | None = None,
        lng: float | None = None,
        payload: str | None = None,
    ) -> VisitEvent:
        event = VisitEvent.of(
            visit.id,
            event_type.value,
            actor_id=actor_id,
            lat=lat,
            lng=lng,
            payload=payload,
            sequence=visit.version or 0,
        )
        db.add(event)
        await db.flush()
        return event


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Inclusive UTC bounds of a calendar day: midnight to one microsecond before the next."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


# Module-level singleton
visit_service = VisitService()
