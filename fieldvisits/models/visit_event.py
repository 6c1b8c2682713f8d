"""VisitEvent model — append-only audit trail of a visit.

One row per transition, written in the same transaction as the visit.
Rows are never updated or deleted.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fieldvisits.models.base import Base, TimestampMixin


class VisitEvent(TimestampMixin, Base):
    """Immutable domain event recorded against a visit."""

    __tablename__ = "visit_events"

    visit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("visits.id"), nullable=False, index=True
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False, comment="VisitScheduled, VisitStarted, ...")
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), comment="Who performed the action")

    # Location captured at check-in / check-out
    geo_lat: Mapped[float | None] = mapped_column(Float)
    geo_lng: Mapped[float | None] = mapped_column(Float)

    payload: Mapped[str | None] = mapped_column(Text, comment="Free text, e.g. work summary")

    # Visit row version when the event was written; orders events sharing a timestamp
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @classmethod
    def of(
        cls,
        visit_id: uuid.UUID,
        type_: str,
        actor_id: uuid.UUID | None = None,
        lat: float | None = None,
        lng: float | None = None,
        payload: str | None = None,
        sequence: int = 0,
    ) -> VisitEvent:
        return cls(
            id=uuid.uuid4(),
            visit_id=visit_id,
            type=type_,
            actor_id=actor_id,
            geo_lat=lat,
            geo_lng=lng,
            payload=payload,
            sequence=sequence,
        )

    def __repr__(self) -> str:
        return f"<VisitEvent id={self.id} visit={self.visit_id} type={self.type}>"
