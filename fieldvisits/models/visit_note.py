"""VisitNote model — timestamped annotations on a visit."""

from __future__ import annotations

import uuid

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fieldvisits.models.base import Base, TimestampMixin
from fieldvisits.models.enums import NoteVisibility

NOTE_BODY_MAX_LENGTH = 4000


class VisitNote(TimestampMixin, Base):
    """A note left on a visit by staff. Immutable once written."""

    __tablename__ = "visit_notes"

    visit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("visits.id"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    visibility: Mapped[NoteVisibility] = mapped_column(
        SAEnum(NoteVisibility, native_enum=False, length=20, validate_strings=True),
        default=NoteVisibility.INTERNAL,
        nullable=False,
    )
    body: Mapped[str] = mapped_column(String(NOTE_BODY_MAX_LENGTH), nullable=False)

    @classmethod
    def of(
        cls,
        visit_id: uuid.UUID,
        author_id: uuid.UUID,
        visibility: NoteVisibility,
        body: str,
    ) -> VisitNote:
        return cls(
            id=uuid.uuid4(),
            visit_id=visit_id,
            author_id=author_id,
            visibility=visibility,
            body=body,
        )

    def __repr__(self) -> str:
        preview = self.body[:50] if self.body else ""
        return f"<VisitNote id={self.id} visibility={self.visibility} preview='{preview}...'>"
