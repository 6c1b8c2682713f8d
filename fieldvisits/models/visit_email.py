"""VisitEmail model — delivery record of a visit completion email.

Written by the notification side channel in its own transaction, so a
delivery failure never touches the visit row.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fieldvisits.models.base import Base, TimestampMixin
from fieldvisits.models.enums import EmailStatus

ERROR_MESSAGE_MAX_LENGTH = 1000


class VisitEmail(TimestampMixin, Base):
    """One row per completion email attempt: PENDING → SENT | ERROR."""

    __tablename__ = "visit_emails"

    visit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("visits.id"), nullable=False, index=True
    )
    to_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(300))
    status: Mapped[EmailStatus] = mapped_column(
        SAEnum(EmailStatus, native_enum=False, length=30, validate_strings=True),
        default=EmailStatus.PENDING,
        nullable=False,
    )
    error_message: Mapped[str | None] = mapped_column(String(ERROR_MESSAGE_MAX_LENGTH))

    @classmethod
    def pending(cls, visit_id: uuid.UUID, to_email: str, subject: str) -> VisitEmail:
        return cls(
            id=uuid.uuid4(),
            visit_id=visit_id,
            to_email=to_email,
            subject=subject,
            status=EmailStatus.PENDING,
        )

    def mark_sent(self) -> None:
        self.status = EmailStatus.SENT
        self.error_message = None

    def mark_error(self, message: str | None) -> None:
        self.status = EmailStatus.ERROR
        if message is not None:
            message = message[:ERROR_MESSAGE_MAX_LENGTH]
        self.error_message = message

    def __repr__(self) -> str:
        return f"<VisitEmail id={self.id} visit={self.visit_id} status={self.status}>"
