"""Visit completion email — best-effort side channel after check-out.

Flow per completed visit:
1. Insert a PENDING VisitEmail row and commit it (own session).
2. Render the HTML body and hand the message to the SMTP transport.
3. Update the row to SENT, or ERROR with the failure text (max 1000 chars).

The delivery outcome is recorded, never returned. The visit row is not
touched here, so a failed email can never undo a check-out.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldvisits.config import MailSettings, settings
from fieldvisits.db.engine import async_session_factory
from fieldvisits.errors import NotificationError
from fieldvisits.models.visit import Visit
from fieldvisits.models.visit_email import VisitEmail
from fieldvisits.notifications.smtp import SmtpTransport

logger = logging.getLogger(__name__)

_template_dir = Path(__file__).parent / "templates"
_templates = Environment(
    loader=FileSystemLoader(str(_template_dir)),
    autoescape=select_autoescape(["html"]),
)

_MISSING = "-"


def _fmt(value: datetime | None) -> str:
    return value.isoformat() if value is not None else _MISSING


def build_subject(visit: Visit) -> str:
    purpose = (visit.purpose or "").strip()
    if not purpose:
        return f"Visit completed – {visit.id}"
    return f"Visit completed – {purpose}"


def build_body_html(visit: Visit, sender: str) -> str:
    check_out = _fmt(visit.check_out_at)
    subtitle = "No check-out time recorded" if check_out == _MISSING else f"Finished at {check_out}"
    return _templates.get_template("visit_completed.html").render(
        subtitle=subtitle,
        visit_id=visit.id,
        purpose=visit.purpose or "",
        check_in=_fmt(visit.check_in_at),
        check_out=check_out,
        sender=sender,
    )


class VisitEmailNotifier:
    """Emails a summary of each completed visit and records the outcome."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = async_session_factory,
        mail_settings: MailSettings | None = None,
        transport: SmtpTransport | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._mail = mail_settings or settings.mail
        self._transport = transport or SmtpTransport(self._mail)

    def resolve_recipient(self, visit: Visit) -> str:
        # TODO: use the site contact's address once the contacts service exposes it by site id
        return self._mail.mail_default_to

    async def on_visit_completed(self, visit: Visit) -> None:
        """Record and attempt delivery of the completion email for `visit`.

        Delivery failures end up on the VisitEmail row. Failing to write the
        row itself raises NotificationError.
        """
        logger.info("Sending completion email for visit %s", visit.id)

        try:
            async with self._session_factory() as db:
                email = VisitEmail.pending(
                    visit_id=visit.id,
                    to_email=self.resolve_recipient(visit),
                    subject=build_subject(visit),
                )
                db.add(email)
                await db.commit()

                try:
                    await asyncio.to_thread(self._transport.send, self._build_message(visit, email))
                except Exception as exc:
                    logger.exception("Completion email for visit %s failed", visit.id)
                    email.mark_error(str(exc) or exc.__class__.__name__)
                else:
                    email.mark_sent()
                    logger.info("Completion email SENT: %s (visit=%s)", email.id, visit.id)

                await db.commit()
        except SQLAlchemyError as exc:
            raise NotificationError(visit.id, str(exc)) from exc

    def _build_message(self, visit: Visit, email: VisitEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._mail.mail_from
        message["To"] = email.to_email
        message["Subject"] = email.subject
        message.set_content(f"Visit {visit.id} has been completed.")
        message.add_alternative(build_body_html(visit, self._mail.mail_from), subtype="html")
        return message

    async def send_test_mail(self) -> tuple[bool, str]:
        """Send a plain-text message to the default recipient to check the transport."""
        message = EmailMessage()
        message["From"] = self._mail.mail_from
        message["To"] = self._mail.mail_default_to
        message["Subject"] = "Test message from the visits service"
        message.set_content(
            "Hello,\n\nThis is a test message sent by the visits service.\n"
            "If you can read it, SMTP delivery works.\n"
        )
        try:
            await asyncio.to_thread(self._transport.send, message)
        except Exception as exc:
            logger.exception("Test mail failed")
            return False, f"Error sending test mail: {exc}"
        return True, f"Test mail sent to {self._mail.mail_default_to}"


# Module-level singleton
visit_email_notifier = VisitEmailNotifier()
