"""Blocking SMTP transport, run in a worker thread by the email notifier."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from fieldvisits.config import MailSettings
from fieldvisits.errors import VisitError

logger = logging.getLogger(__name__)

_IMPLICIT_TLS_PORT = 465


class MailTransportNotConfigured(VisitError):
    code = "mail_transport_not_configured"

    def __init__(self) -> None:
        super().__init__("SMTP transport not configured (MAIL SMTP_HOST is empty)")


class SmtpTransport:
    """Sends EmailMessage objects through the configured SMTP server."""

    def __init__(self, mail_settings: MailSettings) -> None:
        self._settings = mail_settings

    def send(self, message: EmailMessage) -> None:
        """Deliver one message.

        Raises:
            MailTransportNotConfigured: if no SMTP host is set.
            smtplib.SMTPException, OSError: on delivery failure.
        """
        cfg = self._settings
        if not cfg.transport_configured:
            raise MailTransportNotConfigured()

        if cfg.smtp_port == _IMPLICIT_TLS_PORT:
            context = ssl.create_default_context()
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.smtp_host, cfg.smtp_port, context=context, timeout=cfg.smtp_timeout
            )
        else:
            server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout)

        with server:
            if cfg.smtp_port != _IMPLICIT_TLS_PORT and cfg.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if cfg.smtp_username:
                server.login(cfg.smtp_username, cfg.smtp_password)
            server.send_message(message)

        logger.info("SMTP message sent via %s to %s", cfg.smtp_host, message["To"])
