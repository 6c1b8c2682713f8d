"""Operational endpoint to check SMTP delivery."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from fieldvisits.notifications.email import visit_email_notifier

router = APIRouter(tags=["mail"])


@router.get("/test-mail", response_class=PlainTextResponse)
async def test_mail() -> PlainTextResponse:
    """Send a test message to the default recipient and report the outcome."""
    _ok, message = await visit_email_notifier.send_test_mail()
    return PlainTextResponse(message)
