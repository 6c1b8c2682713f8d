"""Completion notifications — SMTP email with a persisted delivery record."""

from fieldvisits.notifications.base import VisitCompletionNotifier
from fieldvisits.notifications.email import VisitEmailNotifier, visit_email_notifier

__all__ = ["VisitCompletionNotifier", "VisitEmailNotifier", "visit_email_notifier"]
