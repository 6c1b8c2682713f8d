"""Domain errors raised by the visit aggregate and service.

Every error carries the context a caller needs to render an actionable
message; the API layer maps each class to an HTTP status.
"""

from __future__ import annotations

import uuid
from typing import Any


class VisitError(Exception):
    """Base class for visit domain errors."""

    code = "visit_error"

    def __init__(self, message: str, visit_id: uuid.UUID | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.visit_id = visit_id

    def context(self) -> dict[str, Any]:
        """Structured details for error responses and logs."""
        ctx: dict[str, Any] = {}
        if self.visit_id is not None:
            ctx["visitId"] = str(self.visit_id)
        return ctx


class VisitNotFound(VisitError):
    code = "not_found"

    def __init__(self, visit_id: uuid.UUID) -> None:
        super().__init__(f"Visit not found: {visit_id}", visit_id)


class VisitValidationError(VisitError):
    code = "validation_error"


class InvalidStateTransition(VisitError):
    """A command was issued from a state that does not allow it."""

    code = "invalid_state_transition"

    def __init__(self, visit_id: uuid.UUID | None, command: str, current_state: str) -> None:
        super().__init__(
            f"Cannot {command} visit {visit_id} in state {current_state}",
            visit_id,
        )
        self.command = command
        self.current_state = current_state

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx["command"] = self.command
        ctx["currentState"] = self.current_state
        return ctx


class VisitConflict(VisitError):
    """The visit row changed underneath the current command."""

    code = "conflict"

    def __init__(self, visit_id: uuid.UUID) -> None:
        super().__init__(f"Visit {visit_id} was modified concurrently; retry the command", visit_id)


class NotificationError(VisitError):
    """Completion notification could not be delivered. Never surfaced to API callers."""

    code = "notification_failed"

    def __init__(self, visit_id: uuid.UUID, reason: str) -> None:
        super().__init__(f"Notification for visit {visit_id} failed: {reason}", visit_id)
        self.reason = reason
