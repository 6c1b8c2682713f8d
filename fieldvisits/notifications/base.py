"""Contract between the visit service and its completion side channel."""

from __future__ import annotations

from typing import Protocol

from fieldvisits.models.visit import Visit


class VisitCompletionNotifier(Protocol):
    """Called once after a check-out has been committed.

    Implementations may raise; the visit service logs and discards the error.
    """

    async def on_visit_completed(self, visit: Visit) -> None: ...
