"""Maps visit domain errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fieldvisits.errors import (
    InvalidStateTransition,
    VisitConflict,
    VisitError,
    VisitNotFound,
    VisitValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[VisitError], int] = {
    VisitNotFound: 404,
    VisitValidationError: 400,
    InvalidStateTransition: 409,
    VisitConflict: 409,
}


def status_for(exc: VisitError) -> int:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


def error_body(exc: VisitError) -> dict[str, object]:
    return {"error": exc.code, "detail": exc.message, **exc.context()}


async def visit_error_handler(request: Request, exc: VisitError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("Unmapped visit error on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info(
            "Request rejected (%d %s) on %s %s: %s",
            status,
            exc.code,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(status_code=status, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VisitError, visit_error_handler)  # type: ignore[arg-type]
