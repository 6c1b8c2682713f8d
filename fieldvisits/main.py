"""FastAPI application entry point — wires everything together.

Usage:
    python -m fieldvisits.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from fieldvisits.api import mail, visits
from fieldvisits.api.errors import register_exception_handlers
from fieldvisits.config import settings
from fieldvisits.db.engine import db_lifespan

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting %s (env=%s)", settings.app_name, settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")
        if not settings.mail.transport_configured:
            logger.warning("SMTP_HOST not set — completion emails will be recorded as ERROR")

        try:
            yield
        finally:
            logger.info("Shutting down %s...", settings.app_name)

    logger.info("%s shutdown complete", settings.app_name)


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Field Visits API",
    description="Scheduling, check-in/check-out and audit trail of technician visits",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(visits.router)
app.include_router(mail.router)
register_exception_handlers(app)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "app_name": settings.app_name,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "fieldvisits.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
