"""
FastAPI application entry point for the EV telemetry API.

Loads Settings and configures logging at startup, initialises the database
engine, registers the routers, and maps the service error taxonomy to HTTP
responses:

- MalformedPayload -> 400
- StorageUnavailable -> 503
- AggregationUnavailable -> 503

Run with ``uvicorn evtelemetry.api.main:app``.

CHANGELOG:
- 2026-10-19: Register status and analytics routers (STORY-010, STORY-011)
- 2026-10-19: Exception handlers for the error taxonomy (STORY-003)
- 2026-10-19: Load Settings, drop DEVICE_TOKENS bearer auth (STORY-002)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from evtelemetry import __version__
from evtelemetry.api.analytics import router as analytics_router
from evtelemetry.api.health import router as health_router
from evtelemetry.api.ingest import router as ingest_router
from evtelemetry.api.status import router as status_router
from evtelemetry.config import get_settings
from evtelemetry.db.session import dispose_engine, init_engine
from evtelemetry.exceptions import (
    AggregationUnavailable,
    MalformedPayload,
    StorageUnavailable,
)
from evtelemetry.logging_setup import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: settings, logging and engine setup/teardown.

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings

    init_engine()
    logger.info("Settings validated, EV telemetry API ready")
    yield
    await dispose_engine()
    logger.info("EV telemetry API shutting down")


app = FastAPI(
    title="EV Telemetry API",
    description="Charging meter and vehicle telemetry ingestion and analytics.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(ingest_router)
app.include_router(status_router)
app.include_router(analytics_router)


# ---------------------------------------------------------------------------
# Error taxonomy -> HTTP
# ---------------------------------------------------------------------------


@app.exception_handler(MalformedPayload)
async def malformed_payload_handler(
    request: Request, exc: MalformedPayload
) -> JSONResponse:
    """Client input defect: 400 with the validation errors."""
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "errors": exc.errors},
    )


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailable
) -> JSONResponse:
    """Ingestion rolled back: 503 so the client applies its retry policy."""
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(AggregationUnavailable)
async def aggregation_unavailable_handler(
    request: Request, exc: AggregationUnavailable
) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/")
async def root() -> dict:
    """Root health check endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}
