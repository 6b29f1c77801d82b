"""
POST /v1/ingest endpoint for single telemetry samples.

Accepts one meter or vehicle payload (discriminated on ``type``), enforces
the request body limit, decodes the payload and hands it to the ingestion
coordinator. Decoding failures surface as MalformedPayload (400), storage
failures as StorageUnavailable (503); both are translated by the exception
handlers registered in evtelemetry.api.main.

CHANGELOG:
- 2026-10-20: Split Content-Length parsing from the size limit
- 2026-10-19: Single tagged-union payload replaces device batches (STORY-008)

TODO:
- None
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.api.deps import get_db
from evtelemetry.schemas.telemetry import parse_payload
from evtelemetry.services.ingestion import ingest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["ingest"])


class IngestResponse(BaseModel):
    """Acknowledgement returned once a sample has been committed."""

    status: str = "accepted"


def _declared_length(request: Request) -> int | None:
    """Content-Length as an int, None when absent.

    Raises:
        HTTPException: 400 if the header is not an integer.
    """
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Content-Length header.") from None


async def _read_limited_body(request: Request) -> bytes:
    """Return the request body, rejecting it if it exceeds MAX_REQUEST_BYTES.

    The declared length is checked before anything is buffered; the
    buffered length is checked again for chunked bodies.

    Raises:
        HTTPException: 400 for an unparsable Content-Length, 413 when the
            body is over the limit.
    """
    limit = request.app.state.settings.max_request_bytes
    too_large = HTTPException(
        status_code=413,
        detail=f"Request body exceeds limit of {limit} bytes.",
    )

    declared = _declared_length(request)
    if declared is not None and declared > limit:
        raise too_large

    body = await request.body()
    if len(body) > limit:
        raise too_large
    return body


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_sample(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IngestResponse:
    """Ingest one meter or vehicle telemetry sample.

    The body is read and decoded here rather than through a typed parameter
    so that validation errors map to MalformedPayload (400) instead of
    FastAPI's default 422.

    Args:
        request: The incoming FastAPI request.
        db: Async database session.

    Returns:
        IngestResponse: ``{"status": "accepted"}``.
    """
    body = await _read_limited_body(request)
    payload = parse_payload(body)
    receipt = await ingest(db, payload)

    logger.debug("Accepted %s sample %s", receipt.kind, receipt.sample_id)
    return IngestResponse()
