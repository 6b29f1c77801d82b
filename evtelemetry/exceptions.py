"""
Error taxonomy for the ingestion and analytics paths.

Route handlers translate these into HTTP responses (see
evtelemetry.api.main). An unmapped meter is deliberately absent: it is an
expected condition, logged as a warning, and never raised.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-003)

TODO:
- None
"""

from typing import Any


class TelemetryError(Exception):
    """Base class for all telemetry service errors."""


class MalformedPayload(TelemetryError):
    """A payload is missing a required field or carries an invalid value.

    Fatal for the call that raised it; the core never retries it.

    Attributes:
        errors: Structured validation errors (Pydantic ``errors()`` format).
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class StorageUnavailable(TelemetryError):
    """An ingestion transaction could not begin or commit.

    The transaction has been rolled back. Retry policy belongs to the caller.
    """


class AggregationUnavailable(TelemetryError):
    """An analytics read failed. No partial result is returned."""
