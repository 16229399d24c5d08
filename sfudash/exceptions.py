"""Custom exception hierarchy for the SFU dashboard backend.

Provides structured error types that the centralized error handler
translates into consistent JSON responses.
"""

from __future__ import annotations


class SfuDashError(Exception):
    """Base exception for all dashboard backend errors."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str = "An internal error occurred") -> None:
        self.message = message
        super().__init__(message)


class ValidationError(SfuDashError):
    """Input validation failure beyond Pydantic constraints."""

    status_code = 400
    error_type = "validation_error"


class UpstreamError(SfuDashError):
    """The SFU signaling API could not be reached."""

    status_code = 502
    error_type = "upstream_error"


class StreamClosedError(SfuDashError):
    """A frame was written to a push stream that has been torn down."""

    status_code = 410
    error_type = "stream_closed"
