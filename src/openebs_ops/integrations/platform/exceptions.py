"""Platform REST API exceptions."""

from __future__ import annotations

from typing import Any


class PlatformAPIError(Exception):
    """Base exception for platform REST API errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (if a response was received).
        response_body: Parsed response body (if available).
        endpoint: The API endpoint that was called.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict[str, Any] | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.endpoint = endpoint

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.endpoint:
            parts.append(f"[endpoint: {self.endpoint}]")
        return " ".join(parts)


class PlatformConnectionError(PlatformAPIError):
    """Raised when the REST API cannot be reached (network errors, timeouts)."""

    def __init__(
        self,
        message: str = "Failed to connect to the OpenEBS REST API",
        endpoint: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message, endpoint=endpoint)
        self.original_error = original_error
