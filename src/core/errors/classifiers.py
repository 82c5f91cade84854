"""
Centralized error classification for API responses and transport failures.

Maps HTTP outcomes and aiohttp exceptions onto the ClassifiedError taxonomy
so every failure leaving the client carries exactly one ErrorKind.
"""

import asyncio
import logging

import aiohttp
from pydantic import BaseModel, ValidationError

from core.errors.exceptions import (
    ClassifiedError,
    api_error,
    timeout_error,
    transport_error,
)

logger = logging.getLogger(__name__)


class ApiErrorEntry(BaseModel):
    """Individual error entry from an API error envelope."""

    code: str
    detail: str
    status: str
    title: str

    def __str__(self) -> str:
        return f"{self.title}: {self.detail} ({self.code})"


class ErrorEnvelope(BaseModel):
    """API error response body: {"errors": [...]}."""

    errors: list[ApiErrorEntry]


def parse_error_envelope(body: bytes) -> ErrorEnvelope | None:
    """
    Parse an error envelope from a response body.

    Args:
        body: Raw response body

    Returns:
        ErrorEnvelope, or None if the body is not a well-formed envelope
    """
    if not body:
        return None
    try:
        return ErrorEnvelope.model_validate_json(body)
    except (ValidationError, UnicodeDecodeError):
        return None


class ErrorClassifier:
    """
    Classifies HTTP responses and transport exceptions.

    Stateless; exposed as a class so the pipeline can accept an alternate
    classifier in tests.
    """

    @staticmethod
    def classify(status: int, body: bytes) -> ClassifiedError | None:
        """
        Classify an HTTP response.

        Args:
            status: HTTP status code
            body: Raw response body

        Returns:
            None for 2xx, otherwise an API_ERROR carrying the first envelope
            entry's detail or the raw body text
        """
        if 200 <= status < 300:
            return None

        envelope = parse_error_envelope(body)
        if envelope is not None and envelope.errors:
            first = envelope.errors[0]
            return api_error(
                status,
                first.detail,
                context={"code": first.code, "title": first.title},
            )

        return api_error(status, body.decode("utf-8", errors="replace"))

    @staticmethod
    def classify_transport_exception(
        error: Exception, url: str | None = None
    ) -> ClassifiedError:
        """
        Classify an exception raised by the HTTP transport.

        Args:
            error: Original exception
            url: Request URL for the message (optional)

        Returns:
            TIMEOUT for timeouts, TRANSPORT otherwise (connect_failed set for
            refused connections and DNS failures)
        """
        target = f": {url}" if url else ""

        # ServerTimeoutError is also a ClientConnectionError; check timeouts first
        if isinstance(error, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
            return timeout_error(f"Request timed out{target}", cause=error)

        if isinstance(error, aiohttp.ClientResponseError):
            return transport_error(
                f"HTTP {error.status}{target}: {error.message}",
                status=error.status,
                cause=error,
            )

        if isinstance(error, aiohttp.ClientConnectionError):
            return transport_error(
                f"Connection error{target}: {error}",
                connect_failed=True,
                cause=error,
            )

        return transport_error(f"Transport error{target}: {error}", cause=error)


__all__ = [
    "ApiErrorEntry",
    "ErrorEnvelope",
    "ErrorClassifier",
    "parse_error_envelope",
]
