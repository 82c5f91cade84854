"""
Core types and protocols used across modules.

This module provides the error taxonomy enum and the clock protocol
shared by the auth and errors packages.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol


class ErrorKind(Enum):
    """
    Closed set of failure tags for API client errors.

    Every failure raised by the client carries exactly one of these tags.
    Retry and status-code decisions are made by matching on the tag.

    Kinds:
        TRANSPORT: Network/IO failure before a usable response was received
        AUTHENTICATION: Credential missing, malformed key, or renewal failure
        API_ERROR: Non-2xx response with a known status
        SERIALIZATION: Body could not be decoded into the expected shape
        INVALID_REQUEST: Caller input failed local validation (no I/O done)
        CONFIG: Invalid client configuration (no I/O done)
        TIMEOUT: Request exceeded the transport timeout
        RATE_LIMIT: Call rate exceeded
    """

    TRANSPORT = "transport"
    AUTHENTICATION = "authentication"
    API_ERROR = "api_error"
    SERIALIZATION = "serialization"
    INVALID_REQUEST = "invalid_request"
    CONFIG = "config"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


class Clock(Protocol):
    """Callable returning the current UTC time."""

    def __call__(self) -> datetime: ...


__all__ = [
    "ErrorKind",
    "Clock",
]
