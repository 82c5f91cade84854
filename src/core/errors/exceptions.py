"""
Classified exception for the API client.

Provides a single typed exception carrying an ErrorKind tag so callers can
branch on the failure category and make retry decisions without string
matching.
"""

# Import ErrorKind from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorKind

_KIND_LABELS = {
    ErrorKind.TRANSPORT: "HTTP error",
    ErrorKind.AUTHENTICATION: "Authentication error",
    ErrorKind.API_ERROR: "API error",
    ErrorKind.SERIALIZATION: "Serialization error",
    ErrorKind.INVALID_REQUEST: "Invalid request",
    ErrorKind.CONFIG: "Configuration error",
    ErrorKind.TIMEOUT: "Request timeout",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded",
}


class ClassifiedError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        kind: Error tag from the closed ErrorKind set
        message: Human-readable error description
        status: HTTP status when known (TRANSPORT, API_ERROR)
        connect_failed: True when the transport could not connect (refused, DNS)
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: int | None = None,
        connect_failed: bool = False,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.kind = kind
        self.message = message
        self.status = status
        self.connect_failed = connect_failed
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return is_retryable(self)

    @property
    def status_code(self) -> int | None:
        return status_code(self)

    def __str__(self) -> str:
        label = _KIND_LABELS[self.kind]
        if self.kind == ErrorKind.API_ERROR:
            return f"{label}: {self.status} - {self.message}"
        return f"{label}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r}, "
            f"status={self.status!r})"
        )


def is_retryable(error: ClassifiedError) -> bool:
    """
    Check if a classified error may succeed on retry.

    Retryable:
    - Transport failures that could not connect, or carry a 5xx status
    - Timeouts
    - Rate limiting

    Not retryable (request or configuration defects):
    - API errors (including 4xx), authentication, serialization,
      invalid request, config
    """
    match error.kind:
        case ErrorKind.TRANSPORT:
            return error.connect_failed or (
                error.status is not None and 500 <= error.status < 600
            )
        case ErrorKind.TIMEOUT | ErrorKind.RATE_LIMIT:
            return True
        case (
            ErrorKind.API_ERROR
            | ErrorKind.AUTHENTICATION
            | ErrorKind.SERIALIZATION
            | ErrorKind.INVALID_REQUEST
            | ErrorKind.CONFIG
        ):
            return False


def status_code(error: ClassifiedError) -> int | None:
    """Get the HTTP status code if the error kind carries one."""
    match error.kind:
        case ErrorKind.TRANSPORT | ErrorKind.API_ERROR:
            return error.status
        case _:
            return None


# =============================================================================
# Factory helpers
# =============================================================================


def authentication_error(message: str, cause: Exception | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.AUTHENTICATION, message, cause=cause)


def config_error(message: str, cause: Exception | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.CONFIG, message, cause=cause)


def invalid_request(message: str, cause: Exception | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.INVALID_REQUEST, message, cause=cause)


def api_error(status: int, message: str, context: dict | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.API_ERROR, message, status=status, context=context)


def serialization_error(message: str, cause: Exception | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.SERIALIZATION, message, cause=cause)


def transport_error(
    message: str,
    status: int | None = None,
    connect_failed: bool = False,
    cause: Exception | None = None,
) -> ClassifiedError:
    return ClassifiedError(
        ErrorKind.TRANSPORT,
        message,
        status=status,
        connect_failed=connect_failed,
        cause=cause,
    )


def timeout_error(message: str, cause: Exception | None = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.TIMEOUT, message, cause=cause)


def rate_limit_error(message: str) -> ClassifiedError:
    return ClassifiedError(ErrorKind.RATE_LIMIT, message)


__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "is_retryable",
    "status_code",
    "authentication_error",
    "config_error",
    "invalid_request",
    "api_error",
    "serialization_error",
    "transport_error",
    "timeout_error",
    "rate_limit_error",
]
