"""
Error classification and exception taxonomy.

Provides:
- ErrorKind enum (closed set of failure tags)
- ClassifiedError typed exception
- ErrorClassifier for HTTP responses and transport exceptions
- is_retryable / status_code helpers
"""

from core.errors.classifiers import (
    ApiErrorEntry,
    ErrorClassifier,
    ErrorEnvelope,
    parse_error_envelope,
)
from core.errors.exceptions import (
    ClassifiedError,
    ErrorKind,
    api_error,
    authentication_error,
    config_error,
    invalid_request,
    is_retryable,
    rate_limit_error,
    serialization_error,
    status_code,
    timeout_error,
    transport_error,
)

__all__ = [
    # Enums
    "ErrorKind",
    # Exception
    "ClassifiedError",
    # Classification
    "ErrorClassifier",
    "ErrorEnvelope",
    "ApiErrorEntry",
    "parse_error_envelope",
    "is_retryable",
    "status_code",
    # Factories
    "authentication_error",
    "config_error",
    "invalid_request",
    "api_error",
    "serialization_error",
    "transport_error",
    "timeout_error",
    "rate_limit_error",
]
