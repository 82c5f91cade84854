"""
Core library: reusable, service-agnostic components for API clients.

Modules:
    auth        - ES256 developer token signing, lazy renewal, credential sets
    errors      - Error taxonomy and HTTP response classification
    resilience  - Per-second rate limiting, caller-side retry with backoff
    logging     - Structured JSON/console logging with request context
"""

from .types import Clock, ErrorKind

__version__ = "0.1.0"

__all__ = [
    "Clock",
    "ErrorKind",
]
