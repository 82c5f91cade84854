"""
Resilience patterns module.

Components:
    - RateLimiter: Fixed one-second window call throttle
    - @rate_limited: Decorator for rate limiting
    - RetryConfig: Exponential backoff configuration
    - @with_retry_async: Caller-side retry driven by ClassifiedError.is_retryable
"""

from .rate_limiter import (
    WINDOW_SECONDS,
    RateLimiter,
    RateLimiterConfig,
    rate_limited,
)
from .retry import (
    DEFAULT_RETRY,
    NO_RETRY,
    RetryConfig,
    with_retry_async,
)

__all__ = [
    # Rate Limiter
    "RateLimiter",
    "RateLimiterConfig",
    "rate_limited",
    "WINDOW_SECONDS",
    # Retry
    "RetryConfig",
    "with_retry_async",
    "DEFAULT_RETRY",
    "NO_RETRY",
]
