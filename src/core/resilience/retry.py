"""
Caller-side retry driven by error classification.

RequestPipeline sends each request exactly once. Callers that want retries
wrap the call with with_retry_async, which re-runs it only while the raised
ClassifiedError reports is_retryable (timeouts, connection failures, 5xx
transport errors, rate limiting). Other ClassifiedErrors and any
unclassified exception propagate on the first failure.

Every attempt re-invokes the wrapped coroutine from the top, so credential
headers are rebuilt and a renewed developer token is picked up.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps

from core.errors.exceptions import ClassifiedError

logger = logging.getLogger(__name__)

OnRetry = Callable[[Exception, int, float], None]


@dataclass
class RetryConfig:
    """
    Backoff schedule for with_retry_async.

    Attributes:
        max_attempts: Total tries including the first (at least 1)
        base_delay: Delay before the first retry, before jitter
        max_delay: Upper bound on any single delay
        exponential_base: Growth factor between consecutive delays
    """

    max_attempts: int = 4
    base_delay: float = 0.1
    max_delay: float = 30.0
    exponential_base: float = 2.0

    def __post_init__(self):
        self.max_attempts = max(1, int(self.max_attempts))
        self.base_delay = float(self.base_delay)
        self.max_delay = float(self.max_delay)
        self.exponential_base = float(self.exponential_base)

    @classmethod
    def from_client_settings(cls, max_retries: int, retry_delay: float) -> "RetryConfig":
        """Build from client config, where max_retries excludes the first try."""
        return cls(max_attempts=max_retries + 1, base_delay=retry_delay)

    def get_delay(self, attempt: int) -> float:
        """
        Delay before retrying after the given 0-indexed attempt.

        Equal jitter: half of the exponential step is fixed and the other
        half random, so concurrent callers spread out.
        """
        step = self.base_delay * self.exponential_base**attempt
        return min(step / 2 + random.uniform(0, step / 2), self.max_delay)

    def should_retry(self, error: Exception, attempt: int) -> bool:
        if attempt + 1 >= self.max_attempts:
            return False
        return isinstance(error, ClassifiedError) and error.is_retryable


DEFAULT_RETRY = RetryConfig()
NO_RETRY = RetryConfig(max_attempts=1)


def _error_fields(error: Exception) -> dict:
    kind = error.kind.value if isinstance(error, ClassifiedError) else "unclassified"
    return {
        "error_type": type(error).__name__,
        "error_category": kind,
        "error_message": str(error)[:200],
    }


def _give_up(name: str, error: Exception, attempts: int) -> None:
    fields = {"operation": name, **_error_fields(error)}
    if isinstance(error, ClassifiedError) and error.is_retryable:
        logger.error(
            "Giving up on %s after %d attempts",
            name,
            attempts,
            extra={**fields, "total_attempts": attempts},
        )
    else:
        logger.warning("%s failed with a non-retryable error", name, extra=fields)


def _notify(on_retry: OnRetry, error: Exception, attempt: int, delay: float, name: str) -> None:
    # Callback errors are logged and never propagate
    try:
        on_retry(error, attempt, delay)
    except Exception as cb_err:
        logger.warning(
            "on_retry callback for %s raised",
            name,
            extra={"operation": name, "callback_error": str(cb_err)[:100]},
        )


def with_retry_async(
    config: RetryConfig | None = None,
    on_retry: OnRetry | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """
    Decorator that retries an async callable on retryable ClassifiedErrors.

    Args:
        config: Backoff schedule (default: DEFAULT_RETRY)
        on_retry: Called as on_retry(error, attempt, delay) before each sleep
        sleep: Coroutine used between attempts (injectable for tests)

    Usage:
        @with_retry_async(RetryConfig.from_client_settings(3, 0.1))
        async def fetch_album():
            return await pipeline.get_json(spec)
    """
    config = config or DEFAULT_RETRY

    def decorator(func: Callable[..., Awaitable]):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    name = getattr(func, "__name__", "call")
                    if not config.should_retry(e, attempt):
                        _give_up(name, e, attempt + 1)
                        raise

                    delay = config.get_delay(attempt)
                    logger.warning(
                        "Retrying %s in %.2fs",
                        name,
                        delay,
                        extra={
                            "operation": name,
                            "attempt": attempt + 1,
                            "max_attempts": config.max_attempts,
                            "delay_seconds": round(delay, 2),
                            **_error_fields(e),
                        },
                    )
                    if on_retry is not None:
                        _notify(on_retry, e, attempt, delay, name)
                    await sleep(delay)
                    attempt += 1
                    continue

                if attempt:
                    logger.info(
                        "%s succeeded on attempt %d",
                        getattr(func, "__name__", "call"),
                        attempt + 1,
                        extra={"attempt": attempt + 1, "total_attempts": config.max_attempts},
                    )
                return result

        return wrapper

    return decorator


__all__ = [
    "RetryConfig",
    "with_retry_async",
    "DEFAULT_RETRY",
    "NO_RETRY",
]
