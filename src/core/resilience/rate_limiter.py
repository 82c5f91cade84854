"""
Per-second call throttle for API clients.

Cooperative self-throttle for a single client instance. Calls are counted in
a fixed one-second window; once the window holds limit_per_second calls, the
next caller sleeps until the window ends and then opens a fresh one. Calls
are delayed, never dropped, and nothing is coordinated across processes.

The window bookkeeping runs under an asyncio.Lock, so concurrent callers are
admitted one at a time and a sleeping caller holds back the ones behind it.

Usage:
    limiter = RateLimiter(limit_per_second=20)

    await limiter.wait_if_needed()
    result = await pipeline.execute(spec)

    async with limiter.acquire_context():
        result = await pipeline.execute(spec)

    @rate_limited(limiter)
    async def fetch_album():
        ...
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import wraps
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

WINDOW_SECONDS = 1.0


@dataclass
class RateLimiterConfig:
    """
    Rate limiter settings.

    Attributes:
        limit_per_second: Calls admitted per one-second window
        enabled: When False every call passes straight through
        name: Label used in log lines
    """

    limit_per_second: int = 20
    enabled: bool = True
    name: str = "rate_limiter"


class RateLimiter:
    """
    Fixed one-second window limiter.

    clock and sleep are injectable so tests can drive the window without
    real waiting.
    """

    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        limit_per_second: int | None = None,
        enabled: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            config: Full configuration (default: RateLimiterConfig())
            limit_per_second: Overrides config.limit_per_second
            enabled: Overrides config.enabled
            clock: Monotonic clock in seconds
            sleep: Coroutine used to suspend callers

        Raises:
            ValueError: if the limit is below 1
        """
        base = config or RateLimiterConfig()
        self.config = RateLimiterConfig(
            limit_per_second=base.limit_per_second if limit_per_second is None else limit_per_second,
            enabled=base.enabled if enabled is None else enabled,
            name=base.name,
        )
        if self.config.limit_per_second < 1:
            raise ValueError(
                f"limit_per_second must be >= 1, got {self.config.limit_per_second}"
            )

        self._limit = int(self.config.limit_per_second)
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._calls_in_window = 0
        self._window_start = clock()

        logger.info(
            "Rate limiter '%s' %s",
            self.config.name,
            f"allows {self._limit} calls/s" if self.config.enabled else "is disabled",
            extra={"rate_limiter": self.config.name, "limit_per_second": self._limit},
        )

    @property
    def limit_per_second(self) -> int:
        return self._limit

    def _open_window(self, now: float) -> None:
        self._calls_in_window = 0
        self._window_start = now

    async def wait_if_needed(self) -> None:
        """Admit one call, sleeping out the rest of the window when it is full."""
        if not self.config.enabled:
            return

        async with self._lock:
            now = self._clock()
            if now - self._window_start >= WINDOW_SECONDS:
                self._open_window(now)

            if self._calls_in_window >= self._limit:
                remaining = max(0.0, WINDOW_SECONDS - (now - self._window_start))
                logger.debug(
                    "Rate limit reached, waiting %.3fs",
                    remaining,
                    extra={
                        "rate_limiter": self.config.name,
                        "wait_seconds": remaining,
                        "calls_in_window": self._calls_in_window,
                    },
                )
                await self._sleep(remaining)
                self._open_window(self._clock())

            self._calls_in_window += 1

    @asynccontextmanager
    async def acquire_context(self):
        await self.wait_if_needed()
        yield

    def reset(self) -> None:
        """Discard the current window's count."""
        self._open_window(self._clock())

    def get_stats(self) -> dict:
        return {
            "name": self.config.name,
            "enabled": self.config.enabled,
            "limit_per_second": self._limit,
            "calls_in_window": self._calls_in_window,
            "window_start": self._window_start,
        }


def rate_limited(limiter: RateLimiter):
    """Decorator that passes every call to the wrapped coroutine through limiter."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            await limiter.wait_if_needed()
            return await func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "rate_limited",
    "WINDOW_SECONDS",
]
