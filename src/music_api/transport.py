"""
JSON HTTP transport using aiohttp.

Sends one request and hands back the raw status and body. Does not inspect
status codes or retry; aiohttp exceptions are converted to ClassifiedError
(TIMEOUT or TRANSPORT) so callers only ever see the error taxonomy.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from core.errors.classifiers import ErrorClassifier
from core.errors.exceptions import serialization_error

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_CONCURRENT = 20


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP response: status code and undecoded body."""

    status: int
    body: bytes


def _encode_body(body: Any) -> bytes:
    try:
        return json.dumps(body, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise serialization_error(f"Request body is not JSON-serializable: {e}", cause=e) from e


class Transport(Protocol):
    """Boundary consumed by RequestPipeline."""

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any | None = None,
    ) -> TransportResponse: ...


class AiohttpTransport:
    """
    aiohttp-backed transport with a lazily created, pooled session.

    The total request timeout is configured once and applied to every call.
    The session is created on first use and closed by close() or on leaving
    the async context.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str | None = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        session: aiohttp.ClientSession | None = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.max_concurrent = max_concurrent
        self._session = session
        self._owns_session = session is None
        self._closed = False

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("AiohttpTransport is closed, cannot create new session")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_concurrent,
                limit_per_host=self.max_concurrent,
            )
            default_headers = {"User-Agent": self.user_agent} if self.user_agent else None
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers=default_headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any | None = None,
    ) -> TransportResponse:
        """
        Send one request.

        Args:
            method: HTTP method
            url: Fully resolved URL including query string
            headers: Request headers (credentials included)
            body: JSON-serializable body, or None

        Returns:
            TransportResponse with status and raw body

        Raises:
            ClassifiedError: SERIALIZATION if body cannot be encoded, TIMEOUT
                or TRANSPORT on network failure
        """
        data = None
        if body is not None:
            data = _encode_body(body)
            headers = {"Content-Type": "application/json", **headers}

        session = await self._ensure_session()
        try:
            async with session.request(
                method,
                url,
                headers=headers,
                data=data,
            ) as response:
                payload = await response.read()
                return TransportResponse(status=response.status, body=payload)
        except (TimeoutError, aiohttp.ClientError) as e:
            error = ErrorClassifier.classify_transport_exception(e, url)
            logger.warning(
                "Transport failure: %s",
                error.message,
                extra={
                    "api_method": method,
                    "api_url": url,
                    "error_category": error.kind.value,
                    "error_type": type(e).__name__,
                },
            )
            raise error from e


__all__ = [
    "AiohttpTransport",
    "Transport",
    "TransportResponse",
    "DEFAULT_TIMEOUT_SECONDS",
]
