"""Apple Music API client with lazy token renewal, throttling and retries."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from core.errors.exceptions import api_error, authentication_error, invalid_request
from core.logging.context_managers import LogContext, generate_request_id
from core.resilience.rate_limiter import RateLimiter, RateLimiterConfig
from core.resilience.retry import RetryConfig, with_retry_async
from music_api.config import ClientConfig
from music_api.pagination import PaginationCursor
from music_api.params import MediaType, SearchOptions, SearchParamsBuilder
from music_api.pipeline import RequestPipeline, RequestSpec
from music_api.transport import AiohttpTransport, Transport
from music_api.validation import validate_resource_id, validate_resource_ids

logger = logging.getLogger(__name__)

CATALOG_PATH = "v1/catalog/{storefront}"
LIBRARY_PATH = "v1/me/library"
STOREFRONTS_PATH = "v1/storefronts"

# Paths under v1/me act on the user's account
USER_SCOPED_PREFIX = "v1/me"


def _is_user_scoped(path: str) -> bool:
    path = path.lstrip("/").split("?", 1)[0]
    return path == USER_SCOPED_PREFIX or path.startswith(USER_SCOPED_PREFIX + "/")


def _next_link(page: Any) -> str | None:
    if isinstance(page, dict):
        return page.get("next")
    return getattr(page, "next", None)


class MusicApiClient:
    """
    Async client for the Apple Music API.

    Every call goes through the same path: user-token guard (library
    operations only), local validation, rate limiter, then the request
    pipeline wrapped in caller-side retries. Only errors whose
    is_retryable is True are retried.

    Usage:
        config = load_config(Path("config/config.yaml"))
        async with MusicApiClient(config) as client:
            album = await client.get_album("310730204")
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
        rate_limiter: RateLimiter | None = None,
        sleep: Callable = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration (validated here)
            transport: HTTP transport (default: AiohttpTransport from config)
            rate_limiter: Throttle (default: built from
                config.rate_limit_per_second, or none)
            sleep: Coroutine used between retry attempts

        Raises:
            ClassifiedError: CONFIG or AUTHENTICATION for unusable settings
        """
        config.validate()
        self.config = config
        self.credentials = config.build_credentials()

        self._owns_transport = transport is None
        self.transport = transport or AiohttpTransport(
            timeout_seconds=config.timeout_seconds,
            user_agent=config.user_agent,
            max_concurrent=config.max_concurrent,
        )
        self.pipeline = RequestPipeline(
            config.base_url,
            self.credentials,
            self.transport,
            storefront=config.storefront,
        )

        if rate_limiter is None and config.rate_limit_per_second:
            rate_limiter = RateLimiter(
                RateLimiterConfig(
                    limit_per_second=config.rate_limit_per_second,
                    name="music_api",
                )
            )
        self.rate_limiter = rate_limiter

        self.retry_config = RetryConfig.from_client_settings(
            config.max_retries, config.retry_delay_seconds
        )
        self._sleep = sleep

        logger.info(
            "MusicApiClient initialized",
            extra={
                "api_url": config.base_url,
                "auth_mode": self.credentials.mode,
                "max_attempts": self.retry_config.max_attempts,
                "limit_per_second": config.rate_limit_per_second,
            },
        )

    async def __aenter__(self) -> "MusicApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    @property
    def storefront(self) -> str:
        return self.config.storefront

    @property
    def base_url(self) -> str:
        return self.config.base_url

    # =========================================================================
    # User token
    # =========================================================================

    def set_user_token(self, user_token: str | None) -> None:
        self.credentials.set_secondary(user_token)

    @property
    def user_token(self) -> str | None:
        return self.credentials.secondary

    def has_user_token(self) -> bool:
        return self.credentials.has_secondary()

    def require_user_token(self, operation: str) -> None:
        """
        Fail before any network call when no user token is set.

        Raises:
            ClassifiedError: AUTHENTICATION
        """
        if not self.credentials.has_secondary():
            raise authentication_error(
                f"{operation} requires a user credential. Call set_user_token() first."
            )

    # =========================================================================
    # Request plumbing
    # =========================================================================

    async def _call(self, operation: str, spec: RequestSpec, model=None) -> Any:
        if _is_user_scoped(spec.path):
            self.require_user_token(operation)

        with LogContext(
            operation=operation,
            request_id=generate_request_id(),
            storefront=self.config.storefront,
        ):

            async def attempt() -> Any:
                if self.rate_limiter is not None:
                    await self.rate_limiter.wait_if_needed()
                return await self.pipeline.get_json(spec, model)

            attempt.__name__ = operation
            return await with_retry_async(self.retry_config, sleep=self._sleep)(attempt)()

    async def _get_single(self, operation: str, resource: str, kind: str, resource_id: str) -> dict:
        validate_resource_id(resource_id)
        response = await self._call(
            operation, RequestSpec(f"{CATALOG_PATH}/{resource}/{resource_id}")
        )
        return self._first_or_not_found(response, kind)

    async def _get_many(self, operation: str, resource: str, resource_ids: list[str]) -> list[dict]:
        if not resource_ids:
            return []
        validate_resource_ids(resource_ids)
        # Validated IDs contain no reserved characters; commas stay literal
        path = f"{CATALOG_PATH}/{resource}?ids={','.join(resource_ids)}"
        response = await self._call(operation, RequestSpec(path))
        return (response or {}).get("data", [])

    @staticmethod
    def _first_or_not_found(response: Any, kind: str) -> dict:
        data = (response or {}).get("data") or []
        if not data:
            raise api_error(404, f"{kind} not found")
        return data[0]

    # =========================================================================
    # Catalog
    # =========================================================================

    async def search(self, term: str, types: list[MediaType]) -> dict:
        return await self.search_with_options(term, types, SearchOptions())

    async def search_with_options(
        self,
        term: str,
        types: list[MediaType],
        options: SearchOptions,
    ) -> dict:
        """
        Search the catalog.

        Args:
            term: Search term
            types: Media types to search (falls back to options.types)
            options: Limit, offset and type filters

        Returns:
            Decoded search response ({"results": {...}, "meta": {...}})
        """
        if not term or not term.strip():
            raise invalid_request("Search term cannot be empty")

        params = (
            SearchParamsBuilder()
            .term(term)
            .options(options)
            .types(types or options.types)
            .build()
        )
        return await self._call(
            "search", RequestSpec(f"{CATALOG_PATH}/search", params=params)
        )

    async def get_album(self, album_id: str) -> dict:
        return await self._get_single("get_album", "albums", "Album", album_id)

    async def get_artist(self, artist_id: str) -> dict:
        return await self._get_single("get_artist", "artists", "Artist", artist_id)

    async def get_song(self, song_id: str) -> dict:
        return await self._get_single("get_song", "songs", "Song", song_id)

    async def get_playlist(self, playlist_id: str) -> dict:
        return await self._get_single("get_playlist", "playlists", "Playlist", playlist_id)

    async def get_albums(self, album_ids: list[str]) -> list[dict]:
        return await self._get_many("get_albums", "albums", album_ids)

    async def get_artists(self, artist_ids: list[str]) -> list[dict]:
        return await self._get_many("get_artists", "artists", artist_ids)

    async def get_songs(self, song_ids: list[str]) -> list[dict]:
        return await self._get_many("get_songs", "songs", song_ids)

    async def get_search_hints(self, term: str) -> dict:
        return await self._call(
            "get_search_hints",
            RequestSpec(f"{CATALOG_PATH}/search/hints", params=[("term", term)]),
        )

    async def get_search_suggestions(self, term: str) -> dict:
        return await self._call(
            "get_search_suggestions",
            RequestSpec(f"{CATALOG_PATH}/search/suggestions", params=[("term", term)]),
        )

    async def get_storefront(self) -> dict:
        response = await self._call(
            "get_storefront", RequestSpec(f"{STOREFRONTS_PATH}/{{storefront}}")
        )
        return self._first_or_not_found(response, "Storefront")

    async def get_storefronts(self) -> list[dict]:
        response = await self._call("get_storefronts", RequestSpec(STOREFRONTS_PATH))
        return (response or {}).get("data", [])

    # =========================================================================
    # Library (user token required)
    # =========================================================================

    async def _get_library(
        self, operation: str, resource: str, limit: int | None, offset: int | None
    ) -> dict:
        self.require_user_token(operation)
        params = []
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset is not None:
            params.append(("offset", str(offset)))
        return await self._call(
            operation, RequestSpec(f"{LIBRARY_PATH}/{resource}", params=params)
        )

    async def get_library_albums(self, limit: int | None = None, offset: int | None = None) -> dict:
        return await self._get_library("get_library_albums", "albums", limit, offset)

    async def get_library_artists(self, limit: int | None = None, offset: int | None = None) -> dict:
        return await self._get_library("get_library_artists", "artists", limit, offset)

    async def get_library_songs(self, limit: int | None = None, offset: int | None = None) -> dict:
        return await self._get_library("get_library_songs", "songs", limit, offset)

    async def get_library_playlists(
        self, limit: int | None = None, offset: int | None = None
    ) -> dict:
        return await self._get_library("get_library_playlists", "playlists", limit, offset)

    async def _add_to_library(self, operation: str, media_type: str, resource_ids: list[str]) -> Any:
        self.require_user_token(operation)
        if not resource_ids:
            raise invalid_request("At least one resource ID is required")
        validate_resource_ids(resource_ids)

        spec = RequestSpec(
            LIBRARY_PATH,
            method="POST",
            body={"ids": list(resource_ids), "type": media_type},
        )
        return await self._call(operation, spec)

    async def add_songs_to_library(self, song_ids: list[str]) -> Any:
        return await self._add_to_library("add_songs_to_library", "songs", song_ids)

    async def add_albums_to_library(self, album_ids: list[str]) -> Any:
        return await self._add_to_library("add_albums_to_library", "albums", album_ids)

    async def add_playlists_to_library(self, playlist_ids: list[str]) -> Any:
        return await self._add_to_library("add_playlists_to_library", "playlists", playlist_ids)

    # =========================================================================
    # Pagination
    # =========================================================================

    async def get_next_page(self, cursor: PaginationCursor, model=None) -> Any:
        """
        Fetch the page the cursor points at and advance the cursor.

        Returns:
            Decoded page, or None when the cursor has no next page
        """
        spec = cursor.to_request_spec()
        if spec is None:
            return None

        page = await self._call("get_next_page", spec, model)
        cursor.advance(_next_link(page))
        return page

    async def iter_pages(
        self,
        spec: RequestSpec,
        model=None,
        max_pages: int | None = None,
    ) -> AsyncIterator[Any]:
        """
        Yield the first page for spec and every page after it.

        Args:
            spec: Request for the first page
            model: Optional pydantic model for each page
            max_pages: Stop after this many pages (default: no limit)
        """
        page = await self._call("iter_pages", spec, model)
        cursor = PaginationCursor()
        cursor.advance(_next_link(page))
        yield page

        page_count = 1
        while cursor.has_next():
            if max_pages is not None and page_count >= max_pages:
                logger.debug(
                    "Stopping pagination at page limit",
                    extra={"page_count": page_count, "limit": max_pages},
                )
                return
            yield await self.get_next_page(cursor, model)
            page_count += 1


__all__ = ["MusicApiClient"]
