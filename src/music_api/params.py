"""Media types and search query parameter building."""

from dataclasses import dataclass, field
from enum import Enum

QueryParams = list[tuple[str, str]]


class MediaType(Enum):
    """Resource types accepted by the catalog search "types" parameter."""

    SONGS = "songs"
    ALBUMS = "albums"
    ARTISTS = "artists"
    PLAYLISTS = "playlists"
    MUSIC_VIDEOS = "music-videos"
    STATIONS = "stations"
    APPLE_CURATORS = "apple-curators"
    CURATORS = "curators"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def all(cls) -> list["MediaType"]:
        return list(cls)


def media_types_to_string(types: list[MediaType]) -> str:
    """Join media types for a query parameter: "songs,albums"."""
    return ",".join(media_type.value for media_type in types)


@dataclass
class SearchOptions:
    """Optional paging and type filters for catalog search."""

    limit: int | None = None
    offset: int | None = None
    types: list[MediaType] = field(default_factory=list)

    def with_limit(self, limit: int) -> "SearchOptions":
        self.limit = limit
        return self

    def with_offset(self, offset: int) -> "SearchOptions":
        self.offset = offset
        return self

    def with_types(self, types: list[MediaType]) -> "SearchOptions":
        self.types = list(types)
        return self


class SearchParamsBuilder:
    """
    Fluent builder for search query parameters.

    Parameters are emitted in a fixed order: term, limit, offset, types,
    storefront. Unset values are omitted.

    Usage:
        params = (
            SearchParamsBuilder()
            .term("daft punk")
            .types([MediaType.ALBUMS, MediaType.SONGS])
            .limit(10)
            .build()
        )
    """

    def __init__(self):
        self._term: str | None = None
        self._limit: int | None = None
        self._offset: int | None = None
        self._types: list[MediaType] = []
        self._storefront: str | None = None

    def term(self, term: str) -> "SearchParamsBuilder":
        self._term = term
        return self

    def limit(self, limit: int) -> "SearchParamsBuilder":
        self._limit = limit
        return self

    def offset(self, offset: int) -> "SearchParamsBuilder":
        self._offset = offset
        return self

    def add_type(self, media_type: MediaType) -> "SearchParamsBuilder":
        self._types.append(media_type)
        return self

    def types(self, types: list[MediaType]) -> "SearchParamsBuilder":
        self._types = list(types)
        return self

    def storefront(self, storefront: str) -> "SearchParamsBuilder":
        self._storefront = storefront
        return self

    def options(self, options: SearchOptions) -> "SearchParamsBuilder":
        """Apply limit/offset/types from SearchOptions where set."""
        if options.limit is not None:
            self._limit = options.limit
        if options.offset is not None:
            self._offset = options.offset
        if options.types:
            self._types = list(options.types)
        return self

    def build(self) -> QueryParams:
        params: QueryParams = []
        if self._term is not None:
            params.append(("term", self._term))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        if self._types:
            params.append(("types", media_types_to_string(self._types)))
        if self._storefront is not None:
            params.append(("storefront", self._storefront))
        return params


__all__ = [
    "MediaType",
    "QueryParams",
    "SearchOptions",
    "SearchParamsBuilder",
    "media_types_to_string",
]
