"""
Pagination cursor for "next" links in list responses.

A response carries an optional "next" field holding a relative (or absolute)
URL with its own query string. The cursor stores it, splits it with a real
URL parser, and turns it into the RequestSpec for the next page. Once a page
arrives without a "next" link the cursor is terminal and ignores further
advances until reset().
"""

import logging
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlsplit

from music_api.pipeline import RequestSpec

logger = logging.getLogger(__name__)


class PaginationCursor:
    """Tracks the next-page URL of a paginated listing."""

    def __init__(self, next_url: str | None = None):
        self._next_url = next_url or None
        self._terminal = False

    def __repr__(self) -> str:
        return f"PaginationCursor(next_url={self._next_url!r}, terminal={self._terminal})"

    @property
    def next_url(self) -> str | None:
        return self._next_url

    @property
    def is_terminal(self) -> bool:
        """True once a page without a next link has been seen."""
        return self._terminal

    def has_next(self) -> bool:
        return self._next_url is not None

    def advance(self, next_url: str | None) -> None:
        """
        Record the "next" field of the latest response.

        None (or empty) marks the terminal page. A terminal cursor stays
        unchanged until reset().
        """
        if self._terminal:
            logger.debug("Ignoring advance on terminal pagination cursor")
            return

        self._next_url = next_url or None
        if self._next_url is None:
            self._terminal = True

    def advance_from_response(self, response: Mapping[str, Any]) -> None:
        self.advance(response.get("next"))

    def reset(self, next_url: str | None = None) -> None:
        self._next_url = next_url or None
        self._terminal = False

    def extract_path_and_query(self) -> tuple[str, str] | None:
        """
        Split the stored URL into (path, query).

        Returns:
            None if there is no next URL or it has no query component
        """
        if self._next_url is None:
            return None

        parts = urlsplit(self._next_url)
        if not parts.query:
            return None
        return parts.path, parts.query

    def to_request_spec(self, method: str = "GET") -> RequestSpec | None:
        """Build the request for the next page, or None when there is none."""
        if self._next_url is None:
            return None

        parts = urlsplit(self._next_url)
        params = parse_qsl(parts.query, keep_blank_values=True)
        return RequestSpec(parts.path, method=method, params=params)


def has_more(meta: Mapping[str, Any] | None, current_count: int) -> bool:
    """
    Check a response "meta" block for more results.

    True only when meta carries a total greater than current_count.
    """
    if not meta:
        return False
    total = meta.get("total")
    if total is None:
        return False
    return current_count < int(total)


__all__ = [
    "PaginationCursor",
    "has_more",
]
