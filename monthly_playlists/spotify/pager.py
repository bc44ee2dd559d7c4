"""
Exhaustive pager over Spotify's paging objects.

Every list endpoint returns ``{"items": [...], "next": <url or null>, ...}``.
PagedFetcher keeps following ``next`` until it is null and returns the
concatenation of all pages in order. A page without ``items`` or ``next``
is a response shape we do not understand and raises DecodeError; it is
never taken as the end of the list.
"""

from typing import Any, Callable

from monthly_playlists.core.exceptions import DecodeError
from monthly_playlists.core.logger import get_logger
from monthly_playlists.spotify.models import require_field
from monthly_playlists.spotify.transport import Transport, call_api

logger = get_logger(__name__)


def decode_page(page: Any, context: str) -> tuple[list[Any], str | None]:
    """
    Split a paging object into its items and the next page URL.

    Raises:
        DecodeError: If ``items`` or ``next`` is absent or mistyped.
    """
    items = require_field(page, "items", list, context)
    next_url = require_field(page, "next", (str, type(None)), context)
    return items, next_url


class PagedFetcher:
    """
    Follows ``next`` links through the authorized transport.

    Attributes:
        transport: spotipy client used to fetch the follow-up pages.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def fetch_all(self, operation: str, first_page: Callable[[], Any]) -> list[Any]:
        """
        Fetch the first page with ``first_page()`` and then every following page.

        Args:
            operation: Description used in log and error messages.
            first_page: Zero-argument callable returning the first paging object.

        Raises:
            RemoteError: On the first failed request.
            DecodeError: On the first malformed page.
        """
        page = call_api(operation, first_page)
        return self.collect(operation, page)

    def collect(self, operation: str, page: Any) -> list[Any]:
        """
        Accumulate the items of an already fetched page and all pages after it.
        """
        items: list[Any] = []
        seen_urls: set[str] = set()

        while True:
            page_items, next_url = decode_page(page, operation)
            items.extend(page_items)
            logger.debug(f"{operation}: {len(page_items)} items ({len(items)} so far)")

            if next_url is None:
                return items

            # A repeated link would loop forever
            if next_url in seen_urls:
                raise DecodeError(
                    f"{operation}: pagination returned an already visited page",
                    details={"context": operation, "next": next_url}
                )
            seen_urls.add(next_url)

            page = call_api(operation, self.transport.next, page)
