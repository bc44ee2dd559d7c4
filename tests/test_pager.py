"""Test exhaustive pagination"""

from unittest.mock import Mock

import pytest
import requests
import spotipy

from monthly_playlists.core.exceptions import DecodeError, RemoteError
from monthly_playlists.spotify.pager import PagedFetcher


def page(items, next_url=None):
    return {"items": items, "next": next_url, "limit": 2}


class TestPagedFetcher:
    """Test PagedFetcher"""

    def test_single_page(self):
        transport = Mock()
        fetcher = PagedFetcher(transport)

        assert fetcher.fetch_all("list", lambda: page([1, 2])) == [1, 2]
        transport.next.assert_not_called()

    def test_concatenates_pages_in_order(self):
        first = page([1, 2], "https://api.spotify.com/v1/me/tracks?offset=2")
        second = page([3, 4], "https://api.spotify.com/v1/me/tracks?offset=4")
        third = page([5])
        transport = Mock()
        transport.next.side_effect = [second, third]

        items = PagedFetcher(transport).fetch_all("list", lambda: first)

        assert items == [1, 2, 3, 4, 5]
        assert [call.args[0] for call in transport.next.call_args_list] == [first, second]

    def test_empty_collection(self):
        assert PagedFetcher(Mock()).fetch_all("list", lambda: page([])) == []

    def test_missing_next_is_decode_error(self):
        """An absent next link is not the same as a null one"""
        with pytest.raises(DecodeError, match="next"):
            PagedFetcher(Mock()).fetch_all("list", lambda: {"items": [1]})

    def test_missing_items_is_decode_error(self):
        with pytest.raises(DecodeError, match="items"):
            PagedFetcher(Mock()).fetch_all("list", lambda: {"next": None})

    def test_non_object_page_is_decode_error(self):
        with pytest.raises(DecodeError):
            PagedFetcher(Mock()).fetch_all("list", lambda: None)

    def test_malformed_later_page_fails_whole_fetch(self):
        transport = Mock()
        transport.next.return_value = {"items": "oops", "next": None}

        with pytest.raises(DecodeError):
            PagedFetcher(transport).fetch_all("list", lambda: page([1], "https://next"))

    def test_repeated_next_link_is_decode_error(self):
        transport = Mock()
        transport.next.return_value = page([2], "https://same")

        with pytest.raises(DecodeError, match="already visited"):
            PagedFetcher(transport).fetch_all("list", lambda: page([1], "https://same"))

    def test_spotify_error_maps_to_remote_error(self):
        transport = Mock()
        transport.next.side_effect = spotipy.SpotifyException(503, -1, "Service unavailable")

        with pytest.raises(RemoteError) as exc_info:
            PagedFetcher(transport).fetch_all("list", lambda: page([1], "https://next"))
        assert exc_info.value.status == 503

    def test_connection_error_maps_to_status_zero(self):
        def first_page():
            raise requests.ConnectionError("connection refused")

        with pytest.raises(RemoteError) as exc_info:
            PagedFetcher(Mock()).fetch_all("list", first_page)
        assert exc_info.value.status == 0
