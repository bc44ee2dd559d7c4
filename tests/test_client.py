"""Test RemoteLibraryClient against a mocked spotipy transport"""

import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from unittest.mock import Mock, call

import pytest
import spotipy

from monthly_playlists.auth.credentials import Credential
from monthly_playlists.auth.session import AuthSession
from monthly_playlists.core.exceptions import ConfigError, DecodeError, RemoteError
from monthly_playlists.spotify.client import RemoteLibraryClient
from monthly_playlists.spotify.models import PlaylistSummary


@pytest.fixture
def transport():
    return Mock()


@pytest.fixture
def client(transport):
    return RemoteLibraryClient(transport)


class TestReads:
    """Test the read operations"""

    def test_current_user(self, client, transport):
        transport.current_user.return_value = {"id": "alice", "display_name": "Alice"}

        user = client.current_user()

        assert user.id == "alice"
        assert user.display_name == "Alice"

    def test_list_saved_tracks(self, client, transport):
        transport.current_user_saved_tracks.return_value = {
            "items": [
                {"added_at": "2024-02-01T00:00:00Z", "track": {"uri": "spotify:track:b"}},
                {"added_at": "2024-01-15T10:00:00Z", "track": {"uri": "spotify:track:a"}},
            ],
            "next": None,
        }

        entries = client.list_saved_tracks()

        transport.current_user_saved_tracks.assert_called_once_with(limit=50)
        assert [e.uri for e in entries] == ["spotify:track:b", "spotify:track:a"]

    def test_saved_track_without_added_at_is_fatal(self, client, transport):
        transport.current_user_saved_tracks.return_value = {
            "items": [{"track": {"uri": "spotify:track:a"}}],
            "next": None,
        }

        with pytest.raises(DecodeError, match="added_at"):
            client.list_saved_tracks()

    def test_list_playlists_skips_null_entries(self, client, transport):
        transport.current_user_playlists.return_value = {
            "items": [{"id": "p1", "name": "January '24"}, None],
            "next": "https://api.spotify.com/v1/me/playlists?offset=50",
        }
        transport.next.return_value = {
            "items": [{"id": "p2", "name": "Chill"}],
            "next": None,
        }

        playlists = client.list_playlists()

        assert playlists == [
            PlaylistSummary(id="p1", name="January '24"),
            PlaylistSummary(id="p2", name="Chill"),
        ]

    def test_get_playlist_follows_track_pages(self, client, transport):
        first_page = {
            "items": [{"track": {"uri": "a"}}, {"track": None}],
            "next": "https://api.spotify.com/v1/playlists/p1/tracks?offset=100",
        }
        transport.playlist.return_value = {"id": "p1", "name": "March '24", "tracks": first_page}
        transport.next.return_value = {"items": [{"track": {"uri": "b"}}], "next": None}

        playlist = client.get_playlist("p1")

        assert playlist.id == "p1"
        assert playlist.track_uris == frozenset({"a", "b"})
        transport.next.assert_called_once_with(first_page)

    def test_get_playlist_not_found(self, client, transport):
        transport.playlist.side_effect = spotipy.SpotifyException(404, -1, "Not found")

        with pytest.raises(RemoteError) as exc_info:
            client.get_playlist("missing")
        assert exc_info.value.status == 404

    def test_get_playlist_without_tracks_is_decode_error(self, client, transport):
        transport.playlist.return_value = {"id": "p1", "name": "March '24"}

        with pytest.raises(DecodeError):
            client.get_playlist("p1")


class TestWrites:
    """Test the write operations"""

    def test_create_playlist(self, client, transport):
        transport.user_playlist_create.return_value = {"id": "new", "name": "April '24"}

        playlist = client.create_playlist("alice", "April '24")

        assert playlist == PlaylistSummary(id="new", name="April '24")
        transport.user_playlist_create.assert_called_once_with(
            "alice", "April '24", public=True, collaborative=False, description=""
        )

    def test_create_playlist_rejected(self, client, transport):
        transport.user_playlist_create.side_effect = spotipy.SpotifyException(403, -1, "Forbidden")

        with pytest.raises(RemoteError) as exc_info:
            client.create_playlist("alice", "April '24")
        assert exc_info.value.status == 403

    def test_append_empty_is_no_op(self, client, transport):
        client.append_tracks("p1", [])
        transport.playlist_add_items.assert_not_called()

    def test_append_splits_into_batches_of_100(self, client, transport):
        uris = [f"spotify:track:{i}" for i in range(250)]

        client.append_tracks("p1", uris)

        assert transport.playlist_add_items.call_args_list == [
            call("p1", uris[:100]),
            call("p1", uris[100:200]),
            call("p1", uris[200:]),
        ]

    def test_append_rate_limited(self, client, transport):
        transport.playlist_add_items.side_effect = spotipy.SpotifyException(429, -1, "Too many")

        with pytest.raises(RemoteError) as exc_info:
            client.append_tracks("p1", ["a"])
        assert exc_info.value.is_rate_limit

    def test_delete_playlist_unfollows(self, client, transport):
        client.delete_playlist("p1")
        transport.current_user_unfollow_playlist.assert_called_once_with("p1")


class TestDeletePlaylistsMatching:
    """Test deleting playlists by name pattern"""

    @pytest.fixture(autouse=True)
    def library(self, transport):
        transport.current_user_playlists.return_value = {
            "items": [
                {"id": "p1", "name": "January '24"},
                {"id": "p2", "name": "Chill Vibes"},
                {"id": "p3", "name": "December '06"},
                {"id": "p4", "name": "January 2024"},
            ],
            "next": None,
        }

    def test_default_pattern_matches_month_labels(self, client, transport):
        deleted = client.delete_playlists_matching()

        assert [p.id for p in deleted] == ["p1", "p3"]
        assert transport.current_user_unfollow_playlist.call_args_list == [call("p1"), call("p3")]

    def test_dry_run_deletes_nothing(self, client, transport):
        matches = client.delete_playlists_matching(dry_run=True)

        assert [p.id for p in matches] == ["p1", "p3"]
        transport.current_user_unfollow_playlist.assert_not_called()

    def test_custom_pattern(self, client, transport):
        deleted = client.delete_playlists_matching(r"^Chill")
        assert [p.id for p in deleted] == ["p2"]

    def test_invalid_pattern(self, client, transport):
        with pytest.raises(ConfigError):
            client.delete_playlists_matching("([")
        transport.current_user_playlists.assert_not_called()


class ErrorStatusHandler(BaseHTTPRequestHandler):
    """Answers every request with the status stored on the server"""

    def _reply(self):
        length = int(self.headers.get("Content-Length") or 0)
        self.rfile.read(length)

        status = self.server.status
        body = json.dumps({"error": {"status": status, "message": "Server error"}}).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = _reply
    do_POST = _reply

    def log_message(self, format, *args):
        pass


@pytest.fixture
def error_server():
    server = HTTPServer(("127.0.0.1", 0), ErrorStatusHandler)
    server.status = 500
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join()


class TestRealTransportErrors:
    """Test status mapping through the spotipy transport built by AuthSession"""

    @pytest.fixture
    def live_client(self, error_server, credential_store):
        session = AuthSession(
            "client-id", "client-secret", "http://localhost:8888/callback", "scope",
            credential_store, clock=lambda: 0.0
        )
        transport = session.authorized_transport(Credential("access", "refresh", 10_000), requests_timeout=5)
        host, port = error_server.server_address
        transport.prefix = f"http://{host}:{port}/v1/"
        return RemoteLibraryClient(transport)

    @pytest.mark.parametrize("status", [500, 502, 503, 404])
    def test_append_reports_server_status(self, live_client, error_server, status):
        error_server.status = status

        with pytest.raises(RemoteError) as exc_info:
            live_client.append_tracks("p1", ["spotify:track:a"])

        assert exc_info.value.status == status
        assert not exc_info.value.is_rate_limit

    def test_rate_limit_reported_as_429(self, live_client, error_server):
        error_server.status = 429

        with pytest.raises(RemoteError) as exc_info:
            live_client.get_playlist("p1")

        assert exc_info.value.status == 429
        assert exc_info.value.is_rate_limit
