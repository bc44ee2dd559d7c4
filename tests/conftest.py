"""Test configuration and fixtures"""

import itertools
import tempfile
from pathlib import Path

import pytest

from monthly_playlists.auth.credentials import Credential, CredentialStore
from monthly_playlists.core.config import (
    Config,
    LoggingConfig,
    SpotifyConfig,
    StorageConfig,
    SyncConfig,
)
from monthly_playlists.spotify.models import (
    Playlist,
    PlaylistSummary,
    SavedTrackEntry,
    UserProfile,
)


class FakeLibraryClient:
    """
    In-memory stand-in for RemoteLibraryClient.

    Playlists live in ``self.playlists`` (id -> [name, [uris]]) and every
    write is recorded so tests can assert on the calls the sync issued.
    """

    def __init__(self, saved=None, playlists=None, user_id="user-1"):
        self.user = UserProfile(id=user_id, display_name="Test User")
        self.saved = list(saved or [])
        self.playlists = {}
        self._ids = itertools.count(1)
        for name, uris in (playlists or {}).items():
            self.playlists[f"existing-{next(self._ids)}"] = [name, list(uris)]

        self.create_calls = []
        self.append_calls = []
        self.get_calls = []

    def current_user(self):
        return self.user

    def list_saved_tracks(self):
        return list(self.saved)

    def list_playlists(self):
        return [PlaylistSummary(id=pid, name=name) for pid, (name, _) in self.playlists.items()]

    def get_playlist(self, playlist_id):
        self.get_calls.append(playlist_id)
        name, uris = self.playlists[playlist_id]
        return Playlist(id=playlist_id, name=name, track_uris=frozenset(uris))

    def create_playlist(self, owner_id, name, public=True, collaborative=False, description=""):
        self.create_calls.append({
            "owner_id": owner_id,
            "name": name,
            "public": public,
            "collaborative": collaborative,
            "description": description,
        })
        playlist_id = f"created-{next(self._ids)}"
        self.playlists[playlist_id] = [name, []]
        return PlaylistSummary(id=playlist_id, name=name)

    def append_tracks(self, playlist_id, uris):
        uris = list(uris)
        if not uris:
            return
        self.append_calls.append((playlist_id, uris))
        self.playlists[playlist_id][1].extend(uris)

    def uris_in(self, name):
        """URIs of the (first) playlist with the given name."""
        for playlist_name, uris in self.playlists.values():
            if playlist_name == name:
                return uris
        raise KeyError(name)


def saved_item(added_at, uri):
    """Raw saved-track item as returned by /me/tracks"""
    return {"added_at": added_at, "track": {"uri": uri, "name": uri}}


def saved_entry(added_at, uri):
    return SavedTrackEntry.from_spotify_api(saved_item(added_at, uri))


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def credential():
    """Credential expiring at t=10_000"""
    return Credential(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=10_000,
        scope="user-library-read"
    )


@pytest.fixture
def credential_store(temp_dir):
    return CredentialStore(temp_dir / "nested" / "token.json")


@pytest.fixture
def config(temp_dir):
    """Complete configuration pointing at a temporary credential file"""
    return Config(
        spotify=SpotifyConfig(
            client_id="client-id",
            client_secret="client-secret",
            redirect_uri="http://localhost:8888/callback"
        ),
        storage=StorageConfig(credential_path=temp_dir / "token.json"),
        logging=LoggingConfig(),
        sync=SyncConfig()
    )


@pytest.fixture
def fake_library():
    """Factory building a FakeLibraryClient"""
    return FakeLibraryClient
