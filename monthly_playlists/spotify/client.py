"""
Typed operations on the user's Spotify library.

RemoteLibraryClient wraps the authorized spotipy transport and returns the
models from spotify.models. Every list endpoint is read to the end through
PagedFetcher, and every failure surfaces as RemoteError or DecodeError.

Usage:
    client = RemoteLibraryClient(transport)

    user = client.current_user()
    for entry in client.list_saved_tracks():
        print(entry.added_at, entry.uri)
"""

import re
from typing import Iterator, Sequence

from monthly_playlists.core.exceptions import ConfigError
from monthly_playlists.core.logger import get_logger
from monthly_playlists.spotify.models import (
    Playlist,
    PlaylistSummary,
    SavedTrackEntry,
    UserProfile,
    require_field,
)
from monthly_playlists.spotify.pager import PagedFetcher
from monthly_playlists.spotify.transport import Transport, call_api

logger = get_logger(__name__)


# Spotify accepts at most 100 URIs per "add items to playlist" request
MAX_TRACKS_PER_REQUEST = 100

# Page sizes are the maximum each endpoint allows
SAVED_TRACKS_PAGE_SIZE = 50
PLAYLISTS_PAGE_SIZE = 50

# Playlist names produced by the sync, e.g. "January '24"
DEFAULT_PRUNE_PATTERN = r"^[A-Za-z]+\s'\d{2}$"

# Only the fields needed to build a Playlist
PLAYLIST_FIELDS = "id,name,tracks(items(track(uri)),next)"


def _chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class RemoteLibraryClient:
    """
    Reads and writes the current user's library through the Spotify Web API.

    Attributes:
        transport: Authorized spotipy client.
        pager: Follows ``next`` links for the list endpoints.
    """

    def __init__(self, transport: Transport, pager: PagedFetcher | None = None) -> None:
        self.transport = transport
        self.pager = pager or PagedFetcher(transport)

    # =========================================================================
    # Reads
    # =========================================================================

    def current_user(self) -> UserProfile:
        data = call_api("get current user", self.transport.current_user)
        return UserProfile.from_spotify_api(data)

    def list_saved_tracks(self) -> list[SavedTrackEntry]:
        """
        Return every saved track, in the order Spotify returns them (newest first).

        Raises:
            RemoteError: If any page request fails.
            DecodeError: If any entry lacks a valid added_at or track uri.
        """
        items = self.pager.fetch_all(
            "list saved tracks",
            lambda: self.transport.current_user_saved_tracks(limit=SAVED_TRACKS_PAGE_SIZE)
        )
        entries = [SavedTrackEntry.from_spotify_api(item) for item in items]
        logger.debug(f"Fetched {len(entries)} saved tracks")
        return entries

    def list_playlists(self) -> list[PlaylistSummary]:
        """
        Return every playlist in the user's library (owned and followed).

        Null entries, which Spotify returns for some unavailable playlists,
        are skipped.
        """
        items = self.pager.fetch_all(
            "list playlists",
            lambda: self.transport.current_user_playlists(limit=PLAYLISTS_PAGE_SIZE)
        )
        playlists = [PlaylistSummary.from_spotify_api(item) for item in items if item is not None]
        logger.debug(f"Fetched {len(playlists)} playlists")
        return playlists

    def get_playlist(self, playlist_id: str) -> Playlist:
        """
        Fetch a playlist with the URIs of all its items.

        The first page of items is embedded in the playlist object; the
        remaining pages are read by following ``tracks.next``.

        Raises:
            RemoteError: If a request fails (e.g. 404 for an unknown id).
            DecodeError: If the playlist or an item page is malformed.
        """
        operation = f"get playlist {playlist_id}"
        data = call_api(operation, self.transport.playlist, playlist_id, fields=PLAYLIST_FIELDS)

        first_page = require_field(data, "tracks", dict, "playlist")
        items = self.pager.collect(operation, first_page)
        return Playlist.from_spotify_api(data, items)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_playlist(
        self,
        owner_id: str,
        name: str,
        public: bool = True,
        collaborative: bool = False,
        description: str = ""
    ) -> PlaylistSummary:
        """
        Create a playlist for the given user.

        Returns:
            PlaylistSummary: The new playlist's id and name.
        """
        data = call_api(
            f"create playlist '{name}'",
            self.transport.user_playlist_create,
            owner_id,
            name,
            public=public,
            collaborative=collaborative,
            description=description
        )
        playlist = PlaylistSummary.from_spotify_api(data)
        logger.info(f"Created playlist {playlist.name}")
        return playlist

    def append_tracks(self, playlist_id: str, uris: Sequence[str]) -> None:
        """
        Append URIs to the end of a playlist, preserving their order.

        An empty sequence issues no request. Longer sequences are sent in
        batches of MAX_TRACKS_PER_REQUEST.
        """
        for chunk in _chunked(list(uris), MAX_TRACKS_PER_REQUEST):
            call_api(
                f"add tracks to playlist {playlist_id}",
                self.transport.playlist_add_items,
                playlist_id,
                list(chunk)
            )

    def delete_playlist(self, playlist_id: str) -> None:
        """
        Remove a playlist from the user's library.

        Spotify has no hard delete: unfollowing your own playlist is how
        the web client deletes it.
        """
        call_api(
            f"delete playlist {playlist_id}",
            self.transport.current_user_unfollow_playlist,
            playlist_id
        )

    def delete_playlists_matching(
        self,
        pattern: str = DEFAULT_PRUNE_PATTERN,
        dry_run: bool = False
    ) -> list[PlaylistSummary]:
        """
        Delete every playlist whose name matches a regular expression.

        Args:
            pattern: Regular expression searched in each playlist name.
                     The default matches month labels such as "March '24".
            dry_run: If True, only report what would be deleted.

        Returns:
            The matching playlists, in library order.

        Raises:
            ConfigError: If pattern is not a valid regular expression.
        """
        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise ConfigError(
                f"Invalid playlist name pattern {pattern!r}: {e}",
                details={"pattern": pattern}
            ) from e

        matches = [p for p in self.list_playlists() if regex.search(p.name)]
        for playlist in matches:
            if dry_run:
                logger.info(f"Would delete playlist {playlist.name}")
                continue
            self.delete_playlist(playlist.id)
            logger.info(f"Deleted playlist {playlist.name}")
        return matches
