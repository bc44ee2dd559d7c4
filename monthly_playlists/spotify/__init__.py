"""
Spotify Web API access.

    - models: Strictly decoded response objects
    - pager: Exhaustive pagination over list endpoints
    - client: RemoteLibraryClient, the typed library operations
"""

from monthly_playlists.spotify.client import DEFAULT_PRUNE_PATTERN, RemoteLibraryClient
from monthly_playlists.spotify.models import (
    Playlist,
    PlaylistSummary,
    SavedTrackEntry,
    UserProfile,
)
from monthly_playlists.spotify.pager import PagedFetcher

__all__ = [
    "RemoteLibraryClient",
    "DEFAULT_PRUNE_PATTERN",
    "PagedFetcher",
    "Playlist",
    "PlaylistSummary",
    "SavedTrackEntry",
    "UserProfile",
]
