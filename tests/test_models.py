"""Test strict decoding of Spotify responses"""

from datetime import timedelta

import pytest

from monthly_playlists.core.exceptions import DecodeError
from monthly_playlists.spotify.models import Playlist, SavedTrackEntry, UserProfile


class TestSavedTrackEntry:
    """Test SavedTrackEntry decoding"""

    def test_decodes_utc_timestamp(self):
        entry = SavedTrackEntry.from_spotify_api({
            "added_at": "2024-01-15T10:00:00Z",
            "track": {"uri": "spotify:track:abc", "name": "Song"},
        })

        assert entry.uri == "spotify:track:abc"
        assert (entry.added_at.year, entry.added_at.month, entry.added_at.day) == (2024, 1, 15)
        assert entry.added_at.utcoffset() == timedelta(0)

    def test_keeps_encoded_offset(self):
        entry = SavedTrackEntry.from_spotify_api({
            "added_at": "2024-01-31T23:30:00-05:00",
            "track": {"uri": "spotify:track:abc"},
        })

        assert entry.added_at.utcoffset() == timedelta(hours=-5)
        assert entry.added_at.day == 31

    @pytest.mark.parametrize("item, field", [
        ({"track": {"uri": "u"}}, "added_at"),
        ({"added_at": "2024-01-01T00:00:00Z"}, "track"),
        ({"added_at": "2024-01-01T00:00:00Z", "track": None}, "track"),
        ({"added_at": "2024-01-01T00:00:00Z", "track": {"name": "x"}}, "uri"),
        ({"added_at": 1704067200, "track": {"uri": "u"}}, "added_at"),
    ])
    def test_missing_or_mistyped_fields(self, item, field):
        with pytest.raises(DecodeError, match=field):
            SavedTrackEntry.from_spotify_api(item)

    def test_invalid_timestamp(self):
        with pytest.raises(DecodeError, match="invalid timestamp"):
            SavedTrackEntry.from_spotify_api({"added_at": "yesterday", "track": {"uri": "u"}})

    def test_timestamp_without_offset(self):
        with pytest.raises(DecodeError, match="no UTC offset"):
            SavedTrackEntry.from_spotify_api({"added_at": "2024-01-01T00:00:00", "track": {"uri": "u"}})


class TestPlaylist:
    """Test Playlist decoding"""

    def test_skips_removed_tracks(self):
        playlist = Playlist.from_spotify_api(
            {"id": "p1", "name": "May '24"},
            [{"track": {"uri": "a"}}, {"track": None}, {"track": {"uri": "b"}}]
        )

        assert playlist.track_uris == frozenset({"a", "b"})

    def test_item_without_track_field(self):
        with pytest.raises(DecodeError, match="track"):
            Playlist.from_spotify_api({"id": "p1", "name": "May '24"}, [{"added_at": "x"}])

    def test_missing_name(self):
        with pytest.raises(DecodeError, match="name"):
            Playlist.from_spotify_api({"id": "p1"}, [])


class TestUserProfile:
    """Test UserProfile decoding"""

    def test_display_name_optional(self):
        assert UserProfile.from_spotify_api({"id": "alice", "display_name": None}) == UserProfile("alice")

    def test_missing_id(self):
        with pytest.raises(DecodeError):
            UserProfile.from_spotify_api({"display_name": "Alice"})
