"""
Data models for the Spotify objects the sync engine reads.

Each model is a frozen dataclass with a ``from_spotify_api`` factory that
decodes the raw JSON strictly: a missing or mistyped field raises
DecodeError instead of being replaced by a default. Only the fields the
engine needs are decoded; everything else in the response is ignored.

Usage:
    from monthly_playlists.spotify.models import SavedTrackEntry

    entry = SavedTrackEntry.from_spotify_api(item)
    print(entry.added_at, entry.uri)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from monthly_playlists.core.exceptions import DecodeError


def require_field(data: Any, key: str, expected: type | tuple[type, ...], context: str) -> Any:
    """
    Return ``data[key]``, checking that it is present and of the expected type.

    Args:
        data: The decoded JSON object.
        key: Field name.
        expected: Accepted type(s). Include ``type(None)`` to allow null.
        context: Where the object came from, used in the error message.

    Raises:
        DecodeError: If data is not an object, the field is absent, or its
                     value has another type.
    """
    if not isinstance(data, dict):
        raise DecodeError(
            f"{context}: expected an object, got {type(data).__name__}",
            details={"context": context}
        )
    if key not in data:
        raise DecodeError(
            f"{context}: missing field '{key}'",
            details={"context": context, "field": key}
        )
    value = data[key]
    if not isinstance(value, expected):
        raise DecodeError(
            f"{context}: field '{key}' has unexpected type {type(value).__name__}",
            details={"context": context, "field": key}
        )
    return value


def parse_timestamp(value: str, context: str) -> datetime:
    """
    Parse an ISO 8601 / RFC 3339 timestamp, keeping its own UTC offset.

    Raises:
        DecodeError: If the string is not a timestamp or has no offset.
    """
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(
            f"{context}: invalid timestamp {value!r}",
            details={"context": context, "value": value}
        ) from e

    if parsed.tzinfo is None:
        raise DecodeError(
            f"{context}: timestamp {value!r} has no UTC offset",
            details={"context": context, "value": value}
        )
    return parsed


@dataclass(frozen=True)
class UserProfile:
    """
    The authenticated user.

    Attributes:
        id: Spotify user ID, needed to create playlists.
        display_name: Name shown in Spotify, if set.
    """
    id: str
    display_name: str | None = None

    @classmethod
    def from_spotify_api(cls, data: Any) -> "UserProfile":
        user_id = require_field(data, "id", str, "current user")
        display_name = data.get("display_name")
        if not isinstance(display_name, str):
            display_name = None
        return cls(id=user_id, display_name=display_name)


@dataclass(frozen=True)
class SavedTrackEntry:
    """
    One entry of the user's saved tracks (Liked Songs).

    Attributes:
        added_at: When the track was saved, in the offset Spotify reported.
        uri: Spotify URI of the track, e.g. "spotify:track:4cOdK2wGLETKBW3PvgPWqT".
    """
    added_at: datetime
    uri: str

    @classmethod
    def from_spotify_api(cls, item: Any) -> "SavedTrackEntry":
        """
        Decode a saved-track item: ``{"added_at": "...", "track": {"uri": "...", ...}}``.

        Raises:
            DecodeError: If added_at or track.uri is missing or invalid.
        """
        added_at = require_field(item, "added_at", str, "saved track")
        track = require_field(item, "track", dict, "saved track")
        uri = require_field(track, "uri", str, "saved track")
        return cls(added_at=parse_timestamp(added_at, "saved track"), uri=uri)


@dataclass(frozen=True)
class PlaylistSummary:
    """
    A playlist as listed by /me/playlists (no track contents).

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name. Not unique on Spotify.
    """
    id: str
    name: str

    @classmethod
    def from_spotify_api(cls, data: Any) -> "PlaylistSummary":
        return cls(
            id=require_field(data, "id", str, "playlist"),
            name=require_field(data, "name", str, "playlist")
        )


@dataclass(frozen=True)
class Playlist:
    """
    A playlist together with the URIs of the items it already contains.

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name.
        track_uris: URIs of every item in the playlist.
    """
    id: str
    name: str
    track_uris: frozenset[str]

    @classmethod
    def from_spotify_api(cls, data: Any, items: Iterable[Any]) -> "Playlist":
        """
        Build a playlist from the playlist object and all of its item pages.

        Items whose ``track`` is null (removed from Spotify) are skipped;
        an item without a ``track`` field or a track without ``uri`` is a
        DecodeError.
        """
        uris = set()
        for item in items:
            track = require_field(item, "track", (dict, type(None)), "playlist item")
            if track is None:
                continue
            uris.add(require_field(track, "uri", str, "playlist item"))

        return cls(
            id=require_field(data, "id", str, "playlist"),
            name=require_field(data, "name", str, "playlist"),
            track_uris=frozenset(uris)
        )
