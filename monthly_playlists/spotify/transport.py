"""
The authorized HTTP transport and its error mapping.

The transport is a spotipy.Spotify instance whose auth manager refreshes the
access token before each request (see auth.session.AuthSession). Every call
through it goes via call_api(), which turns spotipy and requests failures
into RemoteError so callers deal with one error kind.
"""

from typing import Any, Callable

import requests
import spotipy

from monthly_playlists.core.exceptions import RemoteError

Transport = spotipy.Spotify


def call_api(operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Invoke a transport method, mapping failures to RemoteError.

    Args:
        operation: Short description used in the error message,
                   e.g. "create playlist".
        fn: The spotipy method to call.

    Raises:
        RemoteError: With the HTTP status of the failed response, or 0 when
                     no response was received.
    """
    try:
        return fn(*args, **kwargs)
    except spotipy.SpotifyException as e:
        status = e.http_status or 0
        raise RemoteError(
            status,
            f"Failed to {operation} ({status}): {e.msg}",
            details={"operation": operation, "http_status": status, "reason": e.reason}
        ) from e
    except requests.RequestException as e:
        raise RemoteError(
            0,
            f"Failed to {operation}: {e}",
            details={"operation": operation, "original_error": str(e)}
        ) from e
