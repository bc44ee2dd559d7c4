"""
monthly-playlists: sort your Spotify Liked Songs into monthly playlists.

Every saved track is added to a playlist named after the month it was
saved in ("January '24"). Playlists are created on first use and only
tracks they do not already contain are appended, so the sync can be run
as often as you like.

Modules:
    core/     Configuration, exceptions, logging, SyncContext
    auth/     Credential file and OAuth session (token refresh)
    spotify/  Response models, pagination and the library client
    sync/     The month bucketing engine
    cli.py    Command-line interface

Dependencies:
    - spotipy: Spotify Web API client
    - requests: OAuth token endpoint
    - click: Command-line interface
    - pyyaml: Configuration file parsing
    - python-dotenv: .env loading
    - tqdm: Progress bars
    - colorama: Colored console output
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
