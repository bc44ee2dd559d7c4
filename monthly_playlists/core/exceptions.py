"""
Exception classes for monthly-playlists.

Every failure the sync engine can hit is raised as one of the classes below,
so the CLI can map each kind to a message and an exit code.

Exception Hierarchy:
    MonthlyPlaylistsError (base)
        ConfigError - Environment / config.yaml issues
        AuthError - Authorization code exchange or token refresh failed
        DecodeError - A Spotify response did not have the expected shape
        RemoteError - Non-2xx response or transport failure on an API call
        CredentialStoreError - Credential file could not be read or written
            CredentialNotFoundError - No credential stored yet
"""


class MonthlyPlaylistsError(Exception):
    """
    Base exception for all monthly-playlists errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context
                 (playlist id, file path, original error, ...).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(MonthlyPlaylistsError):
    """
    Raised when the configuration is missing or invalid.

    Common causes:
        - SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET / SPOTIFY_REDIRECT_URI not set
        - config.yaml has invalid YAML syntax
        - A config value has the wrong type
    """
    pass


class AuthError(MonthlyPlaylistsError):
    """
    Raised when the authorization exchange or a token refresh fails.

    This is always fatal: without a valid access token no request can be made.

    Common causes:
        - Bad, expired or already used authorization code
        - Refresh token revoked or expired
        - Network failure while talking to accounts.spotify.com
    """
    pass


class DecodeError(MonthlyPlaylistsError):
    """
    Raised when a Spotify response does not match the expected schema.

    A field that is absent is a decode error; a field that is present with
    a null value is only accepted where the API documents it (e.g. the
    ``next`` link of the last page).
    """
    pass


class RemoteError(MonthlyPlaylistsError):
    """
    Raised when a Spotify Web API call fails.

    Attributes:
        status: HTTP status code of the failed response, or 0 when the
                request never produced a response (connection error, timeout).
    """

    def __init__(
        self,
        status: int,
        message: str,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.status = status

    @property
    def is_rate_limit(self) -> bool:
        return self.status == 429


class CredentialStoreError(MonthlyPlaylistsError):
    """
    Raised when the credential file cannot be read, parsed or written.

    A malformed file raises this class directly, so it can be told apart
    from a credential that was simply never stored.
    """
    pass


class CredentialNotFoundError(CredentialStoreError):
    """Raised when no credential file exists yet (never authorized)."""
    pass
