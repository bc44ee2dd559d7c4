"""
OAuth2 authorization code flow and token lifecycle for the Spotify Web API.

Steps:
    1. Build the authorization URL with the required scopes
    2. The user opens it, grants access and is redirected to the
       registered redirect URI with a one-time ``code``
    3. The code is exchanged for access/refresh tokens
    4. Tokens are persisted through the CredentialStore
    5. Before every API request the access token is checked and refreshed
       when stale; a refreshed token is written back to the store

AuthSession doubles as a spotipy auth manager: spotipy calls
``get_access_token()`` before each request, which is where the silent
refresh happens. Opening the browser and reading the code from the
terminal is left to the caller (see ``load_or_authorize``).
"""

import secrets
import time
import urllib.parse
from typing import Any, Callable

import requests
import spotipy

from monthly_playlists.auth.credentials import (
    DEFAULT_EXPIRY_MARGIN,
    Credential,
    CredentialStore,
)
from monthly_playlists.core.config import Config
from monthly_playlists.core.exceptions import (
    AuthError,
    CredentialNotFoundError,
    CredentialStoreError,
)
from monthly_playlists.core.logger import get_logger

logger = get_logger(__name__)


AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"


class AuthSession:
    """
    Spotify OAuth2 session: authorization URL, code exchange and refresh.

    Attributes:
        client_id: Spotify application client ID.
        client_secret: Spotify application client secret.
        redirect_uri: Redirect URI registered for the application.
        scope: Space separated scopes requested during authorization.
        store: Where refreshed credentials are written back.
        expiry_margin: Seconds before expiry at which a token counts as stale.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str,
        store: CredentialStore,
        requests_timeout: int = 30,
        expiry_margin: int = DEFAULT_EXPIRY_MARGIN,
        http: requests.Session | None = None,
        clock: Callable[[], float] = time.time
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.store = store
        self.requests_timeout = requests_timeout
        self.expiry_margin = expiry_margin
        self._http = http or requests.Session()
        self._clock = clock

        self._credential: Credential | None = None
        self._state: str | None = None
        self._used_codes: set[str] = set()

    @classmethod
    def from_config(cls, config: Config, store: CredentialStore) -> "AuthSession":
        return cls(
            client_id=config.spotify.client_id,
            client_secret=config.spotify.client_secret,
            redirect_uri=config.spotify.redirect_uri,
            scope=config.spotify.scope,
            store=store,
            requests_timeout=config.sync.request_timeout
        )

    @property
    def credential(self) -> Credential | None:
        """The credential currently in use, or None before authorization."""
        return self._credential

    # =========================================================================
    # Authorization
    # =========================================================================

    def authorization_url(self, state: str | None = None) -> str:
        """
        Build the URL the user must open to grant access.

        Args:
            state: Opaque value echoed back in the redirect. A random value
                   is generated when omitted.
        """
        self._state = state or secrets.token_urlsafe(16)
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": self._state,
        }
        return f"{AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"

    def parse_response_code(self, response: str) -> str:
        """
        Extract the authorization code from what the user pasted.

        Accepts either the bare code or the full redirect URL.

        Raises:
            AuthError: If nothing was entered, the redirect carries an
                       ``error`` parameter, the state does not match the one
                       sent, or the URL has no code.
        """
        text = response.strip()
        if not text:
            raise AuthError("No authorization code entered")

        query = urllib.parse.urlparse(text).query
        if not query:
            return text

        params = urllib.parse.parse_qs(query)
        if "error" in params:
            raise AuthError(
                f"Authorization was denied: {params['error'][0]}",
                details={"error": params["error"][0]}
            )

        if self._state is not None and params.get("state", [None])[0] != self._state:
            raise AuthError("Authorization state mismatch, start the login again")

        codes = params.get("code")
        if not codes:
            raise AuthError("Redirect URL does not contain an authorization code")
        return codes[0]

    def exchange(self, code: str) -> Credential:
        """
        Exchange an authorization code for a credential.

        Codes are single-use on Spotify's side, so a code that was already
        submitted through this session is rejected without a network call.

        Raises:
            AuthError: If the code was already used or the exchange fails.
        """
        if code in self._used_codes:
            raise AuthError(
                "Authorization code was already used, start the login again",
                details={"reason": "code_reused"}
            )
        self._used_codes.add(code)

        payload = self._request_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })
        credential = self._build_credential(payload, previous=None)

        self._credential = credential
        logger.info("Authorization successful")
        return credential

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh(self) -> Credential:
        """
        Obtain a new access token with the refresh token.

        The new credential replaces the in-memory one and, when the access
        token changed, is written back to the store.

        Raises:
            AuthError: If there is no credential or the refresh is rejected.
        """
        previous = self._require_credential()

        payload = self._request_token({
            "grant_type": "refresh_token",
            "refresh_token": previous.refresh_token,
        })
        credential = self._build_credential(payload, previous=previous)

        self._credential = credential
        logger.debug("Access token refreshed")

        if credential.access_token != previous.access_token:
            self.persist(credential)
        return credential

    def ensure_fresh(self) -> Credential:
        """Return the current credential, refreshing it first when stale."""
        credential = self._require_credential()
        if credential.is_stale(self._clock(), self.expiry_margin):
            logger.info("Access token expired, refreshing...")
            credential = self.refresh()
        return credential

    def persist(self, credential: Credential) -> bool:
        """
        Write the credential to the store.

        A failed write is logged and reported through the return value; the
        in-memory credential stays valid for the rest of the run.
        """
        try:
            self.store.save(credential)
        except CredentialStoreError as e:
            logger.warning(f"Could not save credential, next run may ask to log in again: {e}")
            return False
        return True

    # =========================================================================
    # Transport
    # =========================================================================

    def get_access_token(self, as_dict: bool = False) -> str | dict[str, Any]:
        """
        spotipy auth manager hook, called before every API request.
        """
        credential = self.ensure_fresh()
        if as_dict:
            return credential.to_dict()
        return credential.access_token

    def authorized_transport(
        self,
        credential: Credential,
        requests_timeout: int | None = None
    ) -> spotipy.Spotify:
        """
        Return a spotipy client that authenticates every request through this session.

        A plain requests.Session is passed so spotipy does not mount its
        retrying adapter: a failed request surfaces immediately as a
        SpotifyException carrying the response's own HTTP status.
        """
        self._credential = credential
        return spotipy.Spotify(
            auth_manager=self,
            requests_session=requests.Session(),
            requests_timeout=requests_timeout or self.requests_timeout
        )

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    def _require_credential(self) -> Credential:
        if self._credential is None:
            raise AuthError("Not authorized: no credential loaded")
        return self._credential

    def _build_credential(
        self,
        payload: dict[str, Any],
        previous: Credential | None
    ) -> Credential:
        try:
            return Credential.from_token_response(payload, self._clock(), previous)
        except ValueError as e:
            raise AuthError(
                f"Unexpected token response: {e}",
                details={"original_error": str(e)}
            ) from e

    def _request_token(self, data: dict[str, str]) -> dict[str, Any]:
        """POST to the token endpoint and return the decoded JSON body."""
        data = {
            **data,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            response = self._http.post(
                TOKEN_URL,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.requests_timeout
            )
        except requests.RequestException as e:
            raise AuthError(
                f"Token request failed: {e}",
                details={"grant_type": data["grant_type"], "original_error": str(e)}
            ) from e

        if not response.ok:
            raise AuthError(
                f"Token request rejected ({response.status_code}): {_error_description(response)}",
                details={"grant_type": data["grant_type"], "http_status": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthError(
                "Token endpoint returned invalid JSON",
                details={"grant_type": data["grant_type"], "original_error": str(e)}
            ) from e

        if not isinstance(payload, dict):
            raise AuthError("Token endpoint returned an unexpected body")
        return payload


def _error_description(response: requests.Response) -> str:
    """Best human-readable reason from an OAuth error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "unknown error"
    if isinstance(body, dict):
        return body.get("error_description") or body.get("error") or str(body)
    return str(body)


def authorize(
    session: AuthSession,
    read_code: Callable[[str], str]
) -> Credential:
    """
    Run the interactive authorization and persist the resulting credential.

    Args:
        session: Session used to build the URL and exchange the code.
        read_code: Shows the authorization URL to the user and returns what
                   they pasted (the code or the full redirect URL).
    """
    url = session.authorization_url()
    code = session.parse_response_code(read_code(url))
    credential = session.exchange(code)
    session.persist(credential)
    return credential


def load_or_authorize(
    store: CredentialStore,
    session: AuthSession,
    read_code: Callable[[str], str]
) -> Credential:
    """
    Load the stored credential, authorizing interactively when there is none.

    Raises:
        CredentialStoreError: If a credential file exists but is unreadable
                              or malformed.
        AuthError: If the interactive authorization fails.
    """
    try:
        return store.load()
    except CredentialNotFoundError:
        logger.info("No stored credential found, starting authorization...")
        return authorize(session, read_code)
