"""
OAuth credential model and its on-disk store.

The credential is a single JSON file at a fixed per-user path:

    {
      "access_token": "BQD...",
      "refresh_token": "AQC...",
      "expires_at": 1718000000,
      "token_type": "Bearer",
      "scope": "playlist-modify-private ..."
    }

expires_at is an absolute Unix timestamp so staleness can be checked
without knowing when the token was issued.
"""

import json
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from monthly_playlists.core.exceptions import CredentialNotFoundError, CredentialStoreError
from monthly_playlists.core.logger import get_logger

logger = get_logger(__name__)


# Refresh this many seconds before the token actually expires
DEFAULT_EXPIRY_MARGIN = 60

# Spotify access tokens last one hour when expires_in is not reported
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class Credential:
    """
    Immutable OAuth credential.

    Attributes:
        access_token: Bearer token attached to API requests.
        refresh_token: Long-lived token used to obtain a new access token.
        expires_at: Unix timestamp after which access_token is invalid.
        token_type: Token type reported by the authorization server.
        scope: Space separated scopes granted, if reported.
    """
    access_token: str
    refresh_token: str
    expires_at: int
    token_type: str = "Bearer"
    scope: str | None = None

    def is_stale(self, now: float, margin: int = DEFAULT_EXPIRY_MARGIN) -> bool:
        """True when the access token is expired or expires within margin seconds."""
        return now >= self.expires_at - margin

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "Credential":
        """
        Build a credential from its persisted JSON form.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("credential must be a JSON object")

        for name in ("access_token", "refresh_token"):
            if not isinstance(data.get(name), str) or not data[name]:
                raise ValueError(f"'{name}' must be a non-empty string")

        expires_at = data.get("expires_at")
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            raise ValueError("'expires_at' must be a number")

        token_type = data.get("token_type", "Bearer")
        scope = data.get("scope")
        if not isinstance(token_type, str) or not (scope is None or isinstance(scope, str)):
            raise ValueError("'token_type' and 'scope' must be strings")

        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(expires_at),
            token_type=token_type,
            scope=scope
        )

    @classmethod
    def from_token_response(
        cls,
        payload: Any,
        now: float,
        previous: "Credential | None" = None
    ) -> "Credential":
        """
        Build a credential from a token endpoint response.

        Args:
            payload: Parsed JSON body of the token endpoint response.
            now: Current Unix time, used to turn expires_in into expires_at.
            previous: The credential being refreshed. Its refresh token is
                      kept when the response does not rotate it.

        Raises:
            ValueError: If the response lacks an access token, or lacks a
                        refresh token and there is no previous one.
        """
        if not isinstance(payload, dict):
            raise ValueError("token response must be a JSON object")

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response has no access_token")

        refresh_token = payload.get("refresh_token")
        if not refresh_token:
            if previous is None:
                raise ValueError("token response has no refresh_token")
            refresh_token = previous.refresh_token

        expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN)
        if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool):
            raise ValueError("'expires_in' must be a number")

        scope = payload.get("scope")
        if scope is None and previous is not None:
            scope = previous.scope

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=int(now + expires_in),
            token_type=payload.get("token_type") or "Bearer",
            scope=scope
        )


class CredentialStore:
    """
    Loads and saves the credential file.

    Writes go to a temporary file next to the target and are then moved into
    place with os.replace(), so a crash mid-write leaves the previous file
    intact.

    Attributes:
        path: Location of the credential file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Credential:
        """
        Read the stored credential.

        Raises:
            CredentialNotFoundError: If the file does not exist.
            CredentialStoreError: If the file cannot be read or its content
                                  is not a valid credential.
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CredentialNotFoundError(
                f"No stored credential at {self.path}",
                details={"file_path": str(self.path)}
            ) from e
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to read credential file: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e
        except ValueError as e:
            raise CredentialStoreError(
                f"Credential file is not valid JSON: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

        try:
            credential = Credential.from_dict(data)
        except ValueError as e:
            raise CredentialStoreError(
                f"Credential file is malformed: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

        logger.debug(f"Loaded credential from {self.path}")
        return credential

    def save(self, credential: Credential) -> None:
        """
        Write the credential, creating parent directories as needed.

        Raises:
            CredentialStoreError: If the directory or file cannot be written.
        """
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(credential.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            # 0o600 = owner read/write only; no-op on Windows
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to save credential: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug(f"Saved credential to {self.path}")
