"""
Configuration management for monthly-playlists.

This module builds the application configuration from two sources:

    - Environment variables (optionally loaded from a .env file) for the
      Spotify application credentials. These are secrets and never live in
      the YAML file.
    - An optional config.yaml for non-secret settings (credential file
      location, logging, how new playlists are created).

Environment Variables:
    SPOTIFY_CLIENT_ID       Spotify application client ID (required)
    SPOTIFY_CLIENT_SECRET   Spotify application client secret (required)
    SPOTIFY_REDIRECT_URI    Redirect URI registered for the app (required)

Example config.yaml:
    storage:
      credential_path: "~/.config/monthly-playlists/token.json"

    logging:
      level: "INFO"
      directory: null      # set to a path to also write log files

    sync:
      public: true
      collaborative: false
      description: ""
      request_timeout: 10
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import click
import yaml
from dotenv import find_dotenv, load_dotenv

from monthly_playlists.core.exceptions import ConfigError


# Default configuration file name (looked up in the current working directory)
CONFIG_FILENAME = "config.yaml"

# Directory name under the per-user config dir that holds the credential
APP_DIR_NAME = "spotify-add-saved-songs-to-a-monthly-playlist"
CREDENTIAL_FILENAME = "token.json"

# Scopes needed to read the library and create/modify playlists
SPOTIFY_SCOPES = (
    "playlist-modify-private",
    "playlist-modify-public",
    "playlist-read-private",
    "user-library-read",
    "user-read-private",
    "user-read-email",
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application credentials.

    Obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: The redirect URI registered for the application.
                      The authorization code is appended to it by Spotify.
        scopes: Permission scopes requested during authorization.
    """
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: tuple[str, ...] = SPOTIFY_SCOPES

    @property
    def scope(self) -> str:
        """Scopes as the space separated string used on the wire."""
        return " ".join(self.scopes)


@dataclass(frozen=True)
class StorageConfig:
    """
    Attributes:
        credential_path: File holding the persisted OAuth credential.
    """
    credential_path: Path


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        level: Console log level name.
        directory: Directory for log files, or None for console only.
    """
    level: str = "INFO"
    directory: Path | None = None


@dataclass(frozen=True)
class SyncConfig:
    """
    Settings for playlists created by the sync run.

    Attributes:
        public: Whether new month playlists are public.
        collaborative: Whether new month playlists are collaborative.
        description: Description given to new month playlists.
        request_timeout: Seconds before a Spotify API request times out.
    """
    public: bool = True
    collaborative: bool = False
    description: str = ""
    request_timeout: int = 10


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Credential stored at: {config.storage.credential_path}")
    """
    spotify: SpotifyConfig
    storage: StorageConfig
    logging: LoggingConfig
    sync: SyncConfig


def default_credential_path() -> Path:
    """Per-user location of the credential file (e.g. ~/.config/<app>/token.json)."""
    return Path(click.get_app_dir(APP_DIR_NAME)) / CREDENTIAL_FILENAME


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate the configuration.

    Args:
        config_path: Optional explicit path to a YAML config file. If None,
                     config.yaml in the current working directory is used
                     when it exists.
        env: Mapping to read environment variables from. If None, a .env
             file in the working directory is loaded into os.environ first
             and os.environ is used.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If a required environment variable is missing, the
                     explicit config file does not exist, the YAML cannot be
                     parsed or a value has the wrong type.
    """
    if env is None:
        load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    raw_config = _read_yaml(config_path)

    spotify_config = _parse_spotify_config(env)
    storage_config = _parse_storage_config(_section(raw_config, "storage"))
    logging_config = _parse_logging_config(_section(raw_config, "logging"))
    sync_config = _parse_sync_config(_section(raw_config, "sync"))

    return Config(
        spotify=spotify_config,
        storage=storage_config,
        logging=logging_config,
        sync=sync_config
    )


def _read_yaml(config_path: Path | None) -> dict[str, Any]:
    """
    Read the YAML file, returning an empty dict when there is nothing to read.

    A missing default config.yaml is not an error; a missing explicit path is.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
        if not config_path.exists():
            return {}
    elif not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_spotify_config(env: Mapping[str, str]) -> SpotifyConfig:
    """
    Read the Spotify credentials from the environment.

    Raises:
        ConfigError: Listing every required variable that is missing or empty.
    """
    names = {
        "client_id": "SPOTIFY_CLIENT_ID",
        "client_secret": "SPOTIFY_CLIENT_SECRET",
        "redirect_uri": "SPOTIFY_REDIRECT_URI",
    }
    values = {key: (env.get(var) or "").strip() for key, var in names.items()}

    missing = [names[key] for key, value in values.items() if not value]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}",
            details={"missing": missing}
        )

    return SpotifyConfig(**values)


def _parse_storage_config(section: dict[str, Any]) -> StorageConfig:
    raw_path = section.get("credential_path")
    if raw_path is None:
        return StorageConfig(credential_path=default_credential_path())

    if not isinstance(raw_path, str) or not raw_path.strip():
        raise ConfigError(
            "'storage.credential_path' must be a non-empty string",
            details={"field": "storage.credential_path"}
        )

    return StorageConfig(credential_path=Path(raw_path.strip()).expanduser())


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    level = section.get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    directory = section.get("directory")
    if directory is not None:
        if not isinstance(directory, str) or not directory.strip():
            raise ConfigError(
                "'logging.directory' must be a non-empty string or null",
                details={"field": "logging.directory"}
            )
        directory = Path(directory.strip()).expanduser()

    return LoggingConfig(level=level.upper(), directory=directory)


def _parse_sync_config(section: dict[str, Any]) -> SyncConfig:
    defaults = SyncConfig()

    public = section.get("public", defaults.public)
    collaborative = section.get("collaborative", defaults.collaborative)
    description = section.get("description", defaults.description)
    request_timeout = section.get("request_timeout", defaults.request_timeout)

    for field_name, value in (("public", public), ("collaborative", collaborative)):
        if not isinstance(value, bool):
            raise ConfigError(
                f"'sync.{field_name}' must be true or false",
                details={"field": f"sync.{field_name}", "value": value}
            )

    if not isinstance(description, str):
        raise ConfigError(
            "'sync.description' must be a string",
            details={"field": "sync.description"}
        )

    # bool is a subclass of int, reject it explicitly
    if (
        not isinstance(request_timeout, int)
        or isinstance(request_timeout, bool)
        or request_timeout < 1
    ):
        raise ConfigError(
            "'sync.request_timeout' must be a positive integer",
            details={"field": "sync.request_timeout", "value": request_timeout}
        )

    # Spotify rejects collaborative playlists that are public
    if collaborative and public:
        raise ConfigError(
            "'sync.collaborative' requires 'sync.public: false'",
            details={"field": "sync.collaborative"}
        )

    return SyncConfig(
        public=public,
        collaborative=collaborative,
        description=description,
        request_timeout=request_timeout
    )
