"""
Core module for monthly-playlists.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs
    - context: SyncContext wiring (import from monthly_playlists.core.context)

Usage:
    from monthly_playlists.core import (
        Config, load_config,
        setup_logging, get_logger,
        MonthlyPlaylistsError, ConfigError, AuthError
    )
"""

from monthly_playlists.core.config import (
    Config,
    LoggingConfig,
    SpotifyConfig,
    StorageConfig,
    SyncConfig,
    load_config,
)
from monthly_playlists.core.exceptions import (
    AuthError,
    ConfigError,
    CredentialNotFoundError,
    CredentialStoreError,
    DecodeError,
    MonthlyPlaylistsError,
    RemoteError,
)
from monthly_playlists.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "StorageConfig",
    "LoggingConfig",
    "SyncConfig",
    "load_config",
    # Exceptions
    "MonthlyPlaylistsError",
    "ConfigError",
    "AuthError",
    "DecodeError",
    "RemoteError",
    "CredentialStoreError",
    "CredentialNotFoundError",
    # Logger
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
