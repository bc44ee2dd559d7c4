"""
Spotify authorization: persisted credential and OAuth session.
"""

from monthly_playlists.auth.credentials import Credential, CredentialStore
from monthly_playlists.auth.session import AuthSession, authorize, load_or_authorize

__all__ = [
    "Credential",
    "CredentialStore",
    "AuthSession",
    "authorize",
    "load_or_authorize",
]
