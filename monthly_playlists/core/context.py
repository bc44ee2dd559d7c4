"""
Per-process wiring of the sync engine's collaborators.

SyncContext is built once by the CLI and passed explicitly to whatever
needs the credential store, the auth session or the library client.
Nothing in the package keeps these as module-level globals.
"""

from dataclasses import dataclass
from typing import Callable

from monthly_playlists.auth.credentials import CredentialStore
from monthly_playlists.auth.session import AuthSession, load_or_authorize
from monthly_playlists.core.config import Config
from monthly_playlists.core.logger import get_logger
from monthly_playlists.spotify.client import RemoteLibraryClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncContext:
    """
    Everything a command needs to talk to Spotify.

    Attributes:
        config: Loaded application configuration.
        credential_store: Store backing the auth session.
        auth_session: Session that keeps the access token fresh.
        client: Library client on the authorized transport.
    """
    config: Config
    credential_store: CredentialStore
    auth_session: AuthSession
    client: RemoteLibraryClient

    @classmethod
    def open(cls, config: Config, read_code: Callable[[str], str]) -> "SyncContext":
        """
        Load (or interactively obtain) the credential and build the client.

        Args:
            config: Application configuration.
            read_code: Called with the authorization URL when no credential
                       is stored; returns what the user pasted.

        Raises:
            CredentialStoreError: If the stored credential is unreadable.
            AuthError: If the interactive authorization fails.
        """
        store = CredentialStore(config.storage.credential_path)
        session = AuthSession.from_config(config, store)

        credential = load_or_authorize(store, session, read_code)
        transport = session.authorized_transport(credential)
        logger.debug(f"Using credential from {store.path}")

        return cls(
            config=config,
            credential_store=store,
            auth_session=session,
            client=RemoteLibraryClient(transport)
        )
