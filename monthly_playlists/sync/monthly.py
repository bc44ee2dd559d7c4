"""
Month bucketing of saved tracks into "Month 'YY" playlists.

A run has two phases:

    1. Bucketing: saved tracks are walked oldest first. Each track's
       added-at month gives its label ("January '24"); the first time a
       label is seen its playlist is looked up by name among the user's
       playlists, or created. The track URI is queued under the label.
    2. Reconcile: for each label, the target playlist's current items are
       fetched and only the queued URIs it does not contain yet are
       appended, in queue order.

Running twice with no new saved tracks appends nothing the second time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from tqdm import tqdm

from monthly_playlists.core.logger import get_logger
from monthly_playlists.spotify.client import RemoteLibraryClient
from monthly_playlists.spotify.models import PlaylistSummary, UserProfile

logger = get_logger(__name__)


# Fixed English names so labels do not depend on the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def month_label(moment: datetime) -> str:
    """
    Label of the month a timestamp falls in, e.g. "January '24".

    The timestamp is used in its own UTC offset; it is not converted to
    local time or UTC first.
    """
    return f"{MONTH_NAMES[moment.month - 1]} '{moment.year % 100:02d}"


def compute_delta(pending: Iterable[str], existing: Iterable[str]) -> list[str]:
    """
    URIs of pending that are not in existing, in pending order.

    Repeats inside pending are dropped too, so a URI is appended at most once.

    Example:
        >>> compute_delta(["A", "C", "B", "D"], {"A", "B"})
        ['C', 'D']
    """
    seen = set(existing)
    delta = []
    for uri in pending:
        if uri in seen:
            continue
        seen.add(uri)
        delta.append(uri)
    return delta


@dataclass
class SyncReport:
    """
    Outcome of a sync run.

    Attributes:
        added: Number of tracks appended per label, oldest month first.
        created: Labels whose playlist was created (or would be, in a dry run).
        reused: Labels whose playlist already existed.
        dry_run: Whether the run made no changes.
    """
    added: dict[str, int] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    reused: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total_added(self) -> int:
        return sum(self.added.values())


class MonthBucketSync:
    """
    Sorts the user's saved tracks into one playlist per month.

    Attributes:
        client: Library client used for every read and write.
        public: Whether created playlists are public.
        collaborative: Whether created playlists are collaborative.
        description: Description of created playlists.
        dry_run: If True, nothing is created or appended.
        progress: Show a tqdm progress bar during the reconcile phase.

    Example:
        report = MonthBucketSync(client).run()
        print(f"Added {report.total_added} tracks")
    """

    def __init__(
        self,
        client: RemoteLibraryClient,
        public: bool = True,
        collaborative: bool = False,
        description: str = "",
        dry_run: bool = False,
        progress: bool = False
    ) -> None:
        self.client = client
        self.public = public
        self.collaborative = collaborative
        self.description = description
        self.dry_run = dry_run
        self.progress = progress

    def run(self) -> SyncReport:
        """
        Execute one full sync.

        Any RemoteError, DecodeError or AuthError aborts the run; playlists
        created and batches appended before the failure are kept, and the
        next run picks up from there.
        """
        user = self.client.current_user()
        playlists = self.client.list_playlists()
        saved_tracks = self.client.list_saved_tracks()
        logger.info(
            f"Found {len(saved_tracks)} saved tracks and {len(playlists)} playlists"
        )

        report = SyncReport(dry_run=self.dry_run)
        existing_ids = _index_by_name(playlists)

        # label -> playlist id (None when creation was skipped by a dry run)
        resolved: dict[str, str | None] = {}
        pending: dict[str, list[str]] = {}

        # Spotify returns the newest save first
        for entry in reversed(saved_tracks):
            label = month_label(entry.added_at)
            if label not in resolved:
                resolved[label] = self._resolve_playlist(label, user, existing_ids, report)
            pending.setdefault(label, []).append(entry.uri)

        for label, uris in tqdm(
            pending.items(),
            total=len(pending),
            desc="Reconciling",
            unit="month",
            disable=not self.progress
        ):
            report.added[label] = self._reconcile(label, resolved[label], uris)

        logger.info(f"Sync complete: {report.total_added} tracks added")
        return report

    # =========================================================================
    # Private Helper Methods
    # =========================================================================

    def _resolve_playlist(
        self,
        label: str,
        user: UserProfile,
        existing_ids: dict[str, str],
        report: SyncReport
    ) -> str | None:
        """Id of the playlist named label, creating it when missing."""
        playlist_id = existing_ids.get(label)
        if playlist_id is not None:
            logger.info(f"Found playlist {label}")
            report.reused.append(label)
            return playlist_id

        report.created.append(label)
        if self.dry_run:
            logger.info(f"Would create playlist {label}")
            return None

        playlist = self.client.create_playlist(
            user.id,
            label,
            public=self.public,
            collaborative=self.collaborative,
            description=self.description
        )
        return playlist.id

    def _reconcile(self, label: str, playlist_id: str | None, pending: Sequence[str]) -> int:
        """Append the URIs the playlist is missing; returns how many."""
        existing: frozenset[str] = frozenset()
        if playlist_id is not None:
            existing = self.client.get_playlist(playlist_id).track_uris

        delta = compute_delta(pending, existing)
        if not delta:
            logger.debug(f"{label}: up to date")
            return 0

        if self.dry_run:
            logger.info(f"{label}: would add {len(delta)} tracks")
        else:
            self.client.append_tracks(playlist_id, delta)
            logger.info(f"{label}: added {len(delta)} tracks")
        return len(delta)


def _index_by_name(playlists: Iterable[PlaylistSummary]) -> dict[str, str]:
    """Map playlist name to id; the first playlist with a given name wins."""
    index: dict[str, str] = {}
    for playlist in playlists:
        index.setdefault(playlist.name, playlist.id)
    return index
