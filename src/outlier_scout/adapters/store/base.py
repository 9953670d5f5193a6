"""Base interfaces for persistence.

Two ports are used by the core:
- ScoutStore: tracked channels, video snapshots and outliers
- StateStore: small keyed JSON documents (quota ledger, scheduler state)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any

from outlier_scout.domain import (
    ChannelBaseline,
    Outlier,
    OutlierStatus,
    TrackedChannel,
    VideoSnapshot,
)


class StoreError(Exception):
    """Raised when a persistence operation is rejected."""


class UnknownChannelError(StoreError, LookupError):
    """Raised when an operation targets a channel that is not tracked."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"Channel not tracked: {channel_id}")
        self.channel_id = channel_id


class DuplicateChannelError(StoreError):
    """Raised when adding a channel that is already tracked."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"Channel already tracked: {channel_id}")
        self.channel_id = channel_id


class ScoutStore(ABC):
    """Abstract store for channels, snapshots and outliers.

    Implementations:
    - InMemoryScoutStore: Process-local dictionaries (tests, dry runs)
    - SqlScoutStore: SQLAlchemy-backed (PostgreSQL or SQLite)
    """

    # Snapshots

    @abstractmethod
    def get_latest_snapshot(self, video_id: str) -> VideoSnapshot | None:
        """Get the most recent snapshot of a video, if any."""
        ...

    @abstractmethod
    def get_video_snapshots(self, video_id: str, limit: int | None = None) -> list[VideoSnapshot]:
        """Get a video's snapshots, newest first."""
        ...

    @abstractmethod
    def append_snapshots_bulk(self, snapshots: list[VideoSnapshot]) -> int:
        """Append snapshots in one write.

        Snapshots whose (video_id, snapshot_at) pair already exists are skipped.

        Returns:
            Number of snapshots written
        """
        ...

    @abstractmethod
    def delete_old_snapshots(self, older_than: datetime) -> int:
        """Delete snapshots taken before ``older_than``.

        Returns:
            Number of snapshots deleted
        """
        ...

    # Outliers

    @abstractmethod
    def upsert_outlier(self, outlier: Outlier) -> Outlier:
        """Insert or refresh the outlier record for a video.

        On conflict the metrics and ``last_updated_at`` are replaced while
        ``detected_at``, ``first_seen_views``, ``status``, ``is_new``,
        ``priority`` and ``notes`` are kept.

        Returns:
            The stored record
        """
        ...

    @abstractmethod
    def get_outlier(self, video_id: str) -> Outlier | None:
        """Get the outlier record of a video."""
        ...

    @abstractmethod
    def list_outliers(
        self,
        status: OutlierStatus | None = OutlierStatus.ACTIVE,
        only_new: bool = False,
        min_score: int | None = None,
        limit: int = 100,
    ) -> list[Outlier]:
        """List outliers, highest score first, then most recently detected."""
        ...

    @abstractmethod
    def mark_outlier_viewed(self, video_id: str) -> bool:
        """Clear the ``is_new`` flag. Returns False if the outlier does not exist."""
        ...

    @abstractmethod
    def update_outlier(
        self,
        video_id: str,
        status: OutlierStatus | None = None,
        priority: int | None = None,
        notes: str | None = None,
    ) -> Outlier | None:
        """Apply reviewer changes. Returns None if the outlier does not exist."""
        ...

    # Channels

    @abstractmethod
    def list_tracked_channels(self, active_only: bool = True) -> list[TrackedChannel]:
        """List tracked channels, highest priority first."""
        ...

    @abstractmethod
    def get_tracked_channel(self, channel_id: str) -> TrackedChannel | None:
        """Get a tracked channel by its platform ID."""
        ...

    @abstractmethod
    def add_tracked_channel(self, channel: TrackedChannel) -> TrackedChannel:
        """Start tracking a channel.

        Raises:
            DuplicateChannelError: If the channel is already tracked
        """
        ...

    @abstractmethod
    def update_channel_baseline(self, channel_id: str, baseline: ChannelBaseline) -> None:
        """Overwrite a channel's baseline stats.

        Raises:
            UnknownChannelError: If the channel is not tracked
        """
        ...

    @abstractmethod
    def mark_channel_scraped(self, channel_id: str, scraped_at: datetime) -> None:
        """Stamp ``last_scraped_at``.

        Raises:
            UnknownChannelError: If the channel is not tracked
        """
        ...


class StateStore(ABC):
    """Keyed storage for small JSON-serializable state documents."""

    @abstractmethod
    def load(self, key: str) -> dict[str, Any] | None:
        """Load the document stored under ``key``, or None."""
        ...

    @abstractmethod
    def save(self, key: str, value: dict[str, Any]) -> None:
        """Replace the document stored under ``key``."""
        ...

    @abstractmethod
    def update(
        self,
        key: str,
        fn: Callable[[dict[str, Any] | None], dict[str, Any]],
    ) -> dict[str, Any]:
        """Atomically replace the document under ``key`` with ``fn(current)``.

        No other ``update`` or ``save`` on the same key interleaves between the
        read and the write, across processes for the SQL store.

        Returns:
            The document that was written.
        """
        ...
