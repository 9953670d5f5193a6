"""In-memory stores for tests and dry runs."""

import copy
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from outlier_scout.adapters.store.base import (
    DuplicateChannelError,
    ScoutStore,
    StateStore,
    UnknownChannelError,
)
from outlier_scout.domain import (
    ChannelBaseline,
    Outlier,
    OutlierStatus,
    TrackedChannel,
    VideoSnapshot,
)
from outlier_scout.logging import get_logger

logger = get_logger(__name__)


class InMemoryScoutStore(ScoutStore):
    """ScoutStore backed by dictionaries.

    Records are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, channels: list[TrackedChannel] | None = None) -> None:
        self._lock = threading.Lock()
        self._channels: dict[str, TrackedChannel] = {}
        self._snapshots: dict[str, list[VideoSnapshot]] = {}
        self._outliers: dict[str, Outlier] = {}
        for channel in channels or []:
            self.add_tracked_channel(channel)

    # Snapshots

    def get_latest_snapshot(self, video_id: str) -> VideoSnapshot | None:
        snapshots = self.get_video_snapshots(video_id, limit=1)
        return snapshots[0] if snapshots else None

    def get_video_snapshots(self, video_id: str, limit: int | None = None) -> list[VideoSnapshot]:
        with self._lock:
            history = sorted(
                self._snapshots.get(video_id, []),
                key=lambda s: s.snapshot_at,
                reverse=True,
            )
        return history[:limit] if limit is not None else history

    def append_snapshots_bulk(self, snapshots: list[VideoSnapshot]) -> int:
        written = 0
        with self._lock:
            for snapshot in snapshots:
                history = self._snapshots.setdefault(snapshot.video_id, [])
                if any(s.snapshot_at == snapshot.snapshot_at for s in history):
                    continue
                history.append(snapshot)
                written += 1
        logger.debug("snapshots_appended", requested=len(snapshots), written=written)
        return written

    def delete_old_snapshots(self, older_than: datetime) -> int:
        deleted = 0
        with self._lock:
            for video_id, history in self._snapshots.items():
                kept = [s for s in history if s.snapshot_at >= older_than]
                deleted += len(history) - len(kept)
                self._snapshots[video_id] = kept
        return deleted

    # Outliers

    def upsert_outlier(self, outlier: Outlier) -> Outlier:
        with self._lock:
            existing = self._outliers.get(outlier.video_id)
            stored = existing.merged_with(outlier) if existing else replace(outlier)
            self._outliers[outlier.video_id] = stored
        return replace(stored)

    def get_outlier(self, video_id: str) -> Outlier | None:
        with self._lock:
            outlier = self._outliers.get(video_id)
        return replace(outlier) if outlier else None

    def list_outliers(
        self,
        status: OutlierStatus | None = OutlierStatus.ACTIVE,
        only_new: bool = False,
        min_score: int | None = None,
        limit: int = 100,
    ) -> list[Outlier]:
        with self._lock:
            outliers = list(self._outliers.values())
        if status is not None:
            outliers = [o for o in outliers if o.status == status]
        if only_new:
            outliers = [o for o in outliers if o.is_new]
        if min_score is not None:
            outliers = [o for o in outliers if o.outlier_score >= min_score]
        outliers.sort(key=lambda o: (o.outlier_score, o.detected_at), reverse=True)
        return [replace(o) for o in outliers[:limit]]

    def mark_outlier_viewed(self, video_id: str) -> bool:
        with self._lock:
            outlier = self._outliers.get(video_id)
            if outlier is None:
                return False
            outlier.is_new = False
        return True

    def update_outlier(
        self,
        video_id: str,
        status: OutlierStatus | None = None,
        priority: int | None = None,
        notes: str | None = None,
    ) -> Outlier | None:
        with self._lock:
            outlier = self._outliers.get(video_id)
            if outlier is None:
                return None
            if status is not None:
                outlier.status = status
            if priority is not None:
                outlier.priority = priority
            if notes is not None:
                outlier.notes = notes
            return replace(outlier)

    # Channels

    def list_tracked_channels(self, active_only: bool = True) -> list[TrackedChannel]:
        with self._lock:
            channels = [
                replace(c, tags=list(c.tags))
                for c in self._channels.values()
                if c.active or not active_only
            ]
        channels.sort(key=lambda c: c.priority, reverse=True)
        return channels

    def get_tracked_channel(self, channel_id: str) -> TrackedChannel | None:
        with self._lock:
            channel = self._channels.get(channel_id)
        return replace(channel, tags=list(channel.tags)) if channel else None

    def add_tracked_channel(self, channel: TrackedChannel) -> TrackedChannel:
        with self._lock:
            if channel.channel_id in self._channels:
                raise DuplicateChannelError(channel.channel_id)
            self._channels[channel.channel_id] = replace(channel, tags=list(channel.tags))
        return channel

    def update_channel_baseline(self, channel_id: str, baseline: ChannelBaseline) -> None:
        with self._lock:
            channel = self._channels.get(channel_id)
            if channel is None:
                raise UnknownChannelError(channel_id)
            channel.avg_views = baseline.avg_views
            channel.subscriber_count = baseline.subscriber_count
            channel.total_videos = baseline.total_videos

    def mark_channel_scraped(self, channel_id: str, scraped_at: datetime) -> None:
        with self._lock:
            channel = self._channels.get(channel_id)
            if channel is None:
                raise UnknownChannelError(channel_id)
            channel.last_scraped_at = scraped_at


class InMemoryStateStore(StateStore):
    """StateStore backed by a dictionary of deep copies."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(initial or {})
        self._lock = threading.RLock()

    def load(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value) if value is not None else None

    def save(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def update(
        self,
        key: str,
        fn: Callable[[dict[str, Any] | None], dict[str, Any]],
    ) -> dict[str, Any]:
        with self._lock:
            value = fn(self.load(key))
            self.save(key, value)
            return copy.deepcopy(value)
