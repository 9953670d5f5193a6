"""SQLAlchemy-backed stores."""

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from outlier_scout.adapters.store.base import (
    DuplicateChannelError,
    ScoutStore,
    StateStore,
    UnknownChannelError,
)
from outlier_scout.db.models import (
    AppStateModel,
    OutlierModel,
    TrackedChannelModel,
    VideoSnapshotModel,
)
from outlier_scout.db.session import session_scope
from outlier_scout.domain import (
    ChannelBaseline,
    Outlier,
    OutlierStatus,
    TrackedChannel,
    VideoSnapshot,
)
from outlier_scout.logging import get_logger
from outlier_scout.utils.clock import ensure_utc

logger = get_logger(__name__)

_OUTLIER_METRIC_FIELDS = (
    "channel_id",
    "channel_name",
    "title",
    "thumbnail_url",
    "published_at",
    "duration",
    "views",
    "likes",
    "comments",
    "multiplier",
    "outlier_score",
    "velocity_score",
    "engagement_ratio",
    "last_updated_at",
)


def _optional_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


def _channel_to_domain(row: TrackedChannelModel) -> TrackedChannel:
    return TrackedChannel(
        channel_id=row.channel_id,
        channel_name=row.channel_name,
        handle=row.handle,
        avg_views=row.avg_views or 0,
        subscriber_count=row.subscriber_count or 0,
        total_videos=row.total_videos or 0,
        refresh_interval_seconds=row.refresh_interval_seconds,
        priority=row.priority,
        last_scraped_at=_optional_utc(row.last_scraped_at),
        active=row.active,
        category=row.category,
        tags=list(row.tags or []),
    )


def _snapshot_to_domain(row: VideoSnapshotModel) -> VideoSnapshot:
    return VideoSnapshot(
        video_id=row.video_id,
        channel_id=row.channel_id,
        snapshot_at=ensure_utc(row.snapshot_at),
        views=row.views,
        likes=row.likes,
        comments=row.comments,
        published_at=_optional_utc(row.published_at),
        title=row.title,
        thumbnail_url=row.thumbnail_url,
        duration=row.duration,
        engagement_ratio=row.engagement_ratio,
        velocity_score=row.velocity_score,
        multiplier=row.multiplier,
        outlier_score=row.outlier_score,
    )


def _outlier_to_domain(row: OutlierModel) -> Outlier:
    return Outlier(
        video_id=row.video_id,
        channel_id=row.channel_id,
        channel_name=row.channel_name,
        title=row.title,
        outlier_score=row.outlier_score,
        detected_at=ensure_utc(row.detected_at),
        last_updated_at=ensure_utc(row.last_updated_at),
        first_seen_views=row.first_seen_views,
        thumbnail_url=row.thumbnail_url,
        published_at=_optional_utc(row.published_at),
        duration=row.duration,
        views=row.views,
        likes=row.likes,
        comments=row.comments,
        multiplier=row.multiplier,
        velocity_score=row.velocity_score,
        engagement_ratio=row.engagement_ratio,
        status=OutlierStatus(row.status),
        is_new=row.is_new,
        priority=row.priority,
        notes=row.notes,
    )


class _SessionScope:
    """Shared transactional scope for the SQL stores."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    def _session(self) -> AbstractContextManager[Session]:
        return session_scope(self._session_factory)


class SqlScoutStore(_SessionScope, ScoutStore):
    """ScoutStore on the relational schema. Every call is its own transaction."""

    # Snapshots

    def get_latest_snapshot(self, video_id: str) -> VideoSnapshot | None:
        snapshots = self.get_video_snapshots(video_id, limit=1)
        return snapshots[0] if snapshots else None

    def get_video_snapshots(self, video_id: str, limit: int | None = None) -> list[VideoSnapshot]:
        with self._session() as session:
            stmt = (
                select(VideoSnapshotModel)
                .where(VideoSnapshotModel.video_id == video_id)
                .order_by(VideoSnapshotModel.snapshot_at.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            return [_snapshot_to_domain(row) for row in session.scalars(stmt)]

    def append_snapshots_bulk(self, snapshots: list[VideoSnapshot]) -> int:
        if not snapshots:
            return 0

        with self._session() as session:
            video_ids = {s.video_id for s in snapshots}
            existing = {
                (video_id, ensure_utc(snapshot_at))
                for video_id, snapshot_at in session.execute(
                    select(VideoSnapshotModel.video_id, VideoSnapshotModel.snapshot_at).where(
                        VideoSnapshotModel.video_id.in_(video_ids)
                    )
                )
            }

            written = 0
            for snapshot in snapshots:
                identity = (snapshot.video_id, ensure_utc(snapshot.snapshot_at))
                if identity in existing:
                    continue
                existing.add(identity)
                session.add(
                    VideoSnapshotModel(
                        video_id=snapshot.video_id,
                        channel_id=snapshot.channel_id,
                        snapshot_at=snapshot.snapshot_at,
                        views=snapshot.views,
                        likes=snapshot.likes,
                        comments=snapshot.comments,
                        published_at=snapshot.published_at,
                        title=snapshot.title,
                        thumbnail_url=snapshot.thumbnail_url,
                        duration=snapshot.duration,
                        engagement_ratio=snapshot.engagement_ratio,
                        velocity_score=snapshot.velocity_score,
                        multiplier=snapshot.multiplier,
                        outlier_score=snapshot.outlier_score,
                    )
                )
                written += 1

        logger.debug("snapshots_appended", requested=len(snapshots), written=written)
        return written

    def delete_old_snapshots(self, older_than: datetime) -> int:
        with self._session() as session:
            result = session.execute(
                delete(VideoSnapshotModel).where(VideoSnapshotModel.snapshot_at < older_than)
            )
            return result.rowcount or 0

    # Outliers

    def upsert_outlier(self, outlier: Outlier) -> Outlier:
        with self._session() as session:
            row = session.scalar(
                select(OutlierModel).where(OutlierModel.video_id == outlier.video_id)
            )
            if row is None:
                row = OutlierModel(
                    video_id=outlier.video_id,
                    detected_at=outlier.detected_at,
                    first_seen_views=outlier.first_seen_views,
                    status=outlier.status.value,
                    is_new=outlier.is_new,
                    priority=outlier.priority,
                    notes=outlier.notes,
                )
                session.add(row)

            for name in _OUTLIER_METRIC_FIELDS:
                setattr(row, name, getattr(outlier, name))

            session.flush()
            return _outlier_to_domain(row)

    def get_outlier(self, video_id: str) -> Outlier | None:
        with self._session() as session:
            row = session.scalar(select(OutlierModel).where(OutlierModel.video_id == video_id))
            return _outlier_to_domain(row) if row else None

    def list_outliers(
        self,
        status: OutlierStatus | None = OutlierStatus.ACTIVE,
        only_new: bool = False,
        min_score: int | None = None,
        limit: int = 100,
    ) -> list[Outlier]:
        with self._session() as session:
            stmt = select(OutlierModel)
            if status is not None:
                stmt = stmt.where(OutlierModel.status == status.value)
            if only_new:
                stmt = stmt.where(OutlierModel.is_new.is_(True))
            if min_score is not None:
                stmt = stmt.where(OutlierModel.outlier_score >= min_score)
            stmt = stmt.order_by(
                OutlierModel.outlier_score.desc(), OutlierModel.detected_at.desc()
            ).limit(limit)
            return [_outlier_to_domain(row) for row in session.scalars(stmt)]

    def mark_outlier_viewed(self, video_id: str) -> bool:
        with self._session() as session:
            row = session.scalar(select(OutlierModel).where(OutlierModel.video_id == video_id))
            if row is None:
                return False
            row.is_new = False
            return True

    def update_outlier(
        self,
        video_id: str,
        status: OutlierStatus | None = None,
        priority: int | None = None,
        notes: str | None = None,
    ) -> Outlier | None:
        with self._session() as session:
            row = session.scalar(select(OutlierModel).where(OutlierModel.video_id == video_id))
            if row is None:
                return None
            if status is not None:
                row.status = status.value
            if priority is not None:
                row.priority = priority
            if notes is not None:
                row.notes = notes
            session.flush()
            return _outlier_to_domain(row)

    # Channels

    def list_tracked_channels(self, active_only: bool = True) -> list[TrackedChannel]:
        with self._session() as session:
            stmt = select(TrackedChannelModel).order_by(TrackedChannelModel.priority.desc())
            if active_only:
                stmt = stmt.where(TrackedChannelModel.active.is_(True))
            return [_channel_to_domain(row) for row in session.scalars(stmt)]

    def get_tracked_channel(self, channel_id: str) -> TrackedChannel | None:
        with self._session() as session:
            row = self._channel_row(session, channel_id)
            return _channel_to_domain(row) if row else None

    def add_tracked_channel(self, channel: TrackedChannel) -> TrackedChannel:
        with self._session() as session:
            if self._channel_row(session, channel.channel_id) is not None:
                raise DuplicateChannelError(channel.channel_id)
            session.add(
                TrackedChannelModel(
                    channel_id=channel.channel_id,
                    channel_name=channel.channel_name,
                    handle=channel.handle,
                    category=channel.category,
                    tags=list(channel.tags),
                    avg_views=channel.avg_views,
                    subscriber_count=channel.subscriber_count,
                    total_videos=channel.total_videos,
                    refresh_interval_seconds=channel.refresh_interval_seconds,
                    priority=channel.priority,
                    last_scraped_at=channel.last_scraped_at,
                    active=channel.active,
                )
            )
        logger.info("tracked_channel_added", channel_id=channel.channel_id)
        return channel

    def update_channel_baseline(self, channel_id: str, baseline: ChannelBaseline) -> None:
        with self._session() as session:
            row = self._channel_row(session, channel_id)
            if row is None:
                raise UnknownChannelError(channel_id)
            row.avg_views = baseline.avg_views
            row.subscriber_count = baseline.subscriber_count
            row.total_videos = baseline.total_videos

    def mark_channel_scraped(self, channel_id: str, scraped_at: datetime) -> None:
        with self._session() as session:
            row = self._channel_row(session, channel_id)
            if row is None:
                raise UnknownChannelError(channel_id)
            row.last_scraped_at = scraped_at

    @staticmethod
    def _channel_row(session: Session, channel_id: str) -> TrackedChannelModel | None:
        return session.scalar(
            select(TrackedChannelModel).where(TrackedChannelModel.channel_id == channel_id)
        )


class SqlStateStore(_SessionScope, StateStore):
    """StateStore on the ``app_state`` table."""

    def load(self, key: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = session.get(AppStateModel, key)
            return dict(row.value) if row else None

    def save(self, key: str, value: dict[str, Any]) -> None:
        with self._session() as session:
            row = session.get(AppStateModel, key)
            if row is None:
                session.add(AppStateModel(key=key, value=value))
            else:
                row.value = value

    def update(
        self,
        key: str,
        fn: Callable[[dict[str, Any] | None], dict[str, Any]],
    ) -> dict[str, Any]:
        # SELECT ... FOR UPDATE holds the row until commit (ignored by SQLite)
        attempts = 3
        while True:
            try:
                with self._session() as session:
                    row = session.get(AppStateModel, key, with_for_update=True)
                    value = fn(dict(row.value) if row else None)
                    if row is None:
                        session.add(AppStateModel(key=key, value=value))
                        session.flush()
                    else:
                        row.value = value
                    return dict(value)
            except IntegrityError:
                # Lost the race to create the row; retry locks the winner's row
                attempts -= 1
                if attempts == 0:
                    raise
                logger.debug("state_update_insert_conflict", key=key)
