"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["VIDEO_SOURCE_PROVIDER"] = "stub"
os.environ["LOG_LEVEL"] = "WARNING"

from outlier_scout.adapters.store.memory import InMemoryScoutStore, InMemoryStateStore  # noqa: E402
from outlier_scout.adapters.video_source.base import (  # noqa: E402
    ChannelStats,
    VideoMetadata,
    VideoSourceAdapter,
)
from outlier_scout.domain import TrackedChannel  # noqa: E402
from outlier_scout.services.quota import QuotaLedger  # noqa: E402

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


class SlowStateStore(InMemoryStateStore):
    """State store whose reads take as long as a database round trip."""

    def load(self, key):
        time.sleep(0.002)
        return super().load(key)


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeVideoSource(VideoSourceAdapter):
    """Video source serving canned channels and recording calls."""

    def __init__(self) -> None:
        self.stats: dict[str, ChannelStats | None] = {}
        self.videos: dict[str, list[VideoMetadata]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def add_channel(
        self,
        channel_id: str,
        videos: list[VideoMetadata],
        total_videos: int = 100,
        view_count: int = 1_000_000,
    ) -> None:
        self.stats[channel_id] = ChannelStats(
            channel_id=channel_id,
            subscriber_count=50_000,
            total_videos=total_videos,
            view_count=view_count,
        )
        self.videos[channel_id] = videos

    async def fetch_channel_stats(self, channel_id: str) -> ChannelStats | None:
        self.calls.append(("stats", channel_id))
        if channel_id in self.errors:
            raise self.errors[channel_id]
        return self.stats.get(channel_id)

    async def fetch_latest_videos(self, channel_id: str, limit: int) -> list[VideoMetadata]:
        self.calls.append(("videos", channel_id))
        return self.videos.get(channel_id, [])[:limit]


def make_video(
    video_id: str,
    views: int = 50_000,
    likes: int = 2_500,
    comments: int = 500,
    age_hours: float = 24,
    now: datetime = NOW,
) -> VideoMetadata:
    return VideoMetadata(
        id=video_id,
        title=f"Video {video_id}",
        published_at=now - timedelta(hours=age_hours),
        views=views,
        likes=likes,
        comments=comments,
        thumbnail_url=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
        duration_seconds=600,
    )


def make_channel(channel_id: str, **kwargs) -> TrackedChannel:
    kwargs.setdefault("channel_name", f"Channel {channel_id}")
    kwargs.setdefault("avg_views", 10_000)
    return TrackedChannel(channel_id=channel_id, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at NOW."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryScoutStore:
    return InMemoryScoutStore()


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def ledger(state_store: InMemoryStateStore, clock: FakeClock) -> QuotaLedger:
    """A 10,000 unit ledger on UTC days."""
    return QuotaLedger(state_store, limit=10_000, clock=clock, timezone="UTC")


@pytest.fixture
def source() -> FakeVideoSource:
    return FakeVideoSource()


@pytest.fixture
def sql_session_factory() -> Generator:
    """Session factory on a fresh in-memory SQLite schema."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from outlier_scout.db.models import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
