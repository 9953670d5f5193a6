"""Tests for domain models."""

from datetime import timedelta

from conftest import NOW
from outlier_scout.adapters.video_source.base import ChannelStats
from outlier_scout.db.seed import SEED_AVG_VIEWS, seed_channels
from outlier_scout.domain import Outlier, OutlierStatus, ScrapeStatus, TrackedChannel


def test_tracked_channel_defaults() -> None:
    """A new channel is active, never scraped and mid priority."""
    channel = TrackedChannel(channel_id="UCabc", channel_name="Abc")

    assert channel.active is True
    assert channel.last_scraped_at is None
    assert channel.priority == 5
    assert channel.refresh_interval_seconds == 21600
    assert channel.tags == []


def test_tracked_channel_priority_is_clamped() -> None:
    assert TrackedChannel("UCa", "A", priority=42).priority == 10
    assert TrackedChannel("UCb", "B", priority=-3).priority == 1


def test_outlier_merge_keeps_first_detection() -> None:
    first = Outlier(
        video_id="vid1",
        channel_id="UCabc",
        channel_name="Abc",
        title="Old title",
        outlier_score=6,
        detected_at=NOW,
        last_updated_at=NOW,
        first_seen_views=10_000,
        views=10_000,
        status=OutlierStatus.ANALYZED,
        is_new=False,
        priority=8,
        notes="Keep",
    )
    later = NOW + timedelta(hours=3)
    incoming = Outlier(
        video_id="vid1",
        channel_id="UCabc",
        channel_name="Abc",
        title="New title",
        outlier_score=9,
        detected_at=later,
        last_updated_at=later,
        first_seen_views=30_000,
        views=30_000,
    )

    merged = first.merged_with(incoming)

    assert merged.title == "New title"
    assert merged.outlier_score == 9
    assert merged.views == 30_000
    assert merged.last_updated_at == later
    assert merged.detected_at == NOW
    assert merged.first_seen_views == 10_000
    assert merged.status == OutlierStatus.ANALYZED
    assert merged.is_new is False
    assert merged.priority == 8
    assert merged.notes == "Keep"


def test_avg_views_hint() -> None:
    assert ChannelStats("UCa", total_videos=10, view_count=1_000).avg_views_hint == 100
    assert ChannelStats("UCa", total_videos=0, view_count=1_000).avg_views_hint is None


def test_enum_values() -> None:
    assert ScrapeStatus.QUOTA_BLOCKED == "quota_blocked"
    assert OutlierStatus("dismissed") is OutlierStatus.DISMISSED


def test_seed_channels() -> None:
    channels = seed_channels(refresh_interval_seconds=3600)

    assert len(channels) == 20
    assert len({c.channel_id for c in channels}) == 20
    assert all(c.last_scraped_at is None for c in channels)
    assert all(c.refresh_interval_seconds == 3600 for c in channels)
    assert all(c.avg_views == SEED_AVG_VIEWS for c in channels)
    assert max(c.priority for c in channels) == 10
