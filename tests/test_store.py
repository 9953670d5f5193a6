"""Tests for the in-memory and SQL stores."""

from dataclasses import replace
from datetime import timedelta

import pytest

from conftest import NOW, make_channel
from outlier_scout.adapters.store.base import (
    DuplicateChannelError,
    ScoutStore,
    StateStore,
    UnknownChannelError,
)
from outlier_scout.adapters.store.memory import InMemoryScoutStore, InMemoryStateStore
from outlier_scout.adapters.store.sql import SqlScoutStore, SqlStateStore
from outlier_scout.domain import ChannelBaseline, Outlier, OutlierStatus, VideoSnapshot


@pytest.fixture(params=["memory", "sql"])
def scout_store(request, sql_session_factory) -> ScoutStore:
    if request.param == "memory":
        return InMemoryScoutStore()
    return SqlScoutStore(sql_session_factory)


@pytest.fixture(params=["memory", "sql"])
def any_state_store(request, sql_session_factory) -> StateStore:
    if request.param == "memory":
        return InMemoryStateStore()
    return SqlStateStore(sql_session_factory)


def _outlier(video_id: str = "vid1", score: int = 7, views: int = 50_000, at=NOW) -> Outlier:
    return Outlier(
        video_id=video_id,
        channel_id="UCabc",
        channel_name="Channel UCabc",
        title=f"Video {video_id}",
        outlier_score=score,
        detected_at=at,
        last_updated_at=at,
        first_seen_views=views,
        views=views,
        multiplier=5.0,
    )


def _snapshot(video_id: str, hours: float, views: int) -> VideoSnapshot:
    return VideoSnapshot(
        video_id=video_id,
        channel_id="UCabc",
        snapshot_at=NOW + timedelta(hours=hours),
        views=views,
    )


def test_upsert_is_idempotent_on_first_detection(scout_store: ScoutStore) -> None:
    """Re-detection refreshes metrics but keeps the first-seen fields."""
    scout_store.upsert_outlier(_outlier())
    later = NOW + timedelta(hours=6)

    stored = scout_store.upsert_outlier(
        replace(_outlier(score=9, views=80_000, at=later), multiplier=8.0)
    )

    assert stored.detected_at == NOW
    assert stored.first_seen_views == 50_000
    assert stored.last_updated_at == later
    assert stored.views == 80_000
    assert stored.outlier_score == 9
    assert stored.multiplier == 8.0
    assert scout_store.get_outlier("vid1") == stored


def test_upsert_keeps_reviewer_fields(scout_store: ScoutStore) -> None:
    scout_store.upsert_outlier(_outlier())
    scout_store.update_outlier("vid1", status=OutlierStatus.ANALYZED, priority=9, notes="Hook")
    scout_store.mark_outlier_viewed("vid1")

    stored = scout_store.upsert_outlier(_outlier(views=60_000, at=NOW + timedelta(hours=1)))

    assert stored.status == OutlierStatus.ANALYZED
    assert stored.priority == 9
    assert stored.notes == "Hook"
    assert stored.is_new is False


def test_list_outliers_filters_and_order(scout_store: ScoutStore) -> None:
    scout_store.upsert_outlier(_outlier("a", score=6))
    scout_store.upsert_outlier(_outlier("b", score=9))
    scout_store.upsert_outlier(_outlier("c", score=9, at=NOW + timedelta(minutes=5)))
    scout_store.upsert_outlier(_outlier("d", score=8))
    scout_store.update_outlier("d", status=OutlierStatus.DISMISSED)
    scout_store.mark_outlier_viewed("b")

    assert [o.video_id for o in scout_store.list_outliers()] == ["c", "b", "a"]
    assert [o.video_id for o in scout_store.list_outliers(only_new=True)] == ["c", "a"]
    assert [o.video_id for o in scout_store.list_outliers(min_score=7)] == ["c", "b"]
    assert [o.video_id for o in scout_store.list_outliers(limit=1)] == ["c"]
    assert [o.video_id for o in scout_store.list_outliers(status=None)] == ["c", "b", "d", "a"]
    assert [
        o.video_id for o in scout_store.list_outliers(status=OutlierStatus.DISMISSED)
    ] == ["d"]


def test_missing_outlier(scout_store: ScoutStore) -> None:
    assert scout_store.get_outlier("nope") is None
    assert scout_store.mark_outlier_viewed("nope") is False
    assert scout_store.update_outlier("nope", notes="x") is None


def test_snapshots_append_and_query(scout_store: ScoutStore) -> None:
    written = scout_store.append_snapshots_bulk(
        [_snapshot("vid1", 0, 1_000), _snapshot("vid1", 2, 5_000), _snapshot("vid2", 1, 10)]
    )

    assert written == 3
    assert [s.views for s in scout_store.get_video_snapshots("vid1")] == [5_000, 1_000]
    assert scout_store.get_latest_snapshot("vid1").views == 5_000
    assert scout_store.get_latest_snapshot("vid1").snapshot_at == NOW + timedelta(hours=2)
    assert scout_store.get_video_snapshots("vid1", limit=1)[0].views == 5_000
    assert scout_store.get_latest_snapshot("missing") is None


def test_snapshot_duplicates_are_skipped(scout_store: ScoutStore) -> None:
    scout_store.append_snapshots_bulk([_snapshot("vid1", 0, 1_000)])

    written = scout_store.append_snapshots_bulk(
        [_snapshot("vid1", 0, 2_000), _snapshot("vid1", 1, 3_000)]
    )

    assert written == 1
    assert [s.views for s in scout_store.get_video_snapshots("vid1")] == [3_000, 1_000]
    assert scout_store.append_snapshots_bulk([]) == 0


def test_delete_old_snapshots(scout_store: ScoutStore) -> None:
    scout_store.append_snapshots_bulk(
        [_snapshot("vid1", -48, 1), _snapshot("vid1", -1, 2), _snapshot("vid2", -72, 3)]
    )

    deleted = scout_store.delete_old_snapshots(NOW - timedelta(hours=24))

    assert deleted == 2
    assert [s.views for s in scout_store.get_video_snapshots("vid1")] == [2]
    assert scout_store.get_video_snapshots("vid2") == []


def test_channels(scout_store: ScoutStore) -> None:
    scout_store.add_tracked_channel(make_channel("UClow", priority=2, tags=["ai"]))
    scout_store.add_tracked_channel(make_channel("UChigh", priority=9))
    scout_store.add_tracked_channel(make_channel("UCoff", priority=10, active=False))

    assert [c.channel_id for c in scout_store.list_tracked_channels()] == ["UChigh", "UClow"]
    assert [c.channel_id for c in scout_store.list_tracked_channels(active_only=False)] == [
        "UCoff",
        "UChigh",
        "UClow",
    ]
    assert scout_store.get_tracked_channel("UClow").tags == ["ai"]
    assert scout_store.get_tracked_channel("UCnope") is None

    with pytest.raises(DuplicateChannelError):
        scout_store.add_tracked_channel(make_channel("UClow"))


def test_channel_baseline_and_scrape_stamp(scout_store: ScoutStore) -> None:
    scout_store.add_tracked_channel(make_channel("UCabc", avg_views=0))

    scout_store.update_channel_baseline("UCabc", ChannelBaseline(12_000, 300_000, 250))
    scout_store.mark_channel_scraped("UCabc", NOW)

    channel = scout_store.get_tracked_channel("UCabc")
    assert channel.avg_views == 12_000
    assert channel.subscriber_count == 300_000
    assert channel.total_videos == 250
    assert channel.last_scraped_at == NOW

    with pytest.raises(UnknownChannelError):
        scout_store.mark_channel_scraped("UCnope", NOW)
    with pytest.raises(UnknownChannelError):
        scout_store.update_channel_baseline("UCnope", ChannelBaseline(1, 1, 1))


def test_state_store_round_trip(any_state_store: StateStore) -> None:
    assert any_state_store.load("quota_usage") is None

    any_state_store.save("quota_usage", {"date": "2026-03-10", "used": 5, "operations": []})
    any_state_store.save("quota_usage", {"date": "2026-03-10", "used": 7, "operations": [1]})

    assert any_state_store.load("quota_usage") == {
        "date": "2026-03-10",
        "used": 7,
        "operations": [1],
    }


def test_state_store_update(any_state_store: StateStore) -> None:
    seen = []

    def bump(current):
        seen.append(current)
        count = current["count"] if current else 0
        return {"count": count + 1}

    assert any_state_store.update("counter", bump) == {"count": 1}
    assert any_state_store.update("counter", bump) == {"count": 2}

    assert seen == [None, {"count": 1}]
    assert any_state_store.load("counter") == {"count": 2}


def test_state_store_update_error_keeps_document(any_state_store: StateStore) -> None:
    any_state_store.save("counter", {"count": 3})

    def broken(current):
        raise ValueError("bad document")

    with pytest.raises(ValueError):
        any_state_store.update("counter", broken)

    assert any_state_store.load("counter") == {"count": 3}


def test_memory_store_returns_copies() -> None:
    store = InMemoryScoutStore([make_channel("UCabc")])

    channel = store.get_tracked_channel("UCabc")
    channel.priority = 1
    channel.tags.append("mutated")

    stored = store.get_tracked_channel("UCabc")
    assert stored.priority == 5
    assert stored.tags == []
