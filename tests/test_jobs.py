"""Tests for the Celery scrape tasks (run eagerly, no broker)."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import FakeVideoSource, make_channel, make_video
from outlier_scout.domain import VideoSnapshot
from outlier_scout.jobs.scrape_tasks import (
    prune_snapshots_task,
    scheduler_force_run_task,
    scheduler_tick_task,
    scrape_single_channel_task,
)
from outlier_scout.services import builders
from outlier_scout.utils import utc_now


@pytest.fixture
def wired(monkeypatch, store, state_store) -> FakeVideoSource:
    """Point the task builders at in-memory stores and a fake source."""
    source = FakeVideoSource()
    now = utc_now()
    store.add_tracked_channel(make_channel("UCjob", channel_name="Job Channel"))
    source.add_channel("UCjob", [make_video("job-v1", now=now)])

    monkeypatch.setattr(builders, "get_scout_store", lambda: store)
    monkeypatch.setattr(builders, "get_state_store", lambda: state_store)
    monkeypatch.setattr(builders, "get_video_source", lambda: source)
    return source


class TestSchedulerTasks:
    """Rotation scheduler tasks."""

    def test_tick_runs_then_waits(self, wired, store) -> None:
        first = scheduler_tick_task.apply().get()
        second = scheduler_tick_task.apply().get()

        assert first["ran"] is True
        assert first["summary"]["total_channels"] == 1
        assert first["summary"]["total_outliers"] == 1
        assert first["state"]["next_run_at"] is not None
        assert second["ran"] is False
        assert second["skipped_reason"] == "not_due"
        assert store.get_outlier("job-v1") is not None

    def test_force_run(self, wired) -> None:
        scheduler_tick_task.apply().get()

        report = scheduler_force_run_task.apply().get()

        assert report["ran"] is True
        # The only channel was scraped moments ago and is not due
        assert report["summary"]["total_channels"] == 0


class TestScrapeSingleChannel:
    """On-demand channel scrape."""

    def test_known_channel(self, wired, store) -> None:
        data = scrape_single_channel_task.apply(args=["UCjob"]).get()

        assert data["success"] is True
        assert data["result"]["status"] == "ok"
        assert data["result"]["quota_used"] == 2
        assert store.get_tracked_channel("UCjob").last_scraped_at is not None

    def test_unknown_channel(self, wired) -> None:
        data = scrape_single_channel_task.apply(args=["UCnope"]).get()

        assert data == {"success": False, "error": "Channel not tracked: UCnope"}


def test_prune_snapshots(wired, store) -> None:
    now = utc_now()
    store.append_snapshots_bulk(
        [
            VideoSnapshot("old", "UCjob", now - timedelta(days=100)),
            VideoSnapshot("new", "UCjob", now - timedelta(days=1)),
        ]
    )

    data = prune_snapshots_task.apply(kwargs={"retention_days": 90}).get()

    assert data["deleted"] == 1
    assert store.get_video_snapshots("new") != []


def test_prune_snapshots_binds_task_id(wired) -> None:
    from outlier_scout.jobs import scrape_tasks

    with patch.object(scrape_tasks, "log_context", wraps=scrape_tasks.log_context) as bound:
        result = prune_snapshots_task.apply(kwargs={"retention_days": 90}, task_id="prune-1")

    assert result.get()["deleted"] == 0
    bound.assert_called_once_with(task_id="prune-1")


def test_beat_schedule_follows_settings() -> None:
    from celery.schedules import crontab

    from outlier_scout.config import Settings
    from outlier_scout.worker import build_beat_schedule, celery_app

    schedule = build_beat_schedule(
        Settings(scheduler_poll_seconds=120, snapshot_prune_hour_utc=4)
    )

    assert schedule["scheduler-tick"]["schedule"] == 120.0
    assert schedule["prune-snapshots-daily"]["schedule"] == crontab(minute=30, hour=4)
    assert celery_app.conf.task_routes["prune_snapshots"] == {"queue": "low"}
