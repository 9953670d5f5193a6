"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from outlier_scout import __version__
from outlier_scout.cli import app
from outlier_scout.services import builders
from outlier_scout.services.scheduler import SCHEDULER_STATE_KEY

runner = CliRunner()


@pytest.fixture
def wired(monkeypatch, store, state_store):
    monkeypatch.setattr(builders, "get_scout_store", lambda: store)
    monkeypatch.setattr(builders, "get_state_store", lambda: state_store)
    return store


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_channels_seed_is_idempotent(wired) -> None:
    first = runner.invoke(app, ["channels", "seed"])
    second = runner.invoke(app, ["channels", "seed"])

    assert first.exit_code == 0
    assert "Seeded 20 channels" in first.output
    assert "Seeded 0 channels" in second.output
    assert len(wired.list_tracked_channels()) == 20


def test_channels_add_and_duplicate(wired) -> None:
    args = ["channels", "add", "UCcli", "--name", "Cli Channel", "--priority", "7"]

    added = runner.invoke(app, args)
    duplicate = runner.invoke(app, args)

    assert added.exit_code == 0
    assert wired.get_tracked_channel("UCcli").priority == 7
    assert duplicate.exit_code == 1


def test_channels_list_empty(wired) -> None:
    result = runner.invoke(app, ["channels", "list"])

    assert result.exit_code == 0
    assert "No channels tracked" in result.output


def test_quota_status(wired) -> None:
    result = runner.invoke(app, ["quota", "status"])

    assert result.exit_code == 0
    assert "Quota healthy" in result.output


def test_outliers_list_rejects_unknown_status(wired) -> None:
    result = runner.invoke(app, ["outliers", "list", "--status", "bogus"])

    assert result.exit_code == 1


def test_scheduler_reset(wired, state_store) -> None:
    result = runner.invoke(app, ["scheduler", "reset"])

    assert result.exit_code == 0
    assert state_store.load(SCHEDULER_STATE_KEY)["is_running"] is False


def test_scheduler_tick_then_not_due(monkeypatch, wired) -> None:
    from conftest import FakeVideoSource, make_channel, make_video
    from outlier_scout.utils import utc_now

    source = FakeVideoSource()
    wired.add_tracked_channel(make_channel("UCcli", channel_name="CLI Channel"))
    source.add_channel("UCcli", [make_video("cli-v1", now=utc_now())])
    monkeypatch.setattr(builders, "get_video_source", lambda: source)

    first = runner.invoke(app, ["scheduler", "tick"])
    second = runner.invoke(app, ["scheduler", "tick"])

    assert first.exit_code == 0
    assert "CLI Channel" in first.output
    assert second.exit_code == 0
    assert "Skipped: not_due" in second.output
