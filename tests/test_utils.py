"""Tests for the sync-to-async bridge and clock helpers."""

import asyncio
from datetime import UTC, datetime, timedelta, timezone

import pytest

from outlier_scout.utils import run_async
from outlier_scout.utils.clock import ensure_utc


async def _current_loop() -> asyncio.AbstractEventLoop:
    return asyncio.get_running_loop()


def test_run_async_reuses_thread_loop() -> None:
    first = run_async(_current_loop())
    second = run_async(_current_loop())

    assert first is second
    assert not first.is_closed()


@pytest.mark.asyncio
async def test_run_async_refuses_running_loop() -> None:
    with pytest.raises(RuntimeError, match="running event loop"):
        run_async(_current_loop())


def test_ensure_utc() -> None:
    naive = datetime(2026, 3, 10, 12)
    offset = datetime(2026, 3, 10, 14, tzinfo=timezone(timedelta(hours=2)))

    assert ensure_utc(naive) == datetime(2026, 3, 10, 12, tzinfo=UTC)
    assert ensure_utc(offset) == datetime(2026, 3, 10, 12, tzinfo=UTC)
    assert ensure_utc(offset).tzinfo is UTC
