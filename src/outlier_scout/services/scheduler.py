"""Rotation scheduler.

Rotates through tracked channels in batches on a fixed interval so the daily
quota covers every channel over the course of a day. The default batch of 25
channels every 6 hours scrapes up to 100 channels a day.

State (last/next run, counters of the last run, errors and the running flag)
lives in a StateStore so a restart neither re-runs early nor loses history.
"""

import asyncio
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from outlier_scout.adapters.store.base import ScoutStore, StateStore
from outlier_scout.config import settings
from outlier_scout.logging import get_logger, log_context
from outlier_scout.services.due_queue import due_channels
from outlier_scout.services.quota import QuotaLedger
from outlier_scout.services.scraper import (
    BatchResult,
    ScraperOrchestrator,
    ScrapeOptions,
)
from outlier_scout.utils.clock import Clock, ensure_utc, utc_now

logger = get_logger(__name__)

SCHEDULER_STATE_KEY = "scheduler_state"


class InsufficientQuotaError(Exception):
    """Raised by the pre-flight check when a full batch cannot be afforded."""


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _str_to_dt(value: str | None) -> datetime | None:
    return ensure_utc(datetime.fromisoformat(value)) if value else None


@dataclass
class SchedulerState:
    """Persisted scheduler run-state."""

    is_running: bool = False
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    run_started_at: datetime | None = None
    channels_scraped: int = 0
    outliers_found: int = 0
    quota_used: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_run_at": _dt_to_str(self.last_run_at),
            "next_run_at": _dt_to_str(self.next_run_at),
            "run_started_at": _dt_to_str(self.run_started_at),
            "channels_scraped": self.channels_scraped,
            "outliers_found": self.outliers_found,
            "quota_used": self.quota_used,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SchedulerState":
        return cls(
            is_running=bool(data.get("is_running", False)),
            last_run_at=_str_to_dt(data.get("last_run_at")),
            next_run_at=_str_to_dt(data.get("next_run_at")),
            run_started_at=_str_to_dt(data.get("run_started_at")),
            channels_scraped=int(data.get("channels_scraped", 0)),
            outliers_found=int(data.get("outliers_found", 0)),
            quota_used=int(data.get("quota_used", 0)),
            errors=list(data.get("errors", [])),
        )


@dataclass
class SchedulerConfig:
    """Rotation scheduler settings."""

    batch_size: int = 25
    interval_hours: float = 6
    stale_run_minutes: int = 60
    options: ScrapeOptions = field(default_factory=ScrapeOptions)

    @classmethod
    def from_settings(cls) -> "SchedulerConfig":
        return cls(
            batch_size=settings.scheduler_batch_size,
            interval_hours=settings.scheduler_interval_hours,
            stale_run_minutes=settings.scheduler_stale_run_minutes,
            options=ScrapeOptions.from_settings(),
        )


@dataclass
class RunReport:
    """What a tick or forced run did."""

    ran: bool
    state: SchedulerState
    skipped_reason: str | None = None
    batch: BatchResult | None = None
    error: str | None = None


def format_duration_until(delta: timedelta) -> str:
    """Format a wait as "Ready to run", "45m", "3h" or "2h 5m"."""
    total_minutes = max(0, math.floor(delta.total_seconds() / 60))
    hours, minutes = divmod(total_minutes, 60)

    if hours == 0 and minutes == 0:
        return "Ready to run"
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


class RotationScheduler:
    """Periodically scrapes the most urgent batch of due channels."""

    def __init__(
        self,
        orchestrator: ScraperOrchestrator,
        store: ScoutStore,
        state_store: StateStore,
        ledger: QuotaLedger,
        config: SchedulerConfig | None = None,
        clock: Clock = utc_now,
        state_key: str = SCHEDULER_STATE_KEY,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.state_store = state_store
        self.ledger = ledger
        self.config = config or SchedulerConfig.from_settings()
        self.clock = clock
        self.state_key = state_key
        self._lock = asyncio.Lock()

    # State

    def load_state(self) -> SchedulerState:
        data = self.state_store.load(self.state_key)
        return SchedulerState.from_dict(data) if data else SchedulerState()

    def save_state(self, state: SchedulerState) -> None:
        self.state_store.save(self.state_key, state.to_dict())

    def reset(self) -> SchedulerState:
        """Clear persisted state so the next tick runs immediately."""
        state = SchedulerState()
        self.save_state(state)
        logger.info("scheduler_reset")
        return state

    def should_run(self, state: SchedulerState, now: datetime) -> bool:
        """Whether the interval gate is open (never run, or next run reached)."""
        return state.next_run_at is None or now >= state.next_run_at

    def is_run_in_progress(self, state: SchedulerState, now: datetime) -> bool:
        """Whether a persisted running flag is live.

        A flag older than ``stale_run_minutes`` (or without a start time) is
        left over from a crashed process and is ignored.
        """
        if not state.is_running:
            return False
        if state.run_started_at is None:
            return False
        age = now - state.run_started_at
        return age < timedelta(minutes=self.config.stale_run_minutes)

    def time_until_next_run(self) -> timedelta:
        state = self.load_state()
        if state.next_run_at is None:
            return timedelta(0)
        return max(timedelta(0), state.next_run_at - self.clock())

    def format_time_until_next_run(self) -> str:
        return format_duration_until(self.time_until_next_run())

    # Runs

    async def tick(self, cancel_event: asyncio.Event | None = None) -> RunReport:
        """Run a batch if the interval has elapsed and nothing else is running."""
        return await self._maybe_run(force=False, cancel_event=cancel_event)

    async def force_run(self, cancel_event: asyncio.Event | None = None) -> RunReport:
        """Run a batch now, ignoring the interval gate but not a run in progress."""
        logger.info("scheduler_force_run")
        return await self._maybe_run(force=True, cancel_event=cancel_event)

    def _claim(self, force: bool, now: datetime) -> tuple[SchedulerState, str | None, bool]:
        """Set the running flag in one atomic state update.

        Returns:
            The state after the update, the skip reason (None when the flag was
            claimed) and whether a stale flag was taken over.
        """
        outcome: dict[str, Any] = {}

        def apply(data: dict[str, Any] | None) -> dict[str, Any]:
            outcome.clear()
            state = SchedulerState.from_dict(data) if data else SchedulerState()
            if not force and not self.should_run(state, now):
                outcome["skip"] = "not_due"
            elif self.is_run_in_progress(state, now):
                outcome["skip"] = "in_progress"
            else:
                outcome["stale"] = state.is_running
                state.is_running = True
                state.run_started_at = now
            return state.to_dict()

        state = SchedulerState.from_dict(self.state_store.update(self.state_key, apply))
        return state, outcome.get("skip"), outcome.get("stale", False)

    async def _maybe_run(self, force: bool, cancel_event: asyncio.Event | None) -> RunReport:
        if self._lock.locked():
            logger.info("scheduler_skip", reason="in_progress")
            return RunReport(ran=False, state=self.load_state(), skipped_reason="in_progress")

        async with self._lock:
            now = self.clock()
            state, skip, took_over_stale = self._claim(force, now)

            if skip == "not_due":
                logger.debug(
                    "scheduler_skip",
                    reason="not_due",
                    next_run_at=_dt_to_str(state.next_run_at),
                )
                return RunReport(ran=False, state=state, skipped_reason=skip)

            if skip == "in_progress":
                logger.info(
                    "scheduler_skip",
                    reason="in_progress",
                    run_started_at=_dt_to_str(state.run_started_at),
                )
                return RunReport(ran=False, state=state, skipped_reason=skip)

            if took_over_stale:
                logger.warning("scheduler_stale_run_flag_ignored")

            with log_context(run_id=uuid.uuid4().hex[:12], forced=force):
                return await self._run(state, now, cancel_event)

    async def _run(
        self,
        state: SchedulerState,
        now: datetime,
        cancel_event: asyncio.Event | None,
    ) -> RunReport:
        """Run a batch with the running flag already claimed, then persist the outcome."""
        batch: BatchResult | None = None
        error: str | None = None
        try:
            batch = await self._run_session(now, cancel_event)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error("scheduler_run_failed", error=error)

        finished_at = self.clock()
        if batch is not None:
            summary = batch.summary
            state.last_run_at = finished_at
            state.channels_scraped = summary.total_channels
            state.outliers_found = summary.total_outliers
            state.quota_used = summary.total_quota_used
            state.errors = [
                f"{r.channel_name}: {', '.join(r.errors)}" for r in batch.results if r.errors
            ]
        else:
            state.channels_scraped = 0
            state.outliers_found = 0
            state.quota_used = 0
            state.errors = [error or "Unknown error"]

        state.next_run_at = finished_at + timedelta(hours=self.config.interval_hours)
        state.is_running = False
        state.run_started_at = None
        self.save_state(state)

        logger.info(
            "scheduler_run_completed",
            channels=state.channels_scraped,
            outliers=state.outliers_found,
            quota_used=state.quota_used,
            errors=len(state.errors),
            next_run_at=_dt_to_str(state.next_run_at),
        )
        return RunReport(ran=True, state=state, batch=batch, error=error)

    async def _run_session(
        self,
        now: datetime,
        cancel_event: asyncio.Event | None,
    ) -> BatchResult:
        """Pre-flight quota check, pick the due batch, scrape it."""
        batch_size = self.config.batch_size
        remaining = self.ledger.remaining()
        logger.info("scheduler_session_started", batch_size=batch_size, remaining_quota=remaining)

        if not self.ledger.can_scan_channels(batch_size):
            needed = self.ledger.estimate_channel_scan_cost(batch_size)
            raise InsufficientQuotaError(
                f"Insufficient quota. Need {needed} units, have {remaining}"
            )

        channels = due_channels(
            self.store.list_tracked_channels(active_only=True),
            limit=batch_size,
            now=now,
        )
        if not channels:
            logger.info("scheduler_no_channels_due")
            return BatchResult()

        logger.info("scheduler_channels_selected", count=len(channels))
        return await self.orchestrator.run_batch(channels, self.config.options, cancel_event)

    async def run_forever(
        self,
        poll_seconds: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Tick every ``poll_seconds`` until ``stop_event`` is set.

        The stop event also cancels a running batch between channels.
        """
        poll = poll_seconds if poll_seconds is not None else settings.scheduler_poll_seconds
        stop = stop_event or asyncio.Event()
        logger.info("scheduler_loop_started", poll_seconds=poll)

        while not stop.is_set():
            try:
                await self.tick(cancel_event=stop)
            except Exception:
                logger.exception("scheduler_tick_failed")

            try:
                await asyncio.wait_for(stop.wait(), timeout=poll)
            except TimeoutError:
                pass

        logger.info("scheduler_loop_stopped")
