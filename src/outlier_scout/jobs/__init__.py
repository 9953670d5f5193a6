"""Celery job definitions."""

from outlier_scout.jobs.scrape_tasks import (
    prune_snapshots_task,
    scheduler_force_run_task,
    scheduler_tick_task,
    scrape_single_channel_task,
)

__all__ = [
    "prune_snapshots_task",
    "scheduler_force_run_task",
    "scheduler_tick_task",
    "scrape_single_channel_task",
]
