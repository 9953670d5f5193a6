"""Celery worker configuration."""

from typing import Any

from celery import Celery
from celery.schedules import crontab

from outlier_scout.config import Settings, settings
from outlier_scout.logging import setup_logging

setup_logging()

SCRAPE_QUEUE = "scrape"
LOW_QUEUE = "low"


def build_beat_schedule(config: Settings) -> dict[str, Any]:
    """Periodic tasks: the rotation gate check and the daily snapshot prune."""
    return {
        # Gate check only; a batch runs when next_run_at has passed
        "scheduler-tick": {
            "task": "scheduler_tick",
            "schedule": float(config.scheduler_poll_seconds),
            "options": {"queue": SCRAPE_QUEUE},
        },
        "prune-snapshots-daily": {
            "task": "prune_snapshots",
            "schedule": crontab(minute=30, hour=config.snapshot_prune_hour_utc),
            "options": {"queue": LOW_QUEUE},
        },
    }


celery_app = Celery(
    "outlier_scout",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Hard limit matches the stale running-flag window
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=settings.scheduler_stale_run_minutes * 60,
    task_soft_time_limit=settings.scheduler_stale_run_minutes * 60 - 300,
    # One scrape per worker process at a time
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    result_expires=86400,  # 24 hours
    task_default_queue=SCRAPE_QUEUE,
    task_routes={
        "scheduler_tick": {"queue": SCRAPE_QUEUE},
        "scheduler_force_run": {"queue": SCRAPE_QUEUE},
        "scrape_single_channel": {"queue": SCRAPE_QUEUE},
        "prune_snapshots": {"queue": LOW_QUEUE},
    },
    beat_schedule=build_beat_schedule(settings),
)

celery_app.autodiscover_tasks(["outlier_scout.jobs"])
