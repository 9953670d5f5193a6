"""Celery tasks for scheduled and on-demand scraping."""

from datetime import timedelta
from typing import Any

from outlier_scout.config import settings
from outlier_scout.logging import get_logger, log_context
from outlier_scout.services import builders
from outlier_scout.services.scheduler import RotationScheduler, RunReport
from outlier_scout.services.scraper import ScrapeResult, summarize
from outlier_scout.utils import run_async, utc_now
from outlier_scout.worker import celery_app

logger = get_logger(__name__)


def report_to_dict(report: RunReport) -> dict[str, Any]:
    """Serialize a RunReport for the result backend."""
    data: dict[str, Any] = {
        "ran": report.ran,
        "skipped_reason": report.skipped_reason,
        "error": report.error,
        "state": report.state.to_dict(),
    }
    if report.batch is not None:
        summary = report.batch.summary
        data["stop_reason"] = report.batch.stop_reason
        data["skipped_channels"] = report.batch.skipped_channels
        data["summary"] = {
            "total_channels": summary.total_channels,
            "total_videos": summary.total_videos,
            "total_outliers": summary.total_outliers,
            "total_snapshots": summary.total_snapshots,
            "total_quota_used": summary.total_quota_used,
            "total_errors": summary.total_errors,
            "channels_with_errors": summary.channels_with_errors,
        }
    return data


def result_to_dict(result: ScrapeResult) -> dict[str, Any]:
    return {
        "channel_id": result.channel_id,
        "channel_name": result.channel_name,
        "status": result.status,
        "videos_scraped": result.videos_scraped,
        "outliers_detected": result.outliers_detected,
        "snapshots_stored": result.snapshots_stored,
        "quota_used": result.quota_used,
        "errors": list(result.errors),
    }


async def _run_scheduler(force: bool) -> RunReport:
    scheduler: RotationScheduler = builders.build_scheduler()
    try:
        if force:
            return await scheduler.force_run()
        return await scheduler.tick()
    finally:
        await scheduler.orchestrator.source.close()


def _log_report(event: str, report: RunReport) -> None:
    logger.info(
        event,
        ran=report.ran,
        skipped_reason=report.skipped_reason,
        error=report.error,
    )


@celery_app.task(bind=True, name="scheduler_tick")
def scheduler_tick_task(self: Any) -> dict[str, Any]:
    """Run a rotation batch if one is due.

    Returns:
        Serialized RunReport.
    """
    with log_context(task_id=self.request.id):
        logger.info("scheduler_tick_started")
        report = run_async(_run_scheduler(force=False))
        _log_report("scheduler_tick_completed", report)
    return report_to_dict(report)


@celery_app.task(bind=True, name="scheduler_force_run")
def scheduler_force_run_task(self: Any) -> dict[str, Any]:
    """Run a rotation batch now, ignoring the interval gate."""
    with log_context(task_id=self.request.id):
        logger.info("scheduler_force_run_started")
        report = run_async(_run_scheduler(force=True))
        _log_report("scheduler_force_run_completed", report)
    return report_to_dict(report)


@celery_app.task(bind=True, name="scrape_single_channel")
def scrape_single_channel_task(self: Any, channel_id: str) -> dict[str, Any]:
    """Scrape one tracked channel immediately, outside the rotation.

    Args:
        channel_id: Platform ID of a tracked channel.

    Returns:
        Serialized ScrapeResult, or an error dict if the channel is unknown.
    """
    with log_context(task_id=self.request.id, channel_id=channel_id):
        logger.info("scrape_single_channel_started")

        store = builders.get_scout_store()
        channel = store.get_tracked_channel(channel_id)
        if channel is None:
            logger.warning("scrape_single_channel_unknown")
            return {"success": False, "error": f"Channel not tracked: {channel_id}"}

        async def _scrape() -> ScrapeResult:
            scheduler = builders.build_scheduler(store=store)
            try:
                return await scheduler.orchestrator.scrape_channel(
                    channel, scheduler.config.options
                )
            finally:
                await scheduler.orchestrator.source.close()

        result = run_async(_scrape())
        summary = summarize([result])

        logger.info(
            "scrape_single_channel_completed",
            status=result.status,
            outliers=summary.total_outliers,
            errors=summary.total_errors,
        )
    return {"success": True, "result": result_to_dict(result)}


@celery_app.task(bind=True, name="prune_snapshots")
def prune_snapshots_task(self: Any, retention_days: int | None = None) -> dict[str, Any]:
    """Delete video snapshots older than the retention window.

    Args:
        retention_days: Days to keep (defaults to SNAPSHOT_RETENTION_DAYS).

    Returns:
        Dict with the cutoff and number of deleted snapshots.
    """
    days = retention_days if retention_days is not None else settings.snapshot_retention_days
    cutoff = utc_now() - timedelta(days=days)

    with log_context(task_id=self.request.id):
        deleted = builders.get_scout_store().delete_old_snapshots(cutoff)
        logger.info("prune_snapshots_completed", retention_days=days, deleted=deleted)
    return {"cutoff": cutoff.isoformat(), "deleted": deleted}
