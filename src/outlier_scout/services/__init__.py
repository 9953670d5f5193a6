"""Application services."""

from outlier_scout.services.due_queue import due_channels, due_sort_key
from outlier_scout.services.quota import QuotaExhaustedError, QuotaLedger, QuotaUsage
from outlier_scout.services.scheduler import (
    RotationScheduler,
    RunReport,
    SchedulerConfig,
    SchedulerState,
)
from outlier_scout.services.scoring import OutlierScore, VideoMetrics, score_video
from outlier_scout.services.scraper import (
    BatchResult,
    BatchSummary,
    ScrapeOptions,
    ScrapeResult,
    ScraperOrchestrator,
)
from outlier_scout.services.velocity import analyze, velocity_to_score

__all__ = [
    "BatchResult",
    "BatchSummary",
    "OutlierScore",
    "QuotaExhaustedError",
    "QuotaLedger",
    "QuotaUsage",
    "RotationScheduler",
    "RunReport",
    "SchedulerConfig",
    "SchedulerState",
    "ScrapeOptions",
    "ScrapeResult",
    "ScraperOrchestrator",
    "VideoMetrics",
    "analyze",
    "due_channels",
    "due_sort_key",
    "score_video",
    "velocity_to_score",
]
