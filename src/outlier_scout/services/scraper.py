"""Channel scraping orchestration.

Refreshes tracked channels one at a time:

1. Gate on quota, fetch channel stats, debit
2. Gate on quota, fetch the latest uploads, debit
3. Score every video against the channel baseline (each video isolated)
4. Persist snapshots in bulk, upsert outliers, update the baseline, stamp the scrape

Failures never escape ``scrape_channel``; they are recorded on the result.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

import structlog

from outlier_scout.adapters.store.base import ScoutStore
from outlier_scout.adapters.video_source.base import (
    ChannelStats,
    VideoMetadata,
    VideoSourceAdapter,
)
from outlier_scout.adapters.video_source.youtube import YouTubeAPIError, YouTubeErrorType
from outlier_scout.config import settings
from outlier_scout.domain import (
    BatchStopReason,
    ChannelBaseline,
    Outlier,
    ScrapeStatus,
    TrackedChannel,
    VideoSnapshot,
)
from outlier_scout.logging import get_logger
from outlier_scout.services.quota import (
    CHANNEL_STATS_OPERATION,
    VIDEO_LIST_OPERATION,
    QuotaExhaustedError,
    QuotaLedger,
    cost_of,
)
from outlier_scout.services.scoring import OutlierScore, VideoMetrics, score_video
from outlier_scout.services.velocity import velocity_between
from outlier_scout.utils.clock import Clock, utc_now

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_AVG_VIEWS = 10000


class ChannelScrapeError(Exception):
    """Channel-level failure that stops the rest of that channel's scrape."""


@dataclass
class ScrapeOptions:
    """Per-run scraping options."""

    max_videos_per_channel: int = 5
    min_outlier_score: int = 6
    store_all_snapshots: bool = False

    @classmethod
    def from_settings(cls) -> "ScrapeOptions":
        return cls(
            max_videos_per_channel=settings.scrape_max_videos_per_channel,
            min_outlier_score=settings.scrape_min_outlier_score,
            store_all_snapshots=settings.scrape_store_all_snapshots,
        )


@dataclass(frozen=True)
class VideoProcessed:
    """A video that was scored successfully."""

    video_id: str
    score: OutlierScore
    snapshot: VideoSnapshot
    keep_snapshot: bool
    outlier: Outlier | None = None


@dataclass(frozen=True)
class VideoFailed:
    """A video whose processing raised."""

    video_id: str
    error: str


VideoOutcome = VideoProcessed | VideoFailed


@dataclass
class ScrapeResult:
    """Outcome of scraping one channel."""

    channel_id: str
    channel_name: str
    status: ScrapeStatus = ScrapeStatus.OK
    videos_scraped: int = 0
    outliers_detected: int = 0
    snapshots_stored: int = 0
    quota_used: int = 0
    errors: list[str] = field(default_factory=list)
    outcomes: list[VideoOutcome] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate counters across a batch of channel scrapes."""

    total_channels: int = 0
    total_videos: int = 0
    total_outliers: int = 0
    total_snapshots: int = 0
    total_quota_used: int = 0
    total_errors: int = 0
    channels_with_errors: int = 0


@dataclass
class BatchResult:
    """Results of a batch plus why it stopped early, if it did."""

    results: list[ScrapeResult] = field(default_factory=list)
    stop_reason: BatchStopReason | None = None
    skipped_channels: int = 0

    @property
    def summary(self) -> BatchSummary:
        return summarize(self.results)


def summarize(results: list[ScrapeResult]) -> BatchSummary:
    """Aggregate channel results into a summary."""
    return BatchSummary(
        total_channels=len(results),
        total_videos=sum(r.videos_scraped for r in results),
        total_outliers=sum(r.outliers_detected for r in results),
        total_snapshots=sum(r.snapshots_stored for r in results),
        total_quota_used=sum(r.quota_used for r in results),
        total_errors=sum(len(r.errors) for r in results),
        channels_with_errors=sum(1 for r in results if r.errors),
    )


class ScraperOrchestrator:
    """Runs quota-gated scrapes of tracked channels."""

    def __init__(
        self,
        source: VideoSourceAdapter,
        store: ScoutStore,
        ledger: QuotaLedger,
        clock: Clock = utc_now,
        min_viable_quota: int = 100,
        inter_channel_delay: float = 0.5,
        fetch_timeout: float | None = 30,
        default_avg_views: int = DEFAULT_AVG_VIEWS,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            source: Upstream video source.
            store: Channel, snapshot and outlier store.
            ledger: Daily quota ledger gating every fetch.
            clock: Source of the current instant.
            min_viable_quota: Remaining units below which a batch stops.
            inter_channel_delay: Seconds to pause between channels.
            fetch_timeout: Per-fetch timeout in seconds (None disables).
            default_avg_views: Baseline when neither the channel nor its stats provide one.
        """
        self.source = source
        self.store = store
        self.ledger = ledger
        self.clock = clock
        self.min_viable_quota = min_viable_quota
        self.inter_channel_delay = inter_channel_delay
        self.fetch_timeout = fetch_timeout
        self.default_avg_views = default_avg_views

    async def _fetch(self, awaitable: Awaitable[T]) -> T:
        if self.fetch_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.fetch_timeout)

    def _require_quota(self, operation: str) -> None:
        cost = cost_of(operation)
        if not self.ledger.can_afford(cost):
            raise QuotaExhaustedError(operation, cost, self.ledger.remaining())

    def _debit(self, result: ScrapeResult, operation: str) -> None:
        cost = cost_of(operation)
        self.ledger.debit(operation, cost)
        result.quota_used += cost

    def resolve_avg_views(self, channel: TrackedChannel, stats: ChannelStats) -> int:
        """Baseline for scoring: stored average, else lifetime average, else the default."""
        if channel.avg_views > 0:
            return channel.avg_views
        hint = stats.avg_views_hint
        if hint and hint > 0:
            return int(hint) or self.default_avg_views
        return self.default_avg_views

    async def scrape_channel(
        self,
        channel: TrackedChannel,
        options: ScrapeOptions | None = None,
    ) -> ScrapeResult:
        """Scrape one channel. Never raises; problems are recorded on the result.

        Args:
            channel: Channel to refresh.
            options: Scraping options (defaults from settings).

        Returns:
            ScrapeResult describing what was fetched, scored and stored.
        """
        options = options or ScrapeOptions.from_settings()
        result = ScrapeResult(channel_id=channel.channel_id, channel_name=channel.channel_name)
        log = logger.bind(channel_id=channel.channel_id, channel_name=channel.channel_name)
        log.info("scrape_channel_started")

        try:
            self._require_quota(CHANNEL_STATS_OPERATION)
            stats = await self._fetch(self.source.fetch_channel_stats(channel.channel_id))
            self._debit(result, CHANNEL_STATS_OPERATION)
            if stats is None:
                raise ChannelScrapeError("Channel not found")

            avg_views = self.resolve_avg_views(channel, stats)

            self._require_quota(VIDEO_LIST_OPERATION)
            videos = await self._fetch(
                self.source.fetch_latest_videos(
                    channel.channel_id, options.max_videos_per_channel
                )
            )
            self._debit(result, VIDEO_LIST_OPERATION)
        except QuotaExhaustedError as e:
            result.status = ScrapeStatus.QUOTA_BLOCKED
            result.errors.append(f"Scrape failed: {e}")
            log.warning("scrape_channel_quota_blocked", operation=e.operation, remaining=e.remaining)
            return result
        except YouTubeAPIError as e:
            if e.error_type == YouTubeErrorType.QUOTA_EXCEEDED:
                result.status = ScrapeStatus.QUOTA_BLOCKED
            else:
                result.status = ScrapeStatus.FAILED
            result.errors.append(f"Scrape failed: {e}")
            log.error("scrape_channel_failed", error=str(e), error_type=e.error_type)
            return result
        except TimeoutError:
            result.status = ScrapeStatus.FAILED
            result.errors.append(f"Scrape failed: fetch timed out after {self.fetch_timeout}s")
            log.error("scrape_channel_timeout", timeout=self.fetch_timeout)
            return result
        except Exception as e:
            result.status = ScrapeStatus.FAILED
            result.errors.append(f"Scrape failed: {e}")
            log.error("scrape_channel_failed", error=str(e))
            return result

        result.videos_scraped = len(videos)
        now = self.clock()

        for video in videos:
            outcome = self._process_video(channel, video, avg_views, now, options)
            result.outcomes.append(outcome)
            if isinstance(outcome, VideoFailed):
                result.errors.append(f"Video {outcome.video_id}: {outcome.error}")
                log.warning("scrape_video_failed", video_id=outcome.video_id, error=outcome.error)

        self._persist(channel, stats, avg_views, now, result, log)

        if not videos and not result.errors:
            result.status = ScrapeStatus.NO_VIDEOS
        elif result.errors:
            result.status = ScrapeStatus.PARTIAL
        else:
            result.status = ScrapeStatus.OK

        log.info(
            "scrape_channel_completed",
            status=result.status,
            videos=result.videos_scraped,
            outliers=result.outliers_detected,
            snapshots=result.snapshots_stored,
            quota_used=result.quota_used,
            errors=len(result.errors),
        )
        return result

    def _process_video(
        self,
        channel: TrackedChannel,
        video: VideoMetadata,
        avg_views: int,
        now: datetime,
        options: ScrapeOptions,
    ) -> VideoOutcome:
        """Score one video into a snapshot and, above threshold, an outlier."""
        try:
            views = max(0, video.views)
            likes = max(0, video.likes)
            comments = max(0, video.comments)

            current = VideoSnapshot(
                video_id=video.id,
                channel_id=channel.channel_id,
                snapshot_at=now,
                views=views,
                likes=likes,
                comments=comments,
            )
            previous = self.store.get_latest_snapshot(video.id)
            pairwise_velocity = velocity_between(current, previous) if previous else 0.0

            score = score_video(
                VideoMetrics(
                    video_id=video.id,
                    channel_id=channel.channel_id,
                    views=views,
                    likes=likes,
                    comments=comments,
                    published_at=video.published_at,
                    channel_avg_views=avg_views,
                ),
                now,
            )
            velocity_score = pairwise_velocity or score.velocity_score

            snapshot = VideoSnapshot(
                video_id=video.id,
                channel_id=channel.channel_id,
                snapshot_at=now,
                views=views,
                likes=likes,
                comments=comments,
                published_at=video.published_at,
                title=video.title,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration_seconds,
                engagement_ratio=score.engagement_ratio,
                velocity_score=velocity_score,
                multiplier=score.multiplier,
                outlier_score=score.outlier_score,
            )

            outlier = None
            if score.outlier_score >= options.min_outlier_score:
                outlier = Outlier(
                    video_id=video.id,
                    channel_id=channel.channel_id,
                    channel_name=channel.channel_name,
                    title=video.title,
                    outlier_score=score.outlier_score,
                    detected_at=now,
                    last_updated_at=now,
                    first_seen_views=views,
                    thumbnail_url=video.thumbnail_url,
                    published_at=video.published_at,
                    duration=video.duration_seconds,
                    views=views,
                    likes=likes,
                    comments=comments,
                    multiplier=score.multiplier,
                    velocity_score=velocity_score,
                    engagement_ratio=score.engagement_ratio,
                )

            return VideoProcessed(
                video_id=video.id,
                score=score,
                snapshot=snapshot,
                keep_snapshot=score.is_outlier or options.store_all_snapshots,
                outlier=outlier,
            )
        except Exception as e:
            return VideoFailed(video_id=video.id, error=str(e) or type(e).__name__)

    def _persist(
        self,
        channel: TrackedChannel,
        stats: ChannelStats,
        avg_views: int,
        now: datetime,
        result: ScrapeResult,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Write results; each step is isolated from the others."""
        processed = [o for o in result.outcomes if isinstance(o, VideoProcessed)]
        snapshots = [o.snapshot for o in processed if o.keep_snapshot]
        outliers = [o.outlier for o in processed if o.outlier is not None]

        if snapshots:
            try:
                result.snapshots_stored = self.store.append_snapshots_bulk(snapshots)
            except Exception as e:
                result.errors.append(f"Snapshot insert failed: {e}")
                log.error("snapshot_insert_failed", error=str(e), count=len(snapshots))

        for outlier in outliers:
            try:
                self.store.upsert_outlier(outlier)
                result.outliers_detected += 1
            except Exception as e:
                result.errors.append(f"Outlier upsert failed for {outlier.video_id}: {e}")
                log.error("outlier_upsert_failed", video_id=outlier.video_id, error=str(e))

        try:
            self.store.update_channel_baseline(
                channel.channel_id,
                ChannelBaseline(
                    avg_views=avg_views,
                    subscriber_count=stats.subscriber_count,
                    total_videos=stats.total_videos,
                ),
            )
        except Exception as e:
            result.errors.append(f"Channel stats update failed: {e}")
            log.error("channel_baseline_update_failed", error=str(e))

        try:
            self.store.mark_channel_scraped(channel.channel_id, now)
        except Exception as e:
            result.errors.append(f"Mark scraped failed: {e}")
            log.error("mark_channel_scraped_failed", error=str(e))

    async def run_batch(
        self,
        channels: list[TrackedChannel],
        options: ScrapeOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Scrape channels in the given order until done, out of quota or cancelled.

        Args:
            channels: Channels to scrape, already in priority order.
            options: Scraping options shared by every channel.
            cancel_event: Set to stop before the next channel.

        Returns:
            BatchResult with per-channel results and the stop reason, if any.
        """
        options = options or ScrapeOptions.from_settings()
        batch = BatchResult()

        for index, channel in enumerate(channels):
            if cancel_event is not None and cancel_event.is_set():
                batch.stop_reason = BatchStopReason.CANCELLED
                batch.skipped_channels = len(channels) - index
                logger.info("scrape_batch_cancelled", remaining_channels=batch.skipped_channels)
                break

            remaining = self.ledger.remaining()
            if remaining < self.min_viable_quota:
                batch.stop_reason = BatchStopReason.QUOTA_FLOOR
                batch.skipped_channels = len(channels) - index
                logger.warning(
                    "scrape_batch_quota_floor",
                    remaining_quota=remaining,
                    min_viable_quota=self.min_viable_quota,
                    remaining_channels=batch.skipped_channels,
                )
                break

            batch.results.append(await self.scrape_channel(channel, options))

            if index < len(channels) - 1 and self.inter_channel_delay > 0:
                await asyncio.sleep(self.inter_channel_delay)

        summary = batch.summary
        logger.info(
            "scrape_batch_completed",
            channels=summary.total_channels,
            videos=summary.total_videos,
            outliers=summary.total_outliers,
            snapshots=summary.total_snapshots,
            quota_used=summary.total_quota_used,
            errors=summary.total_errors,
            stop_reason=batch.stop_reason,
        )
        return batch

    async def scrape_channels(
        self,
        channels: list[TrackedChannel],
        options: ScrapeOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ScrapeResult]:
        """Scrape channels in order; per-channel results only."""
        batch = await self.run_batch(channels, options, cancel_event)
        return batch.results
