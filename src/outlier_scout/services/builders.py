"""Construction of configured adapters and services."""

from outlier_scout.adapters.store.base import ScoutStore, StateStore
from outlier_scout.adapters.video_source.base import VideoSourceAdapter
from outlier_scout.adapters.video_source.stub import StubVideoSource
from outlier_scout.config import settings
from outlier_scout.services.quota import QuotaLedger
from outlier_scout.services.scheduler import RotationScheduler, SchedulerConfig
from outlier_scout.services.scraper import ScraperOrchestrator
from outlier_scout.utils.clock import Clock, utc_now


def get_video_source() -> VideoSourceAdapter:
    """Get the configured video source."""
    provider = settings.video_source_provider.lower()

    if provider == "youtube":
        from outlier_scout.adapters.video_source.youtube import YouTubeVideoSource

        if not settings.youtube_api_key:
            raise ValueError("YOUTUBE_API_KEY is required when VIDEO_SOURCE_PROVIDER=youtube")
        return YouTubeVideoSource(
            api_key=settings.youtube_api_key,
            base_url=settings.youtube_api_base_url,
        )
    return StubVideoSource()


def get_scout_store() -> ScoutStore:
    """SQL-backed store on the configured database."""
    from outlier_scout.adapters.store.sql import SqlScoutStore

    return SqlScoutStore()


def get_state_store() -> StateStore:
    """SQL-backed state store on the configured database."""
    from outlier_scout.adapters.store.sql import SqlStateStore

    return SqlStateStore()


def build_ledger(state_store: StateStore, clock: Clock = utc_now) -> QuotaLedger:
    return QuotaLedger(
        state_store,
        limit=settings.youtube_quota_limit,
        clock=clock,
        timezone=settings.quota_reset_timezone,
    )


def build_orchestrator(
    source: VideoSourceAdapter,
    store: ScoutStore,
    ledger: QuotaLedger,
    clock: Clock = utc_now,
) -> ScraperOrchestrator:
    return ScraperOrchestrator(
        source,
        store,
        ledger,
        clock=clock,
        min_viable_quota=settings.scrape_min_viable_quota,
        inter_channel_delay=settings.scrape_inter_channel_delay_seconds,
        fetch_timeout=settings.scrape_fetch_timeout_seconds,
        default_avg_views=settings.default_channel_avg_views,
    )


def build_scheduler(
    source: VideoSourceAdapter | None = None,
    store: ScoutStore | None = None,
    state_store: StateStore | None = None,
    clock: Clock = utc_now,
) -> RotationScheduler:
    """Wire a RotationScheduler from settings; missing collaborators use the defaults."""
    source = source or get_video_source()
    store = store or get_scout_store()
    state_store = state_store or get_state_store()
    ledger = build_ledger(state_store, clock)
    return RotationScheduler(
        build_orchestrator(source, store, ledger, clock),
        store,
        state_store,
        ledger,
        config=SchedulerConfig.from_settings(),
        clock=clock,
    )
