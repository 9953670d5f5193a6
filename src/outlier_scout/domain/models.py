"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from outlier_scout.domain.enums import OutlierStatus, VelocityTrend


@dataclass
class TrackedChannel:
    """A competitor channel under surveillance."""

    channel_id: str
    channel_name: str
    handle: str | None = None
    # Baseline (refreshed after each successful scrape)
    avg_views: int = 0
    subscriber_count: int = 0
    total_videos: int = 0
    # Scheduling
    refresh_interval_seconds: int = 21600
    priority: int = 5
    last_scraped_at: datetime | None = None
    active: bool = True
    # Operator metadata
    category: str | None = None
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.priority = max(1, min(10, self.priority))


@dataclass(frozen=True)
class ChannelBaseline:
    """Channel stats written back after a scrape."""

    avg_views: int
    subscriber_count: int
    total_videos: int


@dataclass(frozen=True)
class VideoSnapshot:
    """One observation of a video's metrics, frozen at capture time."""

    video_id: str
    channel_id: str
    snapshot_at: datetime
    views: int = 0
    likes: int = 0
    comments: int = 0
    published_at: datetime | None = None
    title: str | None = None
    thumbnail_url: str | None = None
    duration: int = 0
    # Derived at capture
    engagement_ratio: float = 0.0
    velocity_score: float = 0.0
    """Views/hour since the previous snapshot, or the scorer's 0-10 score on a first capture."""
    multiplier: float = 1.0
    outlier_score: int = 1


@dataclass
class Outlier:
    """Current state of a video that cleared the outlier threshold."""

    video_id: str
    channel_id: str
    channel_name: str
    title: str
    outlier_score: int
    detected_at: datetime
    last_updated_at: datetime
    first_seen_views: int
    thumbnail_url: str | None = None
    published_at: datetime | None = None
    duration: int = 0
    views: int = 0
    likes: int = 0
    comments: int = 0
    multiplier: float = 1.0
    velocity_score: float = 0.0
    """Unit of the detecting snapshot: views/hour, or 0-10 on a video's first capture."""
    engagement_ratio: float = 0.0
    status: OutlierStatus = OutlierStatus.ACTIVE
    is_new: bool = True
    priority: int = 5
    notes: str | None = None

    def merged_with(self, incoming: "Outlier") -> "Outlier":
        """Apply a re-detection on top of this record.

        Metrics and ``last_updated_at`` come from ``incoming``; identity of the
        first detection and everything owned by reviewers is kept.
        """
        return replace(
            incoming,
            detected_at=self.detected_at,
            first_seen_views=self.first_seen_views,
            status=self.status,
            is_new=self.is_new,
            priority=self.priority,
            notes=self.notes,
        )


@dataclass(frozen=True)
class VelocityData:
    """Velocity analysis over a video's snapshot history."""

    video_id: str
    current_velocity: float
    acceleration: float
    trend: VelocityTrend
    peak_velocity: float
    avg_velocity: float
