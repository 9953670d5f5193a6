"""Domain enumerations."""

from enum import StrEnum


class OutlierStatus(StrEnum):
    """Review status of a detected outlier (set by operators, never by the scraper)."""

    ACTIVE = "active"
    DISMISSED = "dismissed"
    ANALYZED = "analyzed"
    ARCHIVED = "archived"


class VelocityTrend(StrEnum):
    """Direction of a video's view velocity across snapshots."""

    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"
    STABLE = "stable"


class ScrapeStatus(StrEnum):
    """Outcome of scraping a single channel."""

    OK = "ok"
    PARTIAL = "partial"  # Channel scraped, some videos or writes failed
    NO_VIDEOS = "no_videos"  # Channel scraped, nothing returned (not an error)
    FAILED = "failed"  # Channel-level fetch or setup failure
    QUOTA_BLOCKED = "quota_blocked"  # Not enough quota to start or continue


class BatchStopReason(StrEnum):
    """Why a batch ended before visiting every channel."""

    QUOTA_FLOOR = "quota_floor"
    CANCELLED = "cancelled"
