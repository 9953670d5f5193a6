"""Base interface for channel video sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


class VideoSourceError(Exception):
    """Raised when an upstream fetch fails (network, malformed response, not found)."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


@dataclass
class ChannelStats:
    """Lifetime statistics for a channel."""

    channel_id: str
    subscriber_count: int = 0
    total_videos: int = 0
    view_count: int = 0
    title: str | None = None
    raw_data: dict[str, Any] | None = None

    @property
    def avg_views_hint(self) -> float | None:
        """Lifetime views per video, or None when the channel has no videos."""
        if self.total_videos <= 0:
            return None
        return self.view_count / self.total_videos


@dataclass
class VideoMetadata:
    """A video as returned by the source, with current counters."""

    id: str
    title: str
    published_at: datetime
    views: int = 0
    likes: int = 0
    comments: int = 0
    thumbnail_url: str | None = None
    duration_seconds: int = 0


class VideoSourceAdapter(ABC):
    """Abstract base class for channel video sources.

    Implementations:
    - StubVideoSource: Deterministic simulated channels for testing
    - YouTubeVideoSource: YouTube Data API v3
    """

    @abstractmethod
    async def fetch_channel_stats(self, channel_id: str) -> ChannelStats | None:
        """Fetch lifetime statistics for a channel.

        Args:
            channel_id: The channel ID on the platform

        Returns:
            ChannelStats, or None if the channel does not exist
        """
        ...

    @abstractmethod
    async def fetch_latest_videos(self, channel_id: str, limit: int) -> list[VideoMetadata]:
        """Fetch the most recent uploads of a channel, newest first.

        Args:
            channel_id: The channel ID on the platform
            limit: Maximum number of videos to return

        Returns:
            List of VideoMetadata (possibly empty)
        """
        ...

    async def health_check(self) -> bool:
        """Check if the source is reachable.

        Returns:
            True if the source is usable, False otherwise
        """
        return True

    async def close(self) -> None:
        """Release any held resources."""
        return None
