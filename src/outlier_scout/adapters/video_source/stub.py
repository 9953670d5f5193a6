"""Stub video source for testing and dry runs."""

import random
import zlib
from datetime import UTC, datetime, timedelta

from outlier_scout.adapters.video_source.base import (
    ChannelStats,
    VideoMetadata,
    VideoSourceAdapter,
)
from outlier_scout.logging import get_logger

logger = get_logger(__name__)


class StubVideoSource(VideoSourceAdapter):
    """Returns simulated channels; the same channel always yields the same catalogue."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    def _rng(self, channel_id: str) -> random.Random:
        return random.Random(zlib.crc32(channel_id.encode("utf-8")))

    async def fetch_channel_stats(self, channel_id: str) -> ChannelStats | None:
        """Return simulated lifetime stats."""
        logger.info("stub_fetch_channel_stats", channel_id=channel_id)

        rng = self._rng(channel_id)
        total_videos = rng.randint(50, 800)
        avg_views = rng.randint(2_000, 200_000)

        return ChannelStats(
            channel_id=channel_id,
            subscriber_count=avg_views * rng.randint(5, 40),
            total_videos=total_videos,
            view_count=avg_views * total_videos,
            title=f"Stub Channel {channel_id[-6:]}",
            raw_data={"source": "stub"},
        )

    async def fetch_latest_videos(self, channel_id: str, limit: int) -> list[VideoMetadata]:
        """Return simulated uploads, newest first, one to three days apart."""
        logger.info("stub_fetch_latest_videos", channel_id=channel_id, limit=limit)

        rng = self._rng(channel_id)
        avg_views = rng.randint(2_000, 200_000)
        now = self._now or datetime.now(UTC)
        published = now - timedelta(hours=rng.randint(2, 30))

        videos = []
        for index in range(limit):
            # Occasional breakout to exercise outlier detection
            factor = rng.choice([0.4, 0.7, 1.0, 1.3, 4.5])
            views = int(avg_views * factor)
            videos.append(
                VideoMetadata(
                    id=f"{channel_id[-6:]}v{index:03d}",
                    title=f"Stub video {index + 1}",
                    published_at=published,
                    views=views,
                    likes=int(views * rng.uniform(0.01, 0.08)),
                    comments=int(views * rng.uniform(0.001, 0.01)),
                    thumbnail_url=f"https://i.ytimg.com/vi/stub{index}/hqdefault.jpg",
                    duration_seconds=rng.randint(60, 1800),
                )
            )
            published -= timedelta(hours=rng.randint(24, 72))

        return videos

    async def health_check(self) -> bool:
        """Stub source is always healthy."""
        return True
