"""Channel video sources."""

from outlier_scout.adapters.video_source.base import (
    ChannelStats,
    VideoMetadata,
    VideoSourceAdapter,
    VideoSourceError,
)
from outlier_scout.adapters.video_source.stub import StubVideoSource
from outlier_scout.adapters.video_source.youtube import (
    YouTubeAPIError,
    YouTubeErrorType,
    YouTubeVideoSource,
)

__all__ = [
    "ChannelStats",
    "StubVideoSource",
    "VideoMetadata",
    "VideoSourceAdapter",
    "VideoSourceError",
    "YouTubeAPIError",
    "YouTubeErrorType",
    "YouTubeVideoSource",
]
