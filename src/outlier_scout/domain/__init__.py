"""Domain models and enumerations."""

from outlier_scout.domain.enums import (
    BatchStopReason,
    OutlierStatus,
    ScrapeStatus,
    VelocityTrend,
)
from outlier_scout.domain.models import (
    ChannelBaseline,
    Outlier,
    TrackedChannel,
    VelocityData,
    VideoSnapshot,
)

__all__ = [
    "BatchStopReason",
    "ChannelBaseline",
    "Outlier",
    "OutlierStatus",
    "ScrapeStatus",
    "TrackedChannel",
    "VelocityData",
    "VelocityTrend",
    "VideoSnapshot",
]
