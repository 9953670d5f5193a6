"""Adapters for external services."""

from outlier_scout.adapters.store.base import ScoutStore, StateStore
from outlier_scout.adapters.video_source.base import VideoSourceAdapter

__all__ = [
    "ScoutStore",
    "StateStore",
    "VideoSourceAdapter",
]
