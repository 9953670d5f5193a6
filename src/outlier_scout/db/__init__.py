"""Database layer."""

from outlier_scout.db.models import (
    AppStateModel,
    Base,
    OutlierModel,
    TrackedChannelModel,
    VideoSnapshotModel,
)
from outlier_scout.db.session import ping_database, session_scope

__all__ = [
    "Base",
    "ping_database",
    "session_scope",
    # Models
    "AppStateModel",
    "OutlierModel",
    "TrackedChannelModel",
    "VideoSnapshotModel",
]
