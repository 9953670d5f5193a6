"""Persistence adapters."""

from outlier_scout.adapters.store.base import (
    DuplicateChannelError,
    ScoutStore,
    StateStore,
    StoreError,
    UnknownChannelError,
)
from outlier_scout.adapters.store.memory import InMemoryScoutStore, InMemoryStateStore

__all__ = [
    "DuplicateChannelError",
    "InMemoryScoutStore",
    "InMemoryStateStore",
    "ScoutStore",
    "StateStore",
    "StoreError",
    "UnknownChannelError",
]
