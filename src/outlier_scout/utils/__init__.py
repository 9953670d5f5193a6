"""Shared utilities."""

from outlier_scout.utils.async_utils import run_async
from outlier_scout.utils.clock import Clock, utc_now

__all__ = ["Clock", "run_async", "utc_now"]
