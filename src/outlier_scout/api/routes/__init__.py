"""API route modules."""

from outlier_scout.api.routes import channels, health, outliers, scheduler

__all__ = ["channels", "health", "outliers", "scheduler"]
