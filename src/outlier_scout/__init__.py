"""Outlier Scout - competitor channel surveillance and outlier detection."""

__version__ = "0.1.0"
