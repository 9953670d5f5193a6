"""Outlier scoring.

Multi-factor score of how far a video outperforms its channel average:

- View multiplier vs channel average: 40%
- Velocity (views/hour vs a one-week baseline): 30%
- Engagement ratio: 20%
- Recency bonus (under 48h old): 10%

The final score is an integer in 1-10.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime

from outlier_scout.utils.clock import ensure_utc

HOURS_PER_WEEK = 24 * 7
TYPICAL_ENGAGEMENT_RATIO = 0.05
OUTLIER_SCORE_THRESHOLD = 6
OUTLIER_MULTIPLIER_THRESHOLD = 3.0
SIMPLE_OUTLIER_MULTIPLIER = 2.5

MULTIPLIER_WEIGHT = 0.4
VELOCITY_WEIGHT = 0.3
ENGAGEMENT_WEIGHT = 0.2
RECENCY_WEIGHT = 0.1


@dataclass(frozen=True)
class VideoMetrics:
    """Scoring inputs for one video."""

    video_id: str
    channel_id: str
    views: int
    likes: int
    comments: int
    published_at: datetime
    channel_avg_views: float


@dataclass(frozen=True)
class OutlierScore:
    """Scoring result."""

    video_id: str
    outlier_score: int
    multiplier: float
    engagement_ratio: float
    velocity_score: float
    is_outlier: bool
    reasons: list[str] = field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def hours_since(published_at: datetime, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(published_at)).total_seconds() / 3600


def calculate_multiplier(views: float, channel_avg_views: float) -> float:
    """Video views over channel average; 1.0 without a baseline."""
    views = max(0.0, views)
    if channel_avg_views <= 0:
        return 1.0
    return views / channel_avg_views


def calculate_engagement_ratio(likes: float, comments: float, views: float) -> float:
    """(likes + comments) / views; 0 for unwatched videos."""
    if views <= 0:
        return 0.0
    return (max(0.0, likes) + max(0.0, comments)) / views


def calculate_velocity_score(views: float, hours_since_publish: float, channel_avg_views: float) -> float:
    """Views/hour relative to a channel video accruing its average over one week, capped at 10."""
    if hours_since_publish <= 0:
        return 0.0

    avg_views_per_hour = max(0.0, channel_avg_views) / HOURS_PER_WEEK
    if avg_views_per_hour <= 0:
        return 0.0

    views_per_hour = max(0.0, views) / hours_since_publish
    return min(10.0, views_per_hour / avg_views_per_hour)


def calculate_recency_bonus(hours_since_publish: float) -> float:
    """1.0 within a day of publishing, 0.5 within two days, else 0."""
    if hours_since_publish <= 24:
        return 1.0
    if hours_since_publish <= 48:
        return 0.5
    return 0.0


def score_video(metrics: VideoMetrics, now: datetime) -> OutlierScore:
    """Score a video against its channel baseline.

    Args:
        metrics: Current counters and channel baseline.
        now: Evaluation instant.

    Returns:
        OutlierScore with a 1-10 score and the reasons that crossed their thresholds.
    """
    views = max(0, metrics.views)
    avg_views = max(0.0, metrics.channel_avg_views)
    age_hours = max(0.0, hours_since(metrics.published_at, now))

    multiplier = calculate_multiplier(views, avg_views)
    engagement_ratio = calculate_engagement_ratio(metrics.likes, metrics.comments, views)
    velocity_score = calculate_velocity_score(views, age_hours, avg_views)
    recency_bonus = calculate_recency_bonus(age_hours)

    reasons: list[str] = []
    score = 0.0

    score += min(10.0, (multiplier - 1) * 2) * MULTIPLIER_WEIGHT
    if multiplier >= OUTLIER_MULTIPLIER_THRESHOLD:
        reasons.append(f"{multiplier:.1f}x channel average")

    score += velocity_score * VELOCITY_WEIGHT
    if velocity_score >= 5:
        reasons.append("High velocity (rapid view growth)")

    score += min(10.0, engagement_ratio / TYPICAL_ENGAGEMENT_RATIO) * ENGAGEMENT_WEIGHT
    if engagement_ratio >= TYPICAL_ENGAGEMENT_RATIO * 1.5:
        reasons.append("Strong engagement")

    score += recency_bonus * 10 * RECENCY_WEIGHT
    if recency_bonus > 0:
        reasons.append("Recently published")

    outlier_score = max(1, min(10, round_half_up(score)))

    return OutlierScore(
        video_id=metrics.video_id,
        outlier_score=outlier_score,
        multiplier=multiplier,
        engagement_ratio=engagement_ratio,
        velocity_score=velocity_score,
        is_outlier=(
            outlier_score >= OUTLIER_SCORE_THRESHOLD
            or multiplier >= OUTLIER_MULTIPLIER_THRESHOLD
        ),
        reasons=reasons,
    )


def detect_outliers(metrics_list: list[VideoMetrics], now: datetime) -> list[OutlierScore]:
    """Score a batch and keep only the outliers."""
    results = (score_video(metrics, now) for metrics in metrics_list)
    return [result for result in results if result.is_outlier]


def is_simple_outlier(views: int, channel_avg_views: float) -> bool:
    """Plain threshold check: 2.5x the channel average or more."""
    return calculate_multiplier(views, channel_avg_views) >= SIMPLE_OUTLIER_MULTIPLIER
