"""View velocity analysis over snapshot history.

Two 1-10 mappings of velocity exist and are kept apart on purpose:
``scoring.calculate_velocity_score`` rates lifetime views/hour inside the
outlier score, while ``velocity_to_score`` rates a snapshot-to-snapshot
velocity for display and ranking.
"""

from dataclasses import dataclass
from datetime import datetime

from outlier_scout.domain import VelocityData, VelocityTrend, VideoSnapshot
from outlier_scout.services.scoring import HOURS_PER_WEEK, round_half_up
from outlier_scout.utils.clock import ensure_utc

STABLE_TREND_TOLERANCE = 0.1
OUTLIER_VELOCITY_FACTOR = 2


@dataclass(frozen=True)
class VelocityPoint:
    """Velocity over one interval between consecutive snapshots."""

    start: datetime
    end: datetime
    views_per_hour: float


def _hours_between(newer: VideoSnapshot, older: VideoSnapshot) -> float:
    delta = ensure_utc(newer.snapshot_at) - ensure_utc(older.snapshot_at)
    return delta.total_seconds() / 3600


def velocity_between(newer: VideoSnapshot, older: VideoSnapshot) -> float:
    """Views per hour between two snapshots; 0 when they share a timestamp."""
    hours = _hours_between(newer, older)
    if hours == 0:
        return 0.0
    return (newer.views - older.views) / hours


def _newest_first(snapshots: list[VideoSnapshot]) -> list[VideoSnapshot]:
    return sorted(snapshots, key=lambda s: ensure_utc(s.snapshot_at), reverse=True)


def analyze(snapshots: list[VideoSnapshot]) -> VelocityData | None:
    """Analyze a video's snapshot history.

    Args:
        snapshots: Snapshots of one video, in any order.

    Returns:
        VelocityData, or None with fewer than two snapshots.
    """
    if len(snapshots) < 2:
        return None

    ordered = _newest_first(snapshots)
    velocities = [
        velocity_between(newer, older) for newer, older in zip(ordered, ordered[1:])
    ]

    current = velocities[0]
    avg_velocity = sum(velocities) / len(velocities)
    acceleration = velocities[0] - velocities[1] if len(velocities) > 1 else 0.0

    if abs(acceleration) < avg_velocity * STABLE_TREND_TOLERANCE:
        trend = VelocityTrend.STABLE
    elif acceleration > 0:
        trend = VelocityTrend.ACCELERATING
    else:
        trend = VelocityTrend.DECELERATING

    return VelocityData(
        video_id=ordered[0].video_id,
        current_velocity=current,
        acceleration=acceleration,
        trend=trend,
        peak_velocity=max(velocities),
        avg_velocity=avg_velocity,
    )


def velocity_history(snapshots: list[VideoSnapshot]) -> list[VelocityPoint]:
    """Per-interval velocities, oldest first. Intervals without elapsed time are skipped."""
    ordered = list(reversed(_newest_first(snapshots)))
    points = []
    for older, newer in zip(ordered, ordered[1:]):
        hours = _hours_between(newer, older)
        if hours <= 0:
            continue
        points.append(
            VelocityPoint(
                start=older.snapshot_at,
                end=newer.snapshot_at,
                views_per_hour=(newer.views - older.views) / hours,
            )
        )
    return points


def velocity_to_score(velocity: float, channel_avg_views: float) -> int:
    """Map views/hour to 1-10 against a one-week baseline.

    0.5x baseline or less scores 1, 1x scores 5, 2x scores 8, 4x and above 10.
    A channel without a baseline scores the mid-range 5.
    """
    baseline = channel_avg_views / HOURS_PER_WEEK
    if baseline <= 0:
        return 5

    multiplier = velocity / baseline
    if multiplier <= 0.5:
        return 1
    if multiplier <= 1:
        return round_half_up(1 + (multiplier - 0.5) * 8)
    if multiplier <= 2:
        return round_half_up(5 + (multiplier - 1) * 3)
    return min(10, round_half_up(8 + (multiplier - 2)))


def is_outlier_velocity(velocity: float, channel_avg_views: float) -> bool:
    """Whether velocity is at least twice the channel's weekly baseline."""
    return velocity >= (channel_avg_views / HOURS_PER_WEEK) * OUTLIER_VELOCITY_FACTOR


def estimate_time_to_views(current_views: int, target_views: int, velocity: float) -> float:
    """Hours until ``target_views`` at the current velocity; 0 if reached or stalled."""
    if velocity <= 0 or current_views >= target_views:
        return 0.0
    return (target_views - current_views) / velocity


def format_time_estimate(hours: float) -> str:
    if hours < 1:
        return f"{round_half_up(hours * 60)} minutes"
    if hours < 24:
        return f"{round_half_up(hours)} hours"
    days = round_half_up(hours / 24)
    return f"{days} day{'s' if days != 1 else ''}"
