"""Tests for outlier scoring."""

from datetime import timedelta

import pytest

from conftest import NOW
from outlier_scout.services.scoring import (
    VideoMetrics,
    calculate_engagement_ratio,
    calculate_multiplier,
    calculate_recency_bonus,
    calculate_velocity_score,
    detect_outliers,
    is_simple_outlier,
    round_half_up,
    score_video,
)


def _metrics(
    views: int = 50_000,
    likes: int = 2_500,
    comments: int = 500,
    age_hours: float = 24,
    avg_views: float = 10_000,
    video_id: str = "vid1",
) -> VideoMetrics:
    return VideoMetrics(
        video_id=video_id,
        channel_id="UCabc",
        views=views,
        likes=likes,
        comments=comments,
        published_at=NOW - timedelta(hours=age_hours),
        channel_avg_views=avg_views,
    )


def test_round_half_up() -> None:
    """Halves round toward positive infinity."""
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2
    assert round_half_up(-2.5) == -2


def test_breakout_video_score() -> None:
    """5x the average, fast, recent: weighted sum 7.44 rounds to 7."""
    result = score_video(_metrics(), NOW)

    assert result.outlier_score == 7
    assert result.multiplier == pytest.approx(5.0)
    assert result.engagement_ratio == pytest.approx(0.06)
    assert result.velocity_score == pytest.approx(10.0)
    assert result.is_outlier is True
    assert "5.0x channel average" in result.reasons
    assert "High velocity (rapid view growth)" in result.reasons
    assert "Recently published" in result.reasons
    assert "Strong engagement" not in result.reasons


def test_average_video_is_not_outlier() -> None:
    """A week-old video at exactly the channel average scores the minimum."""
    result = score_video(_metrics(views=10_000, likes=0, comments=0, age_hours=168), NOW)

    assert result.outlier_score == 1
    assert result.multiplier == pytest.approx(1.0)
    assert result.velocity_score == pytest.approx(1.0)
    assert result.is_outlier is False
    assert result.reasons == []


def test_multiplier_escape_hatch() -> None:
    """3.5x the average is an outlier even when the weighted score is low."""
    result = score_video(
        _metrics(views=35_000, likes=0, comments=0, age_hours=1000),
        NOW,
    )

    assert result.multiplier == pytest.approx(3.5)
    assert result.outlier_score < 6
    assert result.is_outlier is True


def test_zero_baseline_and_zero_age() -> None:
    """No baseline and no elapsed time produce defined, zero-valued terms."""
    result = score_video(_metrics(views=0, likes=0, comments=0, age_hours=0, avg_views=0), NOW)

    assert result.multiplier == 1.0
    assert result.engagement_ratio == 0.0
    assert result.velocity_score == 0.0
    assert result.outlier_score == 1


def test_future_publish_date_is_clamped() -> None:
    """Clock skew never yields negative ages."""
    result = score_video(_metrics(age_hours=-5), NOW)

    assert result.velocity_score == 0.0
    assert 1 <= result.outlier_score <= 10


def test_negative_counters_are_clamped() -> None:
    result = score_video(_metrics(views=-100, likes=-5, comments=-1), NOW)

    assert result.multiplier == 0.0
    assert result.engagement_ratio == 0.0
    assert 1 <= result.outlier_score <= 10


@pytest.mark.parametrize("avg_views", [0, 1, 1_000, 100_000])
@pytest.mark.parametrize("age_hours", [0, 1, 30, 500])
def test_score_is_bounded_and_monotonic_in_views(avg_views: int, age_hours: float) -> None:
    """Scores stay in 1-10 and never drop as views grow."""
    previous = 0
    for views in [0, 10, 1_000, 10_000, 100_000, 1_000_000, 100_000_000]:
        result = score_video(
            _metrics(views=views, likes=0, comments=0, age_hours=age_hours, avg_views=avg_views),
            NOW,
        )
        assert 1 <= result.outlier_score <= 10
        assert result.outlier_score >= previous
        previous = result.outlier_score


def test_component_helpers() -> None:
    assert calculate_multiplier(30_000, 10_000) == pytest.approx(3.0)
    assert calculate_multiplier(30_000, 0) == 1.0
    assert calculate_engagement_ratio(90, 10, 1_000) == pytest.approx(0.1)
    assert calculate_engagement_ratio(90, 10, 0) == 0.0
    assert calculate_velocity_score(1_000, 0, 10_000) == 0.0
    assert calculate_velocity_score(1_000, 10, 0) == 0.0
    # 100 views/hour against a 16,800/week baseline (100/hour)
    assert calculate_velocity_score(1_000, 10, 16_800) == pytest.approx(1.0)
    assert calculate_recency_bonus(24) == 1.0
    assert calculate_recency_bonus(48) == 0.5
    assert calculate_recency_bonus(48.1) == 0.0


def test_detect_outliers_filters_batch() -> None:
    batch = [
        _metrics(video_id="hit"),
        _metrics(video_id="dud", views=10_000, likes=0, comments=0, age_hours=168),
    ]

    results = detect_outliers(batch, NOW)

    assert [r.video_id for r in results] == ["hit"]


def test_simple_outlier_threshold() -> None:
    assert is_simple_outlier(25_000, 10_000) is True
    assert is_simple_outlier(24_999, 10_000) is False
    assert is_simple_outlier(25_000, 0) is False
