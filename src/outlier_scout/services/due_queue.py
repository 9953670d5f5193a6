"""Selection and ordering of channels due for a refresh."""

from datetime import UTC, datetime

from outlier_scout.domain import TrackedChannel
from outlier_scout.utils.clock import ensure_utc

_NEVER = datetime.min.replace(tzinfo=UTC)


def is_due(channel: TrackedChannel, now: datetime) -> bool:
    """A channel is due when never scraped or its refresh interval has elapsed."""
    if channel.last_scraped_at is None:
        return True
    elapsed = (ensure_utc(now) - ensure_utc(channel.last_scraped_at)).total_seconds()
    return elapsed >= channel.refresh_interval_seconds


def due_sort_key(channel: TrackedChannel) -> tuple[int, int, datetime]:
    """Sort key: priority descending, then never-scraped, then least recently scraped."""
    if channel.last_scraped_at is None:
        return (-channel.priority, 0, _NEVER)
    return (-channel.priority, 1, ensure_utc(channel.last_scraped_at))


def due_channels(
    channels: list[TrackedChannel],
    limit: int,
    now: datetime,
) -> list[TrackedChannel]:
    """Pick the active channels due at ``now``, most urgent first.

    Args:
        channels: Candidate channels (not modified).
        limit: Maximum number of channels to return.
        now: Evaluation instant.

    Returns:
        At most ``limit`` due channels ordered by ``due_sort_key``.
    """
    if limit <= 0:
        return []
    due = [c for c in channels if c.active and is_due(c, now)]
    due.sort(key=due_sort_key)
    return due[:limit]
