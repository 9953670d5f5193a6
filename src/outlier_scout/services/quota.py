"""Daily API quota ledger.

Tracks YouTube Data API units against a fixed daily budget. The ledger never
blocks a debit; callers gate expensive work with ``can_afford`` first. Usage
rolls over lazily whenever the calendar day changes.
"""

from dataclasses import asdict, dataclass, field
from typing import Any
from zoneinfo import ZoneInfo

from outlier_scout.adapters.store.base import StateStore
from outlier_scout.logging import get_logger
from outlier_scout.utils.clock import Clock, utc_now

logger = get_logger(__name__)

QUOTA_STATE_KEY = "quota_usage"
MAX_LOGGED_OPERATIONS = 100

# Units charged per Data API call
QUOTA_COSTS: dict[str, int] = {
    # Reads
    "videos.list": 1,
    "channels.list": 1,
    "playlistItems.list": 1,
    "commentThreads.list": 1,
    # Search
    "search.list": 100,
    # Writes
    "videos.update": 50,
    "playlists.insert": 50,
}

CHANNEL_STATS_OPERATION = "channels.list"
VIDEO_LIST_OPERATION = "playlistItems.list"


class QuotaExhaustedError(Exception):
    """Raised when an operation cannot be afforded today. Not retryable until rollover."""

    retryable = False

    def __init__(self, operation: str, cost: int, remaining: int) -> None:
        super().__init__(
            f"Insufficient quota for {operation} (cost {cost}, remaining {remaining})"
        )
        self.operation = operation
        self.cost = cost
        self.remaining = remaining


def cost_of(operation: str) -> int:
    """Units charged for an operation; unknown operations cost 1."""
    return QUOTA_COSTS.get(operation, 1)


@dataclass
class QuotaOperation:
    """One debit record."""

    timestamp: str
    operation: str
    cost: int


@dataclass
class QuotaUsage:
    """Persisted ledger state for one calendar day."""

    date: str
    used: int
    limit: int
    operations: list[QuotaOperation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuotaUsage":
        return cls(
            date=str(data["date"]),
            used=int(data.get("used", 0)),
            limit=int(data.get("limit", 0)),
            operations=[QuotaOperation(**op) for op in data.get("operations", [])],
        )


def quota_status_message(used: int, limit: int) -> tuple[str, str]:
    """Human-readable quota status and a severity (info, warning, error)."""
    percentage = (used / limit) * 100 if limit > 0 else 100.0
    left = 100 - percentage

    if percentage >= 100:
        return "Quota exhausted. Resets at midnight.", "error"
    if percentage >= 90:
        return f"Quota critical: {left:.1f}% remaining", "error"
    if percentage >= 75:
        return f"Quota low: {left:.1f}% remaining", "warning"
    if percentage >= 50:
        return f"Quota moderate: {left:.1f}% remaining", "warning"
    return f"Quota healthy: {left:.0f}% remaining", "info"


class QuotaLedger:
    """Rolling daily budget of API units backed by a StateStore."""

    def __init__(
        self,
        state_store: StateStore,
        limit: int = 10000,
        clock: Clock = utc_now,
        timezone: str | None = None,
        state_key: str = QUOTA_STATE_KEY,
    ) -> None:
        """Initialize the ledger.

        Args:
            state_store: Where the usage document is persisted.
            limit: Daily unit budget.
            clock: Source of the current instant.
            timezone: IANA zone whose calendar day bounds the budget.
                None uses the process-local zone.
            state_key: Key of the usage document.
        """
        self.state_store = state_store
        self.limit = limit
        self.clock = clock
        self._tz = ZoneInfo(timezone) if timezone else None
        self.state_key = state_key

    def _today(self) -> str:
        now = self.clock()
        local = now.astimezone(self._tz) if self._tz else now.astimezone()
        return local.date().isoformat()

    def _usage_from(self, data: dict[str, Any] | None) -> QuotaUsage:
        """Build today's usage from a stored document, applying day rollover."""
        today = self._today()
        if data is None:
            return QuotaUsage(date=today, used=0, limit=self.limit)

        usage = QuotaUsage.from_dict(data)
        if usage.date != today:
            logger.info("quota_rollover", previous_date=usage.date, previous_used=usage.used)
            return QuotaUsage(date=today, used=0, limit=self.limit)

        usage.limit = self.limit
        return usage

    def usage(self) -> QuotaUsage:
        """Current day's usage."""
        return self._usage_from(self.state_store.load(self.state_key))

    def remaining(self) -> int:
        """Units left today, never negative."""
        usage = self.usage()
        return max(0, usage.limit - usage.used)

    def percentage(self) -> float:
        """Percent of today's budget consumed (may exceed 100)."""
        usage = self.usage()
        if usage.limit <= 0:
            return 100.0
        return usage.used / usage.limit * 100

    def can_afford(self, cost: int) -> bool:
        """Whether ``cost`` more units fit in today's budget."""
        usage = self.usage()
        return usage.used + cost <= usage.limit

    def can_afford_operation(self, operation: str) -> bool:
        return self.can_afford(cost_of(operation))

    def debit(self, operation: str, cost: int | None = None) -> QuotaUsage:
        """Record an operation. Never blocks and never clamps ``used``.

        The read-modify-write runs inside ``StateStore.update``, so ledgers in
        other threads or worker processes sharing the store never lose a debit.

        Args:
            operation: Operation tag, normally a Data API method name.
            cost: Units to charge; defaults to the cost table.

        Returns:
            Usage after the debit.
        """
        units = cost_of(operation) if cost is None else cost

        def apply(data: dict[str, Any] | None) -> dict[str, Any]:
            usage = self._usage_from(data)
            usage.used += units
            usage.operations.append(
                QuotaOperation(
                    timestamp=self.clock().isoformat(),
                    operation=operation,
                    cost=units,
                )
            )
            if len(usage.operations) > MAX_LOGGED_OPERATIONS:
                usage.operations = usage.operations[-MAX_LOGGED_OPERATIONS:]
            return usage.to_dict()

        usage = QuotaUsage.from_dict(self.state_store.update(self.state_key, apply))

        logger.debug(
            "quota_debit",
            operation=operation,
            cost=units,
            used=usage.used,
            limit=usage.limit,
        )
        if usage.used > usage.limit:
            logger.warning("quota_over_limit", used=usage.used, limit=usage.limit)
        return usage

    def reset(self) -> None:
        """Manually clear today's usage."""
        today = self._today()
        self.state_store.update(
            self.state_key,
            lambda _: QuotaUsage(date=today, used=0, limit=self.limit).to_dict(),
        )
        logger.info("quota_reset", date=today)

    def estimate_channel_scan_cost(self, channel_count: int) -> int:
        """Units needed to scrape ``channel_count`` channels (stats + video list each)."""
        per_channel = cost_of(CHANNEL_STATS_OPERATION) + cost_of(VIDEO_LIST_OPERATION)
        return channel_count * per_channel

    def can_scan_channels(self, channel_count: int) -> bool:
        return self.can_afford(self.estimate_channel_scan_cost(channel_count))

    def status_message(self) -> tuple[str, str]:
        usage = self.usage()
        return quota_status_message(usage.used, usage.limit)
