"""Scheduler and quota endpoints."""

from datetime import datetime, timedelta

from fastapi import APIRouter, status
from pydantic import BaseModel

from outlier_scout.api.deps import ClockDep, QuotaLedgerDep, StateStoreDep
from outlier_scout.logging import get_logger
from outlier_scout.services.scheduler import (
    SCHEDULER_STATE_KEY,
    SchedulerState,
    format_duration_until,
)

router = APIRouter(prefix="/scheduler", tags=["Scheduler"])
logger = get_logger(__name__)


class SchedulerStateResponse(BaseModel):
    """Persisted scheduler state plus the wait until the next run."""

    is_running: bool
    last_run_at: datetime | None
    next_run_at: datetime | None
    run_started_at: datetime | None
    channels_scraped: int
    outliers_found: int
    quota_used: int
    errors: list[str]
    time_until_next_run: str


class QuotaOperationResponse(BaseModel):
    timestamp: str
    operation: str
    cost: int


class QuotaResponse(BaseModel):
    """Today's quota usage."""

    date: str
    used: int
    limit: int
    remaining: int
    percentage: float
    message: str
    severity: str
    operations: list[QuotaOperationResponse]


class ForceRunResponse(BaseModel):
    """Queued force-run task."""

    task_id: str
    status: str


@router.get(
    "/state",
    response_model=SchedulerStateResponse,
    summary="Scheduler state",
)
async def get_scheduler_state(state_store: StateStoreDep, clock: ClockDep) -> SchedulerStateResponse:
    """Current scheduler run-state."""
    data = state_store.load(SCHEDULER_STATE_KEY)
    state = SchedulerState.from_dict(data) if data else SchedulerState()

    wait = timedelta(0)
    if state.next_run_at is not None:
        wait = state.next_run_at - clock()

    return SchedulerStateResponse(
        is_running=state.is_running,
        last_run_at=state.last_run_at,
        next_run_at=state.next_run_at,
        run_started_at=state.run_started_at,
        channels_scraped=state.channels_scraped,
        outliers_found=state.outliers_found,
        quota_used=state.quota_used,
        errors=state.errors,
        time_until_next_run=format_duration_until(wait),
    )


@router.get(
    "/quota",
    response_model=QuotaResponse,
    summary="Quota usage",
)
async def get_quota(ledger: QuotaLedgerDep) -> QuotaResponse:
    """Today's quota usage and recent operations."""
    usage = ledger.usage()
    message, severity = ledger.status_message()
    return QuotaResponse(
        date=usage.date,
        used=usage.used,
        limit=usage.limit,
        remaining=max(0, usage.limit - usage.used),
        percentage=ledger.percentage(),
        message=message,
        severity=severity,
        operations=[
            QuotaOperationResponse(timestamp=op.timestamp, operation=op.operation, cost=op.cost)
            for op in usage.operations
        ],
    )


@router.post(
    "/run",
    response_model=ForceRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Force run",
    description="Queue a rotation batch now, ignoring the interval gate.",
)
async def force_run() -> ForceRunResponse:
    """Queue a forced scheduler run on the worker."""
    from outlier_scout.jobs.scrape_tasks import scheduler_force_run_task

    task = scheduler_force_run_task.delay()
    logger.info("scheduler_force_run_queued", task_id=task.id)
    return ForceRunResponse(task_id=task.id, status="queued")
