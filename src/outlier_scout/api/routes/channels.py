"""Tracked channel endpoints."""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from outlier_scout.adapters.store.base import DuplicateChannelError, UnknownChannelError
from outlier_scout.api.deps import ClockDep, ScoutStoreDep
from outlier_scout.config import settings
from outlier_scout.domain import TrackedChannel
from outlier_scout.logging import get_logger
from outlier_scout.services.due_queue import due_channels

router = APIRouter(prefix="/channels", tags=["Channels"])
logger = get_logger(__name__)


class AddChannelRequest(BaseModel):
    """Request to start tracking a channel."""

    channel_id: str = Field(..., min_length=1, max_length=64)
    channel_name: str = Field(..., min_length=1, max_length=255)
    handle: str | None = Field(None, max_length=255)
    priority: int = Field(default=5, ge=1, le=10)
    refresh_interval_seconds: int | None = Field(None, ge=60)
    avg_views: int = Field(default=0, ge=0)
    category: str | None = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list)


class ChannelResponse(BaseModel):
    """Tracked channel response model."""

    channel_id: str
    channel_name: str
    handle: str | None
    avg_views: int
    subscriber_count: int
    total_videos: int
    refresh_interval_seconds: int
    priority: int
    last_scraped_at: datetime | None
    active: bool
    category: str | None
    tags: list[str]


def _to_response(channel: TrackedChannel) -> ChannelResponse:
    return ChannelResponse(**asdict(channel))


@router.get(
    "",
    response_model=list[ChannelResponse],
    summary="List channels",
    description="List tracked channels, highest priority first.",
)
async def list_channels(store: ScoutStoreDep, active_only: bool = True) -> list[ChannelResponse]:
    """List tracked channels."""
    return [_to_response(c) for c in store.list_tracked_channels(active_only=active_only)]


@router.post(
    "",
    response_model=ChannelResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track channel",
    description="Start tracking a channel. It is due for its first scrape immediately.",
)
async def add_channel(request: AddChannelRequest, store: ScoutStoreDep) -> ChannelResponse:
    """Start tracking a channel."""
    channel = TrackedChannel(
        channel_id=request.channel_id,
        channel_name=request.channel_name,
        handle=request.handle,
        avg_views=request.avg_views,
        refresh_interval_seconds=(
            request.refresh_interval_seconds or settings.default_refresh_interval_seconds
        ),
        priority=request.priority,
        category=request.category,
        tags=request.tags,
    )
    try:
        store.add_tracked_channel(channel)
    except DuplicateChannelError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Channel already tracked: {request.channel_id}",
        )

    logger.info("channel_added", channel_id=channel.channel_id, priority=channel.priority)
    return _to_response(channel)


@router.get(
    "/due",
    response_model=list[ChannelResponse],
    summary="Due channels",
    description="Preview the channels the next scheduled batch would scrape, in order.",
)
async def list_due_channels(
    store: ScoutStoreDep,
    clock: ClockDep,
    limit: int = Query(default=settings.scheduler_batch_size, ge=1, le=500),
) -> list[ChannelResponse]:
    """Preview the next batch."""
    channels = due_channels(store.list_tracked_channels(active_only=True), limit, clock())
    return [_to_response(c) for c in channels]


class ScrapeQueuedResponse(BaseModel):
    """Response for an on-demand channel scrape."""

    channel_id: str
    task_id: str
    queued: bool = True


@router.post(
    "/{channel_id}/scrape",
    response_model=ScrapeQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Scrape channel now",
    description="Queue a scrape of one tracked channel outside the rotation.",
)
async def scrape_channel_now(channel_id: str, store: ScoutStoreDep) -> ScrapeQueuedResponse:
    """Queue an immediate scrape of a tracked channel."""
    if store.get_tracked_channel(channel_id) is None:
        raise UnknownChannelError(channel_id)

    from outlier_scout.jobs.scrape_tasks import scrape_single_channel_task

    task = scrape_single_channel_task.delay(channel_id)
    logger.info("channel_scrape_queued", channel_id=channel_id, task_id=task.id)
    return ScrapeQueuedResponse(channel_id=channel_id, task_id=task.id)
