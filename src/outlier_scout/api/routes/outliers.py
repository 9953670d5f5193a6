"""Outlier endpoints."""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from outlier_scout.api.deps import ScoutStoreDep
from outlier_scout.domain import Outlier, OutlierStatus, VelocityTrend
from outlier_scout.logging import get_logger
from outlier_scout.services.velocity import analyze, is_outlier_velocity, velocity_to_score

router = APIRouter(prefix="/outliers", tags=["Outliers"])
logger = get_logger(__name__)


class OutlierResponse(BaseModel):
    """Outlier response model."""

    video_id: str
    channel_id: str
    channel_name: str
    title: str
    thumbnail_url: str | None
    published_at: datetime | None
    duration: int
    views: int
    likes: int
    comments: int
    multiplier: float
    outlier_score: int
    velocity_score: float
    engagement_ratio: float
    detected_at: datetime
    last_updated_at: datetime
    first_seen_views: int
    status: OutlierStatus
    is_new: bool
    priority: int
    notes: str | None


class UpdateOutlierRequest(BaseModel):
    """Reviewer changes to an outlier."""

    status: OutlierStatus | None = None
    priority: int | None = Field(None, ge=1, le=10)
    notes: str | None = Field(None, max_length=5000)


class VelocityResponse(BaseModel):
    """Velocity analysis over a video's snapshots."""

    video_id: str
    snapshots: int
    current_velocity: float | None = None
    avg_velocity: float | None = None
    peak_velocity: float | None = None
    acceleration: float | None = None
    trend: VelocityTrend | None = None
    velocity_score: int | None = None
    is_outlier_velocity: bool | None = None


def _to_response(outlier: Outlier) -> OutlierResponse:
    return OutlierResponse(**asdict(outlier))


def _not_found(video_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Outlier not found: {video_id}",
    )


@router.get(
    "",
    response_model=list[OutlierResponse],
    summary="List outliers",
    description="List outliers, highest score first.",
)
async def list_outliers(
    store: ScoutStoreDep,
    status_filter: OutlierStatus | None = Query(default=OutlierStatus.ACTIVE, alias="status"),
    only_new: bool = False,
    min_score: int | None = Query(default=None, ge=1, le=10),
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[OutlierResponse]:
    """List outliers."""
    outliers = store.list_outliers(
        status=status_filter,
        only_new=only_new,
        min_score=min_score,
        limit=limit,
    )
    return [_to_response(o) for o in outliers]


@router.get(
    "/{video_id}",
    response_model=OutlierResponse,
    summary="Get outlier",
)
async def get_outlier(video_id: str, store: ScoutStoreDep) -> OutlierResponse:
    """Get an outlier by video ID."""
    outlier = store.get_outlier(video_id)
    if outlier is None:
        raise _not_found(video_id)
    return _to_response(outlier)


@router.post(
    "/{video_id}/viewed",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark viewed",
    description="Clear the new flag of an outlier.",
)
async def mark_viewed(video_id: str, store: ScoutStoreDep) -> None:
    """Mark an outlier as viewed."""
    if not store.mark_outlier_viewed(video_id):
        raise _not_found(video_id)


@router.patch(
    "/{video_id}",
    response_model=OutlierResponse,
    summary="Update outlier",
    description="Change review status, priority or notes.",
)
async def update_outlier(
    video_id: str,
    request: UpdateOutlierRequest,
    store: ScoutStoreDep,
) -> OutlierResponse:
    """Apply reviewer changes."""
    outlier = store.update_outlier(
        video_id,
        status=request.status,
        priority=request.priority,
        notes=request.notes,
    )
    if outlier is None:
        raise _not_found(video_id)

    logger.info("outlier_updated", video_id=video_id, status=outlier.status)
    return _to_response(outlier)


@router.get(
    "/{video_id}/velocity",
    response_model=VelocityResponse,
    summary="Outlier velocity",
    description="Views/hour trend across the stored snapshots of an outlier.",
)
async def get_outlier_velocity(video_id: str, store: ScoutStoreDep) -> VelocityResponse:
    """Velocity analysis for an outlier."""
    outlier = store.get_outlier(video_id)
    if outlier is None:
        raise _not_found(video_id)

    snapshots = store.get_video_snapshots(video_id)
    data = analyze(snapshots)
    if data is None:
        return VelocityResponse(video_id=video_id, snapshots=len(snapshots))

    channel = store.get_tracked_channel(outlier.channel_id)
    avg_views = channel.avg_views if channel else 0

    return VelocityResponse(
        video_id=video_id,
        snapshots=len(snapshots),
        current_velocity=data.current_velocity,
        avg_velocity=data.avg_velocity,
        peak_velocity=data.peak_velocity,
        acceleration=data.acceleration,
        trend=data.trend,
        velocity_score=velocity_to_score(data.current_velocity, avg_views),
        is_outlier_velocity=is_outlier_velocity(data.current_velocity, avg_views),
    )
