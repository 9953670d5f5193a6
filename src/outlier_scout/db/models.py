"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TrackedChannelModel(Base):
    """Competitor channel under surveillance."""

    __tablename__ = "tracked_channels"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    channel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    handle: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Baseline
    avg_views: Mapped[int] = mapped_column(BigInteger, default=0)
    subscriber_count: Mapped[int] = mapped_column(BigInteger, default=0)
    total_videos: Mapped[int] = mapped_column(Integer, default=0)

    # Scheduling
    refresh_interval_seconds: Mapped[int] = mapped_column(Integer, default=21600)
    priority: Mapped[int] = mapped_column(Integer, default=5, index=True)
    last_scraped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )


class VideoSnapshotModel(Base):
    """Point-in-time observation of a video's metrics."""

    __tablename__ = "video_snapshots"
    __table_args__ = (
        UniqueConstraint("video_id", "snapshot_at", name="uq_video_snapshots_video_time"),
    )

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    video_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    snapshot_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    views: Mapped[int] = mapped_column(BigInteger, default=0)
    likes: Mapped[int] = mapped_column(BigInteger, default=0)
    comments: Mapped[int] = mapped_column(BigInteger, default=0)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0)

    engagement_ratio: Mapped[float] = mapped_column(Float, default=0.0)
    velocity_score: Mapped[float] = mapped_column(Float, default=0.0)
    multiplier: Mapped[float] = mapped_column(Float, default=1.0)
    outlier_score: Mapped[int] = mapped_column(Integer, default=1)


class OutlierModel(Base):
    """Current state of a detected outlier video (one row per video)."""

    __tablename__ = "outliers"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    video_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel_name: Mapped[str] = mapped_column(String(255), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0)

    views: Mapped[int] = mapped_column(BigInteger, default=0)
    likes: Mapped[int] = mapped_column(BigInteger, default=0)
    comments: Mapped[int] = mapped_column(BigInteger, default=0)
    multiplier: Mapped[float] = mapped_column(Float, default=1.0)
    outlier_score: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    velocity_score: Mapped[float] = mapped_column(Float, default=0.0)
    engagement_ratio: Mapped[float] = mapped_column(Float, default=0.0)

    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    first_seen_views: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Reviewer-owned
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    is_new: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=5)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class AppStateModel(Base):
    """Keyed JSON documents (quota ledger, scheduler state)."""

    __tablename__ = "app_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
