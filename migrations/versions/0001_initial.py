"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tracked channels
    op.create_table(
        "tracked_channels",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("channel_name", sa.String(255), nullable=False),
        sa.Column("handle", sa.String(255), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("avg_views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("subscriber_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_videos", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "refresh_interval_seconds", sa.Integer(), nullable=False, server_default="21600"
        ),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel_id"),
    )
    op.create_index("ix_tracked_channels_priority", "tracked_channels", ["priority"])
    op.create_index("ix_tracked_channels_last_scraped_at", "tracked_channels", ["last_scraped_at"])
    op.create_index("ix_tracked_channels_active", "tracked_channels", ["active"])

    # Video snapshots (append-only)
    op.create_table(
        "video_snapshots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("snapshot_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("likes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("comments", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("engagement_ratio", sa.Float(), nullable=False, server_default="0"),
        sa.Column("velocity_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("multiplier", sa.Float(), nullable=False, server_default="1"),
        sa.Column("outlier_score", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("video_id", "snapshot_at", name="uq_video_snapshots_video_time"),
    )
    op.create_index("ix_video_snapshots_video_id", "video_snapshots", ["video_id"])
    op.create_index("ix_video_snapshots_channel_id", "video_snapshots", ["channel_id"])
    op.create_index("ix_video_snapshots_snapshot_at", "video_snapshots", ["snapshot_at"])

    # Outliers (one row per video)
    op.create_table(
        "outliers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("channel_name", sa.String(255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("likes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("comments", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("multiplier", sa.Float(), nullable=False, server_default="1"),
        sa.Column("outlier_score", sa.Integer(), nullable=False),
        sa.Column("velocity_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("engagement_ratio", sa.Float(), nullable=False, server_default="0"),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("first_seen_views", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("video_id"),
    )
    op.create_index("ix_outliers_channel_id", "outliers", ["channel_id"])
    op.create_index("ix_outliers_outlier_score", "outliers", ["outlier_score"])
    op.create_index("ix_outliers_detected_at", "outliers", ["detected_at"])
    op.create_index("ix_outliers_status", "outliers", ["status"])
    op.create_index("ix_outliers_is_new", "outliers", ["is_new"])

    # Keyed JSON state (quota ledger, scheduler)
    op.create_table(
        "app_state",
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("app_state")
    op.drop_table("outliers")
    op.drop_table("video_snapshots")
    op.drop_table("tracked_channels")
