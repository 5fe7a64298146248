"""initial schema: profiles, followed artists, notifications, cron state

Revision ID: aa10001aab01
Revises:
Create Date: 2026-10-19 09:00:00.000000

Hey future me - this is the whole TuneAlert schema in one go.

Tables:
- profiles: users, with the notification_enabled opt-in. The id doubles as the release
  check's cursor, so it must never change once written.
- followed_artists: (user, Spotify artist) pairs, unique per pair.
- notifications: in-app notifications. uq_notifications_user_release is THE dedup
  guarantee, the release check relies on it when two runs overlap.
- cron_state: one row per batch job holding cursor, status and running totals.

The cron_state row for "check-new-releases" is seeded here. The app never inserts it,
a missing row makes every run fail with "checkpoint not initialized".
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic
revision: str = "aa10001aab01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RELEASE_CHECK_JOB = "check-new-releases"


def upgrade() -> None:
    """Create all tables and seed the release check checkpoint."""
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("nickname", sa.String(100), nullable=True),
        sa.Column(
            "notification_enabled", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    # Batch page query: WHERE notification_enabled ORDER BY id
    op.create_index(
        "ix_profiles_notification_enabled_id",
        "profiles",
        ["notification_enabled", "id"],
    )

    op.create_table(
        "followed_artists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("artist_id", sa.String(64), nullable=False),
        sa.Column("artist_name", sa.String(255), nullable=False),
        sa.Column("artist_image", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("user_id", "artist_id", name="uq_followed_artists_user_artist"),
    )
    op.create_index("ix_followed_artists_user_id", "followed_artists", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False, server_default="new_release"),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("link", sa.Text, nullable=True),
        sa.Column("artist_id", sa.String(64), nullable=False),
        sa.Column("artist_name", sa.String(255), nullable=False),
        sa.Column("artist_image", sa.Text, nullable=True),
        sa.Column("release_id", sa.String(64), nullable=False),
        sa.Column("release_name", sa.String(500), nullable=False),
        sa.Column("release_image", sa.Text, nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("user_id", "release_id", name="uq_notifications_user_release"),
    )
    # Notification dropdown: per user, unread first, newest first
    op.create_index(
        "ix_notifications_user_read_created",
        "notifications",
        ["user_id", "read", "created_at"],
    )

    cron_state = op.create_table(
        "cron_state",
        sa.Column("job_name", sa.String(100), primary_key=True),
        sa.Column("last_processed_user_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="idle"),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_users_processed", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "total_notifications_created", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.bulk_insert(
        cron_state,
        [
            {
                "job_name": RELEASE_CHECK_JOB,
                "last_processed_user_id": None,
                "status": "idle",
                "total_users_processed": 0,
                "total_notifications_created": 0,
            }
        ],
    )


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    op.drop_table("cron_state")
    op.drop_index("ix_notifications_user_read_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_followed_artists_user_id", table_name="followed_artists")
    op.drop_table("followed_artists")
    op.drop_index("ix_profiles_notification_enabled_id", table_name="profiles")
    op.drop_table("profiles")
