"""SQLAlchemy ORM models for TuneAlert."""

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Hey future me, utc_now() ensures ALL timestamps are UTC! Never use datetime.now() without
# timezone - that's "naive" datetime and causes bugs when servers are in different timezones.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! When we store UTC datetimes, they come
# back as "naive" (no tzinfo). This helper ensures we can safely compare with timezone-aware
# datetimes by attaching UTC if missing. The stale-run check in claim_run depends on this.
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models.

    All models inherit from this to use the same metadata registry.
    """

    pass


# Listen up, ProfileModel is a user as far as notifications care. The id is String(36) for
# UUID storage, and it is ALSO the release check's cursor: users are visited in ascending id
# order, so ids must stay immutable once created.
class ProfileModel(Base):
    """User profile with notification preference."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notification_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        # Batch page query: WHERE notification_enabled ORDER BY id
        Index("ix_profiles_notification_enabled_id", "notification_enabled", "id"),
    )


class FollowedArtistModel(Base):
    """A user following a catalog artist."""

    __tablename__ = "followed_artists"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Spotify artist id (22 chars base62), not our UUID
    artist_id: Mapped[str] = mapped_column(String(64), nullable=False)
    artist_name: Mapped[str] = mapped_column(String(255), nullable=False)
    artist_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "artist_id", name="uq_followed_artists_user_artist"),
    )


# Hey future me - uq_notifications_user_release IS the dedup guarantee. The repository still
# probes before inserting, but two overlapping runs can both pass the probe, and then the
# INSERT ... ON CONFLICT DO NOTHING against this constraint is what keeps it at one row.
class NotificationModel(Base):
    """In-app notification row."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="new_release")
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    artist_id: Mapped[str] = mapped_column(String(64), nullable=False)
    artist_name: Mapped[str] = mapped_column(String(255), nullable=False)
    artist_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_id: Mapped[str] = mapped_column(String(64), nullable=False)
    release_name: Mapped[str] = mapped_column(String(500), nullable=False)
    release_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "release_id", name="uq_notifications_user_release"),
        # Notification dropdown: unread first, newest first, per user
        Index("ix_notifications_user_read_created", "user_id", "read", "created_at"),
    )


# Yo, CronStateModel is the checkpoint. One row per job_name, seeded by the initial migration.
# Nobody inserts into this table at runtime - a missing row means a broken deployment.
class CronStateModel(Base):
    """Durable checkpoint for scheduled batch jobs."""

    __tablename__ = "cron_state"

    job_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    # Cursor: last user id fully handled in the current sweep (NULL = start of sweep)
    last_processed_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # Status: idle, running, completed, error
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="idle", server_default="idle"
    )
    last_run_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    total_users_processed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    total_notifications_created: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


__all__ = [
    "Base",
    "CronStateModel",
    "FollowedArtistModel",
    "NotificationModel",
    "ProfileModel",
    "ensure_utc_aware",
    "utc_now",
]
