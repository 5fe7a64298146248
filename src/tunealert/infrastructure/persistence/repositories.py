"""Repository implementations for domain entities."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tunealert.domain.entities import (
    FollowedArtist,
    JobCheckpoint,
    JobStatus,
    Notification,
    Release,
    User,
)
from tunealert.domain.exceptions import EntityNotFoundException
from tunealert.domain.ports import (
    ICheckpointRepository,
    IFollowedArtistRepository,
    INotificationRepository,
    IUserRepository,
)

from .models import (
    CronStateModel,
    FollowedArtistModel,
    NotificationModel,
    ProfileModel,
    ensure_utc_aware,
    utc_now,
)


class UserRepository(IUserRepository):
    """Read-only access to profiles for the release check."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    # Hey future me - this query IS the cursor. ORDER BY id + WHERE id > cursor gives a total
    # order, so successive pages never skip or repeat as long as ids are immutable. Don't add
    # a secondary sort key here, it would break the "> cursor" contract.
    async def list_notification_batch(
        self, after_user_id: str | None, limit: int
    ) -> list[User]:
        """Get the next page of users with notifications enabled."""
        stmt = select(ProfileModel).where(
            ProfileModel.notification_enabled == True  # noqa: E712
        )
        if after_user_id is not None:
            stmt = stmt.where(ProfileModel.id > after_user_id)
        stmt = stmt.order_by(ProfileModel.id.asc()).limit(limit)

        result = await self.session.execute(stmt)
        return [
            User(
                id=model.id,
                nickname=model.nickname,
                notification_enabled=model.notification_enabled,
            )
            for model in result.scalars().all()
        ]


class FollowedArtistRepository(IFollowedArtistRepository):
    """Read-only access to follow relationships."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def list_for_user(self, user_id: str) -> list[FollowedArtist]:
        """Get a user's followed artists in the order they were followed."""
        stmt = (
            select(FollowedArtistModel)
            .where(FollowedArtistModel.user_id == user_id)
            .order_by(FollowedArtistModel.created_at.asc(), FollowedArtistModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [
            FollowedArtist(
                user_id=model.user_id,
                artist_id=model.artist_id,
                artist_name=model.artist_name,
                artist_image=model.artist_image,
            )
            for model in result.scalars().all()
        ]


class NotificationRepository(INotificationRepository):
    """Dedup-aware notification storage.

    Key methods:
    - exists(): cheap probe, skips the insert round trip for the common duplicate case
    - create_release_notification(): insert guarded by uq_notifications_user_release
    - list_for_user() / count_for_user(): read side for the notifications API
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def exists(self, user_id: str, release_id: str) -> bool:
        """Check whether a notification for this (user, release) already exists."""
        stmt = select(
            select(NotificationModel.id)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.release_id == release_id,
            )
            .exists()
        )
        result = await self.session.execute(stmt)
        return bool(result.scalar())

    def _dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    async def _insert_ignoring_duplicates(self, values: dict[str, Any]) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING on (user_id, release_id).

        Returns:
            True if the row was inserted
        """
        dialect = self._dialect_name()
        conflict_cols = ["user_id", "release_id"]

        if dialect == "postgresql":
            stmt: Any = (
                pg_insert(NotificationModel)
                .values(**values)
                .on_conflict_do_nothing(index_elements=conflict_cols)
            )
        elif dialect == "sqlite":
            stmt = (
                sqlite_insert(NotificationModel)
                .values(**values)
                .on_conflict_do_nothing(index_elements=conflict_cols)
            )
        else:
            # Hey future me - no portable ON CONFLICT, so fall back to a SAVEPOINT. A
            # unique violation only rolls back the savepoint, not the caller's transaction.
            try:
                async with self.session.begin_nested():
                    await self.session.execute(insert(NotificationModel).values(**values))
            except IntegrityError:
                return False
            return True

        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    # Hey future me - this is THE dedup contract: returns False for duplicates, never raises
    # for them. The probe handles the normal re-run case, the constraint handles races.
    async def create_release_notification(
        self, user_id: str, artist: FollowedArtist, release: Release
    ) -> bool:
        """Create a new-release notification unless one already exists.

        Args:
            user_id: Recipient
            artist: Followed artist the release belongs to
            release: Release to notify about

        Returns:
            True if a new row was inserted, False if it was a duplicate
        """
        if await self.exists(user_id, release.id):
            return False

        notification = Notification.for_release(user_id, artist, release)
        values = {
            "id": str(uuid.uuid4()),
            "user_id": notification.user_id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "link": notification.link,
            "artist_id": notification.artist_id,
            "artist_name": notification.artist_name,
            "artist_image": notification.artist_image,
            "release_id": notification.release_id,
            "release_name": notification.release_name,
            "release_image": notification.release_image,
            "read": False,
            "created_at": utc_now(),
        }
        return await self._insert_ignoring_duplicates(values)

    @staticmethod
    def _model_to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=model.type,
            title=model.title,
            message=model.message,
            link=model.link,
            artist_id=model.artist_id,
            artist_name=model.artist_name,
            artist_image=model.artist_image,
            release_id=model.release_id,
            release_name=model.release_name,
            release_image=model.release_image,
            read=model.read,
            created_at=ensure_utc_aware(model.created_at),
        )

    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0, unread_only: bool = False
    ) -> list[Notification]:
        """List a user's notifications, newest first."""
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.read == False)  # noqa: E712
        stmt = (
            stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        """Count a user's notifications."""
        stmt = (
            select(func.count())
            .select_from(NotificationModel)
            .where(NotificationModel.user_id == user_id)
        )
        if unread_only:
            stmt = stmt.where(NotificationModel.read == False)  # noqa: E712
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)


class CheckpointRepository(ICheckpointRepository):
    """Repository for the single cron_state row of a job.

    Key methods:
    - load(): snapshot of the row (EntityNotFoundException if never seeded)
    - claim_run() / mark_running(): flag the run as started
    - save_progress(): move the cursor and add counters in SQL
    - mark_error() / reset_cycle(): terminal transitions
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    # Hey future me - every write here is a bulk UPDATE with synchronize_session=False. We
    # never hold a CronStateModel across calls; load() always re-reads (populate_existing)
    # so a stale identity-map copy can't hide another run's update.
    async def _update(self, job_name: str, *criteria: Any, **values: Any) -> int:
        values.setdefault("updated_at", utc_now())
        stmt = (
            update(CronStateModel)
            .where(CronStateModel.job_name == job_name, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def _update_existing(self, job_name: str, **values: Any) -> None:
        if await self._update(job_name, **values) == 0:
            raise EntityNotFoundException("JobCheckpoint", job_name)

    async def load(self, job_name: str) -> JobCheckpoint:
        """Load the checkpoint row for a job.

        Raises:
            EntityNotFoundException: No row for this job name
        """
        stmt = (
            select(CronStateModel)
            .where(CronStateModel.job_name == job_name)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            raise EntityNotFoundException("JobCheckpoint", job_name)

        return JobCheckpoint(
            job_name=model.job_name,
            status=JobStatus(model.status),
            last_processed_user_id=model.last_processed_user_id,
            last_run_at=ensure_utc_aware(model.last_run_at) if model.last_run_at else None,
            total_users_processed=model.total_users_processed,
            total_notifications_created=model.total_notifications_created,
            error_message=model.error_message,
            updated_at=ensure_utc_aware(model.updated_at) if model.updated_at else None,
        )

    async def mark_running(self, job_name: str, now: datetime) -> None:
        """Set status=running unconditionally (advisory only)."""
        await self._update_existing(
            job_name, status=JobStatus.RUNNING.value, last_run_at=now
        )

    # Listen up - this is the only real mutual exclusion we have. It's a compare-and-set in
    # one UPDATE: it matches only when nobody holds the job, or the holder went silent for
    # longer than stale_after_seconds (crashed/killed invocation). rowcount tells us who won.
    async def claim_run(self, job_name: str, now: datetime, stale_after_seconds: int) -> bool:
        """Claim the run if no live run holds it.

        Returns:
            True if this caller now owns the run, False if another run is active
        """
        stale_before = now - timedelta(seconds=stale_after_seconds)
        claimed = await self._update(
            job_name,
            or_(
                CronStateModel.status != JobStatus.RUNNING.value,
                CronStateModel.last_run_at.is_(None),
                CronStateModel.last_run_at < stale_before,
            ),
            status=JobStatus.RUNNING.value,
            last_run_at=now,
        )
        return claimed == 1

    async def save_progress(
        self,
        job_name: str,
        last_processed_user_id: str | None,
        users_processed_delta: int,
        notifications_created_delta: int,
        status: JobStatus,
        error_message: str | None = None,
    ) -> None:
        """Move the cursor and add the deltas to the running totals in one UPDATE."""
        await self._update_existing(
            job_name,
            last_processed_user_id=last_processed_user_id,
            total_users_processed=CronStateModel.total_users_processed + users_processed_delta,
            total_notifications_created=(
                CronStateModel.total_notifications_created + notifications_created_delta
            ),
            status=status.value,
            error_message=error_message,
        )

    async def mark_error(self, job_name: str, message: str) -> None:
        """Flag the job as failed. The cursor is left where it was."""
        await self._update_existing(
            job_name, status=JobStatus.ERROR.value, error_message=message
        )

    async def reset_cycle(self, job_name: str) -> None:
        """Wrap the cursor around after a full sweep."""
        await self._update_existing(
            job_name,
            last_processed_user_id=None,
            status=JobStatus.COMPLETED.value,
            error_message=None,
        )


__all__ = [
    "CheckpointRepository",
    "FollowedArtistRepository",
    "NotificationRepository",
    "UserRepository",
]
