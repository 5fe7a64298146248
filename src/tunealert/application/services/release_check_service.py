"""Incremental release-notification batch job.

Hey future me - this is the heart of TuneAlert. One call to run() is one time-boxed pass:

1. Load the checkpoint row (cron_state) and claim the run
2. Page up to users_per_batch users with id > cursor, ascending
3. Empty page → the sweep is done: reset cursor to NULL, status=completed
4. Get ONE Spotify app token for the whole invocation
5. For each user → each followed artist (sequential, rate limited):
   fetch recent releases, keep the ones inside the 6h window, create notifications
6. After every completed user: move cursor + counters and COMMIT
7. Stop early when the wall-clock budget (45s) is used up
8. Final checkpoint write: status=idle

Failure isolation:
- Artist fetch fails → record UnitFailure, next artist. Cursor decision unaffected.
- 429 → back off (capped), treat artist as "no releases", next artist.
- Anything else blowing up inside a user (DB hiccup) → rollback that user's uncommitted
  work, record UnitFailure, cursor STILL advances past the user. Missing one notification
  beats stalling the whole sweep on a poisoned user forever.
- Checkpoint missing or unreadable, claim query failing, token unavailable, user page
  query failing → the whole run fails with JobExecutionError and cron_state gets
  status=error (except when the row is missing, there is nothing to flag then).

Dedup is the notification repository's job (probe + unique constraint), which is why
re-processing a user after a crash or a deadline cut is always safe.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import NoReturn

from sqlalchemy.ext.asyncio import AsyncSession

from tunealert.config import ReleaseCheckSettings
from tunealert.domain.entities import (
    FollowedArtist,
    JobStatus,
    ReleaseCheckSummary,
    UnitFailure,
    UnitFailureKind,
    User,
)
from tunealert.domain.exceptions import (
    DomainException,
    EntityNotFoundException,
    JobAlreadyRunningError,
    JobExecutionError,
    RateLimitExceededError,
)
from tunealert.domain.ports import (
    ICatalogClient,
    ICheckpointRepository,
    IFollowedArtistRepository,
    INotificationRepository,
    IUserRepository,
)
from tunealert.domain.value_objects.release_dates import is_within_window
from tunealert.infrastructure.observability.log_messages import LogMessages
from tunealert.infrastructure.persistence.models import utc_now
from tunealert.infrastructure.persistence.repositories import (
    CheckpointRepository,
    FollowedArtistRepository,
    NotificationRepository,
    UserRepository,
)
from tunealert.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class _UserOutcome:
    """Result of processing one user."""

    notifications_created: int = 0
    # True when the deadline cut the artist loop short
    interrupted: bool = False


class ReleaseCheckService:
    """Checkpointed, time-boxed release notification job.

    Not safe to share between concurrent invocations - build one per run. Overlapping runs
    are kept apart by claim_run() on the checkpoint row when exclusive_runs is on.
    """

    def __init__(
        self,
        session: AsyncSession,
        catalog: ICatalogClient,
        settings: ReleaseCheckSettings,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        rate_limiter: RateLimiter | None = None,
        users: IUserRepository | None = None,
        follows: IFollowedArtistRepository | None = None,
        notifications: INotificationRepository | None = None,
        checkpoints: ICheckpointRepository | None = None,
    ) -> None:
        """Initialize the release check.

        Args:
            session: Session every repository writes through; committed per user
            catalog: Catalog client (one per process, token cached on it)
            settings: Batch tuning knobs
            clock: Aware UTC "now" for the freshness window and last_run_at
            monotonic: Monotonic seconds for the time budget
            rate_limiter: Spacing/backoff for catalog calls. Built from settings if omitted.
            users: Override repositories (tests); default to SQL repositories on session
            follows: See users
            notifications: See users
            checkpoints: See users
        """
        self.session = session
        self.catalog = catalog
        self.settings = settings
        self._clock = clock
        self._monotonic = monotonic
        self._rate_limiter = rate_limiter or RateLimiter.from_settings(settings, clock=monotonic)
        self._users = users or UserRepository(session)
        self._follows = follows or FollowedArtistRepository(session)
        self._notifications = notifications or NotificationRepository(session)
        self._checkpoints = checkpoints or CheckpointRepository(session)

        self._job = settings.job_name
        self._window = timedelta(hours=settings.release_window_hours)
        self._started: float = 0.0
        self._now: datetime = clock()

    # === Time budget ===

    def _elapsed(self) -> float:
        return self._monotonic() - self._started

    def _deadline_exceeded(self) -> bool:
        return self._elapsed() > self.settings.max_execution_seconds

    # === Entry point ===

    async def run(self) -> ReleaseCheckSummary:
        """Run one invocation of the batch.

        Returns:
            Summary of this invocation (a deadline-truncated run is still a success)

        Raises:
            JobAlreadyRunningError: Another run holds the claim (exclusive_runs only)
            JobExecutionError: Checkpoint missing or unreadable, claim failed, token
                unavailable or user page failed
        """
        self._started = self._monotonic()
        self._now = self._clock()

        try:
            checkpoint = await self._checkpoints.load(self._job)
        except EntityNotFoundException as e:
            # Nothing to flag, the row itself is what's missing
            raise JobExecutionError(
                self._job, f"Checkpoint for job '{self._job}' is not initialized"
            ) from e
        except Exception as e:
            await self._fail(e)

        try:
            await self._start_run(checkpoint.last_run_at)
            logger.info(
                LogMessages.job_started(
                    self._job, checkpoint.last_processed_user_id, self.settings.users_per_batch
                )
            )
            summary = await self._run_batch(checkpoint.last_processed_user_id)
        except JobAlreadyRunningError:
            # The other run owns the checkpoint, leave it alone
            raise
        except Exception as e:
            await self._fail(e)

        summary.execution_time_ms = int(self._elapsed() * 1000)
        logger.info(
            LogMessages.job_completed(
                self._job,
                users=summary.users_processed,
                notifications=summary.notifications_created,
                duration_ms=summary.execution_time_ms,
                next_cursor=summary.next_checkpoint,
                failures=len(summary.failures),
                deadline_reached=summary.deadline_reached,
            )
        )
        return summary

    async def _fail(self, error: Exception) -> NoReturn:
        """Top-level boundary: flag the checkpoint, then re-raise as a job failure."""
        await self._record_failure(error)
        if isinstance(error, JobExecutionError):
            raise error
        raise JobExecutionError(self._job, str(error) or type(error).__name__) from error

    async def _start_run(self, previous_run_at: datetime | None) -> None:
        """Flip the checkpoint to running, exclusively if configured."""
        if self.settings.exclusive_runs:
            claimed = await self._checkpoints.claim_run(
                self._job, self._now, self.settings.stale_run_seconds
            )
            if not claimed:
                await self.session.rollback()
                logger.warning(
                    LogMessages.job_already_running(
                        self._job, previous_run_at.isoformat() if previous_run_at else None
                    )
                )
                raise JobAlreadyRunningError(self._job)
        else:
            await self._checkpoints.mark_running(self._job, self._now)
        # Make "running" visible to monitors before the long part starts
        await self.session.commit()

    async def _record_failure(self, error: Exception) -> None:
        message = str(error) or type(error).__name__
        logger.error(LogMessages.job_failed(self._job, message), exc_info=error)
        await self.session.rollback()
        try:
            await self._checkpoints.mark_error(self._job, message)
            await self.session.commit()
        except Exception:
            # The caller still gets the first error, this one only goes to the log
            logger.exception("Could not flag checkpoint %s as failed", self._job)
            await self.session.rollback()

    # === Batch ===

    async def _run_batch(self, cursor: str | None) -> ReleaseCheckSummary:
        summary = ReleaseCheckSummary(next_checkpoint=cursor)

        try:
            users = await self._users.list_notification_batch(
                cursor, self.settings.users_per_batch
            )
        except Exception as e:
            raise JobExecutionError(self._job, f"Failed to fetch users: {e}") from e

        if not users:
            await self._checkpoints.reset_cycle(self._job)
            await self.session.commit()
            logger.info(LogMessages.cycle_completed(self._job))
            summary.cycle_completed = True
            summary.next_checkpoint = None
            return summary

        try:
            token = await self.catalog.get_token()
        except DomainException as e:
            raise JobExecutionError(
                self._job, f"Failed to get Spotify token: {e.message}"
            ) from e

        for user in users:
            if self._deadline_exceeded():
                self._note_deadline(summary)
                break

            outcome = await self._process_user_isolated(user, token, summary)
            summary.notifications_created += outcome.notifications_created

            # Hey future me - a user cut short by the deadline keeps the cursor where it was,
            # their remaining artists get retried next run (dedup makes that safe). Exception:
            # if NOBODY completed yet in this run, advance anyway, or a user following more
            # artists than fit in one budget would pin the sweep forever.
            advance = not outcome.interrupted or summary.users_processed == 0
            if advance:
                summary.next_checkpoint = user.id
                summary.users_processed += 1

            await self._checkpoints.save_progress(
                self._job,
                summary.next_checkpoint,
                users_processed_delta=1 if advance else 0,
                notifications_created_delta=outcome.notifications_created,
                status=JobStatus.RUNNING,
            )
            await self.session.commit()

            if outcome.interrupted:
                self._note_deadline(summary)
                break

        await self._checkpoints.save_progress(
            self._job,
            summary.next_checkpoint,
            users_processed_delta=0,
            notifications_created_delta=0,
            status=JobStatus.IDLE,
            error_message=None,
        )
        await self.session.commit()
        return summary

    def _note_deadline(self, summary: ReleaseCheckSummary) -> None:
        if summary.deadline_reached:
            return
        summary.deadline_reached = True
        logger.info(
            LogMessages.deadline_reached(
                self._job, self._elapsed(), self.settings.max_execution_seconds
            )
        )

    # === Units of work ===

    async def _process_user_isolated(
        self, user: User, token: str, summary: ReleaseCheckSummary
    ) -> _UserOutcome:
        """Process one user; any failure stays inside this user."""
        try:
            return await self._process_user(user, token, summary)
        except Exception as e:
            # Drop this user's uncommitted notifications, their count would be a lie otherwise
            await self.session.rollback()
            message = str(e) or type(e).__name__
            logger.warning(LogMessages.user_failed(user.id, message), exc_info=e)
            summary.failures.append(
                UnitFailure(kind=UnitFailureKind.USER, user_id=user.id, message=message)
            )
            return _UserOutcome()

    async def _process_user(
        self, user: User, token: str, summary: ReleaseCheckSummary
    ) -> _UserOutcome:
        outcome = _UserOutcome()
        artists = await self._follows.list_for_user(user.id)
        if not artists:
            logger.debug("User %s follows no artists, skipping", user.id)
            return outcome

        logger.debug("Checking %d artists for user %s", len(artists), user.id)
        for artist in artists:
            if self._deadline_exceeded():
                outcome.interrupted = True
                break
            outcome.notifications_created += await self._process_artist(
                user, artist, token, summary
            )
        return outcome

    async def _process_artist(
        self,
        user: User,
        artist: FollowedArtist,
        token: str,
        summary: ReleaseCheckSummary,
    ) -> int:
        """Fetch one artist's releases and notify about the fresh ones.

        Returns:
            Number of notifications actually created
        """
        try:
            async with self._rate_limiter:
                releases = await self.catalog.get_artist_recent_releases(
                    artist.artist_id,
                    token,
                    limit=self.settings.releases_per_artist,
                    lookback_months=self.settings.catalog_lookback_months,
                )
        except RateLimitExceededError as e:
            waited = await self._rate_limiter.handle_rate_limit_response(e.retry_after)
            logger.warning(LogMessages.rate_limited(artist.artist_id, waited))
            summary.failures.append(
                UnitFailure(
                    kind=UnitFailureKind.RATE_LIMITED,
                    user_id=user.id,
                    artist_id=artist.artist_id,
                    message=e.message,
                )
            )
            return 0
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(
                LogMessages.artist_failed(user.id, artist.artist_id, artist.artist_name, message)
            )
            summary.failures.append(
                UnitFailure(
                    kind=UnitFailureKind.ARTIST,
                    user_id=user.id,
                    artist_id=artist.artist_id,
                    message=message,
                )
            )
            return 0

        fresh = [r for r in releases if is_within_window(r.release_date, self._now, self._window)]
        if not fresh:
            return 0

        created = 0
        for release in fresh:
            if await self._notifications.create_release_notification(user.id, artist, release):
                created += 1
        logger.info(LogMessages.releases_found(artist.artist_name, len(fresh), created))
        return created
