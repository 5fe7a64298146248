"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from tunealert.domain.entities import (
    FollowedArtist,
    JobCheckpoint,
    JobStatus,
    Notification,
    Release,
    User,
)


# Hey future me - the release check only ever talks to the catalog through this port.
# SpotifyCatalogClient implements it; tests plug in a fake that returns canned releases
# or raises RateLimitExceededError. If you add a second provider (Deezer?), implement
# this and the runner does not change.
class ICatalogClient(ABC):
    """Port for the music catalog provider."""

    @abstractmethod
    async def get_token(self) -> str:
        """Return a valid bearer token, reusing the cached one while fresh.

        Raises:
            CatalogAuthError: Provider rejected credentials or returned no token
            ConfigurationError: Client credentials are not configured
        """
        pass

    @abstractmethod
    async def get_artist_recent_releases(
        self,
        artist_id: str,
        access_token: str | None = None,
        limit: int = 10,
        lookback_months: int = 24,
    ) -> list[Release]:
        """Get an artist's releases inside the lookback window, newest first.

        Returns an empty list on non-fatal failures.

        Raises:
            RateLimitExceededError: Provider answered HTTP 429
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources."""
        pass


class IUserRepository(ABC):
    """Read-only access to users for the batch job."""

    @abstractmethod
    async def list_notification_batch(
        self, after_user_id: str | None, limit: int
    ) -> list[User]:
        """Users with notifications enabled, id ascending, id > after_user_id."""
        pass


class IFollowedArtistRepository(ABC):
    """Read-only access to follow relationships."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[FollowedArtist]:
        """Artists followed by a user in follow order."""
        pass


class INotificationRepository(ABC):
    """Dedup-aware notification storage."""

    @abstractmethod
    async def exists(self, user_id: str, release_id: str) -> bool:
        """Check whether the user was already notified about this release."""
        pass

    @abstractmethod
    async def create_release_notification(
        self, user_id: str, artist: FollowedArtist, release: Release
    ) -> bool:
        """Create the notification unless one exists. Never raises for duplicates.

        Returns:
            True if a row was inserted, False if it already existed
        """
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0, unread_only: bool = False
    ) -> list[Notification]:
        """List a user's notifications, newest first."""
        pass

    @abstractmethod
    async def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        """Count a user's notifications."""
        pass


# Listen, there is exactly one checkpoint row per job and it is pre-seeded by the migration.
# load() raising EntityNotFoundException is NOT a "create it" signal - the runner treats a
# missing row as a deployment bug and aborts.
class ICheckpointRepository(ABC):
    """Durable job checkpoint storage."""

    @abstractmethod
    async def load(self, job_name: str) -> JobCheckpoint:
        """Load the checkpoint row.

        Raises:
            EntityNotFoundException: Job was never seeded
        """
        pass

    @abstractmethod
    async def mark_running(self, job_name: str, now: datetime) -> None:
        """Set status=running and last_run_at=now unconditionally."""
        pass

    @abstractmethod
    async def claim_run(self, job_name: str, now: datetime, stale_after_seconds: int) -> bool:
        """Set status=running only if no live run holds the job.

        Returns:
            True if this caller now owns the run
        """
        pass

    @abstractmethod
    async def save_progress(
        self,
        job_name: str,
        last_processed_user_id: str | None,
        users_processed_delta: int,
        notifications_created_delta: int,
        status: JobStatus,
        error_message: str | None = None,
    ) -> None:
        """Advance the cursor and add the deltas to the running totals."""
        pass

    @abstractmethod
    async def mark_error(self, job_name: str, message: str) -> None:
        """Set status=error with the failure message. Cursor is left alone."""
        pass

    @abstractmethod
    async def reset_cycle(self, job_name: str) -> None:
        """Clear the cursor and set status=completed after a full sweep."""
        pass


__all__ = [
    "ICatalogClient",
    "ICheckpointRepository",
    "IFollowedArtistRepository",
    "INotificationRepository",
    "IUserRepository",
]
