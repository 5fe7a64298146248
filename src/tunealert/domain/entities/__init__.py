"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any


# Hey future me - ReleaseType mirrors Spotify's album_type. "compilation" exists but the
# release check never queries that group; it only shows up when Spotify tags an album/single
# query result as one. Unknown values fall back to ALBUM instead of crashing.
class ReleaseType(str, Enum):
    """Kind of release as reported by the catalog."""

    ALBUM = "album"
    SINGLE = "single"
    COMPILATION = "compilation"

    @classmethod
    def from_string(cls, value: str | None) -> "ReleaseType":
        """Parse catalog album_type, defaulting to ALBUM."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.ALBUM


class JobStatus(str, Enum):
    """Status of a checkpointed batch job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class User:
    """User eligible for release notifications. Read-only for the release check."""

    id: str
    nickname: str | None = None
    notification_enabled: bool = True


@dataclass(frozen=True)
class FollowedArtist:
    """A user's follow of a catalog artist."""

    user_id: str
    artist_id: str
    artist_name: str
    artist_image: str | None = None


@dataclass(frozen=True)
class Release:
    """Release as returned by the catalog for one artist.

    release_date is a naive date. Spotify only gives day precision at best, and
    year/month precision dates are pinned to the first day of the period.
    """

    id: str
    name: str
    release_type: ReleaseType
    release_date: date
    release_date_precision: str = "day"
    external_url: str | None = None
    image_url: str | None = None
    total_tracks: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.release_type.value,
            "releaseDate": self.release_date.isoformat(),
            "releaseDatePrecision": self.release_date_precision,
            "spotifyUrl": self.external_url,
            "image": self.image_url,
            "totalTracks": self.total_tracks,
        }


NEW_RELEASE_NOTIFICATION_TYPE = "new_release"


@dataclass
class Notification:
    """In-app notification telling a user about something new.

    At most one notification exists per (user_id, release_id). The release check is the
    only writer; read/unread toggling happens elsewhere.
    """

    user_id: str
    title: str
    message: str
    release_id: str
    release_name: str
    artist_id: str
    artist_name: str
    type: str = NEW_RELEASE_NOTIFICATION_TYPE
    link: str | None = None
    artist_image: str | None = None
    release_image: str | None = None
    read: bool = False
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def for_release(cls, user_id: str, artist: FollowedArtist, release: Release) -> "Notification":
        """Build the new-release notification for one user/artist/release triple."""
        return cls(
            user_id=user_id,
            title=f"New release: {release.name}",
            message=f'{artist.artist_name} released "{release.name}"',
            link=release.external_url,
            artist_id=artist.artist_id,
            artist_name=artist.artist_name,
            artist_image=artist.artist_image,
            release_id=release.id,
            release_name=release.name,
            release_image=release.image_url,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "artistId": self.artist_id,
            "artistName": self.artist_name,
            "artistImage": self.artist_image,
            "releaseId": self.release_id,
            "releaseName": self.release_name,
            "releaseImage": self.release_image,
            "read": self.read,
            "createdAt": self.created_at.isoformat(),
        }


# Hey future me - this is a snapshot of the single cron_state row, NOT a live handle.
# Every mutation goes through CheckpointRepository so the counters are incremented in SQL.
@dataclass
class JobCheckpoint:
    """Durable progress of a batch job between invocations."""

    job_name: str
    status: JobStatus = JobStatus.IDLE
    last_processed_user_id: str | None = None
    last_run_at: datetime | None = None
    total_users_processed: int = 0
    total_notifications_created: int = 0
    error_message: str | None = None
    updated_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.status == JobStatus.RUNNING

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the job health endpoint."""
        return {
            "jobName": self.job_name,
            "status": self.status.value,
            "lastProcessedUserId": self.last_processed_user_id,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "totalUsersProcessed": self.total_users_processed,
            "totalNotificationsCreated": self.total_notifications_created,
            "errorMessage": self.error_message,
        }


class UnitFailureKind(str, Enum):
    """Which unit of work failed inside a release check run."""

    ARTIST = "artist"
    USER = "user"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class UnitFailure:
    """One isolated failure recorded instead of aborting the run."""

    kind: UnitFailureKind
    user_id: str
    message: str
    artist_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "userId": self.user_id,
            "artistId": self.artist_id,
            "message": self.message,
        }


@dataclass
class ReleaseCheckSummary:
    """Outcome of one release check invocation."""

    users_processed: int = 0
    notifications_created: int = 0
    execution_time_ms: int = 0
    next_checkpoint: str | None = None
    cycle_completed: bool = False
    deadline_reached: bool = False
    failures: list[UnitFailure] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Build the trigger's JSON payload."""
        payload: dict[str, Any] = {
            "success": True,
            "usersProcessed": self.users_processed,
            "notificationsCreated": self.notifications_created,
            "executionTime": self.execution_time_ms,
            "nextCheckpoint": self.next_checkpoint,
        }
        if self.cycle_completed:
            payload["message"] = "Cycle completed, checkpoint reset"
        if self.deadline_reached:
            payload["deadlineReached"] = True
        if self.failures:
            payload["failures"] = [failure.to_dict() for failure in self.failures]
        return payload


__all__ = [
    "NEW_RELEASE_NOTIFICATION_TYPE",
    "FollowedArtist",
    "JobCheckpoint",
    "JobStatus",
    "Notification",
    "Release",
    "ReleaseCheckSummary",
    "ReleaseType",
    "UnitFailure",
    "UnitFailureKind",
    "User",
]
