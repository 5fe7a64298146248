"""Tests for domain entities and their API serialization."""

from datetime import UTC, date, datetime

from tunealert.domain.entities import (
    FollowedArtist,
    JobCheckpoint,
    JobStatus,
    Notification,
    Release,
    ReleaseCheckSummary,
    ReleaseType,
    UnitFailure,
    UnitFailureKind,
)


def _release() -> Release:
    return Release(
        id="rel-1",
        name="Random Access Memories",
        release_type=ReleaseType.ALBUM,
        release_date=date(2025, 6, 1),
        external_url="https://open.spotify.com/album/rel-1",
        image_url="https://i.scdn.co/image/rel-1",
        total_tracks=13,
    )


class TestReleaseType:
    def test_known_values(self) -> None:
        assert ReleaseType.from_string("single") == ReleaseType.SINGLE
        assert ReleaseType.from_string("COMPILATION") == ReleaseType.COMPILATION

    def test_unknown_and_missing_fall_back_to_album(self) -> None:
        assert ReleaseType.from_string("appears_on") == ReleaseType.ALBUM
        assert ReleaseType.from_string(None) == ReleaseType.ALBUM


class TestNotification:
    def test_for_release_builds_title_and_message(self) -> None:
        artist = FollowedArtist(
            user_id="user-1",
            artist_id="artist-1",
            artist_name="Daft Punk",
            artist_image="https://i.scdn.co/image/artist-1",
        )

        notification = Notification.for_release("user-1", artist, _release())

        assert notification.title == "New release: Random Access Memories"
        assert notification.message == 'Daft Punk released "Random Access Memories"'
        assert notification.type == "new_release"
        assert notification.link == "https://open.spotify.com/album/rel-1"
        assert notification.release_id == "rel-1"
        assert notification.artist_image == "https://i.scdn.co/image/artist-1"
        assert notification.release_image == "https://i.scdn.co/image/rel-1"
        assert notification.read is False

    def test_to_dict_uses_camel_case(self) -> None:
        created = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
        notification = Notification(
            id="n-1",
            user_id="user-1",
            title="t",
            message="m",
            release_id="rel-1",
            release_name="r",
            artist_id="artist-1",
            artist_name="a",
            created_at=created,
        )

        data = notification.to_dict()

        assert data["userId"] == "user-1"
        assert data["releaseId"] == "rel-1"
        assert data["createdAt"] == created.isoformat()


class TestReleaseCheckSummary:
    def test_plain_response(self) -> None:
        summary = ReleaseCheckSummary(
            users_processed=2,
            notifications_created=1,
            execution_time_ms=1234,
            next_checkpoint="user-2",
        )

        assert summary.to_response() == {
            "success": True,
            "usersProcessed": 2,
            "notificationsCreated": 1,
            "executionTime": 1234,
            "nextCheckpoint": "user-2",
        }

    def test_cycle_completed_adds_message(self) -> None:
        response = ReleaseCheckSummary(cycle_completed=True).to_response()

        assert response["message"] == "Cycle completed, checkpoint reset"
        assert response["nextCheckpoint"] is None

    def test_deadline_and_failures_are_reported(self) -> None:
        summary = ReleaseCheckSummary(deadline_reached=True)
        summary.failures.append(
            UnitFailure(
                kind=UnitFailureKind.ARTIST,
                user_id="user-1",
                artist_id="artist-2",
                message="boom",
            )
        )

        response = summary.to_response()

        assert response["deadlineReached"] is True
        assert response["failures"] == [
            {"kind": "artist", "userId": "user-1", "artistId": "artist-2", "message": "boom"}
        ]


class TestJobCheckpoint:
    def test_is_running(self) -> None:
        assert JobCheckpoint(job_name="job", status=JobStatus.RUNNING).is_running
        assert not JobCheckpoint(job_name="job").is_running

    def test_to_dict(self) -> None:
        checkpoint = JobCheckpoint(
            job_name="check-new-releases",
            status=JobStatus.ERROR,
            last_processed_user_id="user-7",
            total_users_processed=70,
            error_message="Failed to get Spotify token",
        )

        data = checkpoint.to_dict()

        assert data["status"] == "error"
        assert data["lastProcessedUserId"] == "user-7"
        assert data["lastRunAt"] is None
        assert data["totalUsersProcessed"] == 70
        assert data["errorMessage"] == "Failed to get Spotify token"
