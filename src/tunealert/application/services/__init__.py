"""Application services."""

from tunealert.application.services.followed_releases_service import (
    FollowedRelease,
    FollowedReleasesService,
)
from tunealert.application.services.release_check_service import ReleaseCheckService

__all__ = [
    "FollowedRelease",
    "FollowedReleasesService",
    "ReleaseCheckService",
]
