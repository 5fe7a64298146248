"""Release feed for followed artists."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from tunealert.api.dependencies import get_followed_releases_service
from tunealert.application.services import FollowedReleasesService

router = APIRouter(prefix="/releases", tags=["releases"])


@router.get("/followed")
async def followed_releases(
    user_id: Annotated[str, Query(min_length=1)],
    service: FollowedReleasesService = Depends(get_followed_releases_service),
) -> dict[str, Any]:
    """Recent releases (5 per artist) of every artist the user follows, newest first."""
    feed = await service.get_followed_releases(user_id)
    return {"releases": [item.to_dict() for item in feed]}
