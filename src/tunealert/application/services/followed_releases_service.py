"""Release feed for the artists a user follows."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from tunealert.domain.entities import FollowedArtist, Release
from tunealert.domain.ports import ICatalogClient, IFollowedArtistRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FollowedRelease:
    """A release tagged with the followed artist it came from."""

    release: Release
    artist_name: str
    artist_image: str | None

    def to_dict(self) -> dict[str, Any]:
        payload = self.release.to_dict()
        payload["artistName"] = self.artist_name
        payload["artistImage"] = self.artist_image
        return payload


class FollowedReleasesService:
    """Builds the "releases from artists you follow" feed.

    Hey future me - unlike the cron job this is interactive, so artists are fetched
    concurrently (bounded by max_concurrency) and there is no freshness window beyond
    the catalog lookback. One failing artist just contributes nothing to the feed.
    """

    def __init__(
        self,
        follows: IFollowedArtistRepository,
        catalog: ICatalogClient,
        releases_per_artist: int = 5,
        lookback_months: int = 24,
        max_concurrency: int = 5,
    ) -> None:
        self._follows = follows
        self._catalog = catalog
        self._releases_per_artist = releases_per_artist
        self._lookback_months = lookback_months
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def _releases_for(self, artist: FollowedArtist, token: str) -> list[FollowedRelease]:
        async with self._semaphore:
            releases = await self._catalog.get_artist_recent_releases(
                artist.artist_id,
                token,
                limit=self._releases_per_artist,
                lookback_months=self._lookback_months,
            )
        return [
            FollowedRelease(
                release=release,
                artist_name=artist.artist_name,
                artist_image=artist.artist_image,
            )
            for release in releases
        ]

    async def get_followed_releases(self, user_id: str) -> list[FollowedRelease]:
        """Get recent releases of every artist the user follows, newest first.

        Raises:
            CatalogAuthError / ConfigurationError / ExternalServiceError: no catalog token
        """
        artists = await self._follows.list_for_user(user_id)
        if not artists:
            return []

        token = await self._catalog.get_token()
        results = await asyncio.gather(
            *(self._releases_for(artist, token) for artist in artists),
            return_exceptions=True,
        )

        feed: list[FollowedRelease] = []
        for artist, result in zip(artists, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "Release feed: artist %s (%s) failed: %s",
                    artist.artist_name,
                    artist.artist_id,
                    result,
                )
                continue
            feed.extend(result)

        feed.sort(key=lambda item: item.release.release_date, reverse=True)
        return feed
