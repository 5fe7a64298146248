"""Tests for the followed-artists release feed."""

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import FakeCatalog, Seeder, make_release
from tunealert.application.services import FollowedRelease, FollowedReleasesService
from tunealert.domain.exceptions import CatalogAuthError, ExternalServiceError
from tunealert.infrastructure.persistence import FollowedArtistRepository


class TestFollowedReleasesService:
    """Test suite for FollowedReleasesService."""

    async def test_merges_and_sorts_newest_first(self, session: AsyncSession, seed: Seeder):
        await seed.user("user-1")
        await seed.follow("user-1", "artist-a", "Artist A")
        await seed.follow("user-1", "artist-b", "Artist B")
        catalog = FakeCatalog(
            releases={
                "artist-a": [make_release("a-old", date(2024, 1, 10))],
                "artist-b": [
                    make_release("b-new", date(2025, 5, 30)),
                    make_release("b-mid", date(2024, 8, 1)),
                ],
            }
        )
        service = FollowedReleasesService(FollowedArtistRepository(session), catalog)

        feed = await service.get_followed_releases("user-1")

        assert [item.release.id for item in feed] == ["b-new", "b-mid", "a-old"]
        assert feed[0].artist_name == "Artist B"
        assert feed[2].artist_name == "Artist A"
        assert catalog.token_calls == 1

    async def test_limits_releases_per_artist(self, session: AsyncSession, seed: Seeder):
        await seed.user("user-1")
        await seed.follow("user-1", "artist-a")
        catalog = FakeCatalog(
            releases={
                "artist-a": [make_release(f"r{i}", date(2025, 5, 20 - i)) for i in range(8)]
            }
        )
        service = FollowedReleasesService(
            FollowedArtistRepository(session), catalog, releases_per_artist=5
        )

        feed = await service.get_followed_releases("user-1")

        assert len(feed) == 5

    async def test_failing_artist_contributes_nothing(
        self, session: AsyncSession, seed: Seeder
    ):
        await seed.user("user-1")
        await seed.follow("user-1", "artist-a")
        await seed.follow("user-1", "artist-b")
        catalog = FakeCatalog(
            releases={"artist-b": [make_release("b-1", date(2025, 5, 1))]},
            errors={"artist-a": ExternalServiceError("boom")},
        )
        service = FollowedReleasesService(FollowedArtistRepository(session), catalog)

        feed = await service.get_followed_releases("user-1")

        assert [item.release.id for item in feed] == ["b-1"]

    async def test_no_follows_skips_catalog(self, session: AsyncSession, seed: Seeder):
        await seed.user("user-1")
        catalog = FakeCatalog()
        service = FollowedReleasesService(FollowedArtistRepository(session), catalog)

        assert await service.get_followed_releases("user-1") == []
        assert catalog.token_calls == 0

    async def test_token_failure_propagates(self, session: AsyncSession, seed: Seeder):
        await seed.user("user-1")
        await seed.follow("user-1", "artist-a")
        catalog = FakeCatalog()
        catalog.token_error = CatalogAuthError("rejected")
        service = FollowedReleasesService(FollowedArtistRepository(session), catalog)

        with pytest.raises(CatalogAuthError):
            await service.get_followed_releases("user-1")

    def test_to_dict_tags_artist(self) -> None:
        release = make_release("r1", date(2025, 6, 1), name="Lucky")
        data = FollowedRelease(
            release=release, artist_name="Daft Punk", artist_image=None
        ).to_dict()

        assert data["id"] == "r1"
        assert data["name"] == "Lucky"
        assert data["releaseDate"] == "2025-06-01"
        assert data["artistName"] == "Daft Punk"
        assert data["artistImage"] is None
