"""Tests for the Spotify catalog client.

All HTTP goes through httpx.MockTransport, so these never touch the network.
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

import httpx
import pytest

from tunealert.config import SpotifySettings
from tunealert.domain.entities import ReleaseType
from tunealert.domain.exceptions import (
    CatalogAuthError,
    ConfigurationError,
    ExternalServiceError,
    RateLimitExceededError,
)
from tunealert.infrastructure.integrations.spotify_client import SpotifyCatalogClient

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)
TOKEN_URL = "https://accounts.spotify.com/api/token"
API = "https://api.spotify.com/v1"

Handler = Callable[[httpx.Request], httpx.Response]


class _MutableClock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime:
        return self.now


def _album(
    album_id: str,
    released: str,
    precision: str = "day",
    album_type: str = "album",
) -> dict[str, Any]:
    return {
        "id": album_id,
        "name": f"Name {album_id}",
        "album_type": album_type,
        "release_date": released,
        "release_date_precision": precision,
        "total_tracks": 10,
        "images": [{"url": f"https://i.scdn.co/image/{album_id}", "height": 640}],
        "external_urls": {"spotify": f"https://open.spotify.com/album/{album_id}"},
    }


def _token_response(token: str = "app-token", expires_in: int = 3600) -> httpx.Response:
    return httpx.Response(200, json={"access_token": token, "expires_in": expires_in})


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    return SpotifySettings(client_id="client-id", client_secret="client-secret")


@pytest.fixture
def clock() -> _MutableClock:
    return _MutableClock()


@pytest.fixture
def make_client(
    spotify_settings: SpotifySettings, clock: _MutableClock
) -> Callable[[Handler], SpotifyCatalogClient]:
    def _make(handler: Handler) -> SpotifyCatalogClient:
        return SpotifyCatalogClient(
            spotify_settings, clock=clock, transport=httpx.MockTransport(handler)
        )

    return _make


class TestGetToken:
    """Client-credentials token flow and caching."""

    async def test_token_request_uses_basic_auth(self, make_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _token_response()

        async with make_client(handler) as client:
            token = await client.get_token()

        assert token == "app-token"
        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == TOKEN_URL
        assert seen[0].headers["authorization"].startswith("Basic ")
        assert b"grant_type=client_credentials" in seen[0].content

    async def test_token_is_cached(self, make_client):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return _token_response()

        async with make_client(handler) as client:
            await client.get_token()
            await client.get_token()

        assert calls == 1

    async def test_token_refreshed_inside_expiry_margin(self, make_client, clock):
        tokens = iter(["first", "second"])

        def handler(request: httpx.Request) -> httpx.Response:
            return _token_response(next(tokens), expires_in=3600)

        async with make_client(handler) as client:
            assert await client.get_token() == "first"
            clock.now = NOW + timedelta(seconds=3500)
            assert await client.get_token() == "first"
            # 3600s lifetime minus the 60s margin
            clock.now = NOW + timedelta(seconds=3541)
            assert await client.get_token() == "second"

    async def test_missing_credentials(self, clock):
        client = SpotifyCatalogClient(SpotifySettings(), clock=clock)

        with pytest.raises(ConfigurationError):
            await client.get_token()

    @pytest.mark.parametrize("status_code", [400, 401, 403])
    async def test_rejected_credentials(self, make_client, status_code: int):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"error": "invalid_client"})

        async with make_client(handler) as client:
            with pytest.raises(CatalogAuthError) as exc_info:
                await client.get_token()

        assert exc_info.value.http_status == status_code

    async def test_response_without_token(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "Bearer"})

        async with make_client(handler) as client:
            with pytest.raises(CatalogAuthError):
                await client.get_token()

    async def test_server_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with make_client(handler) as client:
            with pytest.raises(ExternalServiceError) as exc_info:
                await client.get_token()

        assert exc_info.value.http_status == 503

    async def test_transport_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ExternalServiceError):
                await client.get_token()


class TestGetArtistRecentReleases:
    """Release lookups for one artist."""

    async def test_queries_albums_and_singles_separately(self, make_client):
        groups: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["authorization"] == "Bearer app-token"
            assert request.url.path == "/v1/artists/artist-1/albums"
            group = request.url.params.get("include_groups")
            groups.append(group)
            if group == "album":
                return httpx.Response(
                    200, json={"items": [_album("alb-1", "2025-05-01")], "next": None}
                )
            return httpx.Response(
                200,
                json={
                    "items": [_album("sgl-1", "2025-06-01", album_type="single")],
                    "next": None,
                },
            )

        async with make_client(handler) as client:
            releases = await client.get_artist_recent_releases("artist-1", "app-token")

        assert groups == ["album", "single"]
        # Newest first
        assert [r.id for r in releases] == ["sgl-1", "alb-1"]
        assert releases[0].release_type == ReleaseType.SINGLE
        assert releases[0].release_date == date(2025, 6, 1)
        assert releases[0].external_url == "https://open.spotify.com/album/sgl-1"
        assert releases[0].image_url == "https://i.scdn.co/image/sgl-1"

    async def test_dedups_and_applies_lookback(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "items": [
                        _album("dup", "2025-06-01"),
                        _album("old", "2020-01-01"),
                        _album("year-only", "2024", precision="year"),
                        _album("garbage", "0000", precision="year"),
                    ],
                    "next": None,
                },
            )

        async with make_client(handler) as client:
            releases = await client.get_artist_recent_releases(
                "artist-1", "app-token", lookback_months=24
            )

        # "dup" comes back for both groups but is kept once; 2020 is outside 24 months
        assert [r.id for r in releases] == ["dup", "year-only"]
        assert releases[1].release_date == date(2024, 1, 1)
        assert releases[1].release_date_precision == "year"

    async def test_follows_next_links_up_to_limit(self, make_client):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            group = request.url.params.get("include_groups")
            if group == "single":
                return httpx.Response(200, json={"items": [], "next": None})
            offset = int(request.url.params.get("offset", "0"))
            if offset == 0:
                return httpx.Response(
                    200,
                    json={
                        "items": [_album("a1", "2025-05-03"), _album("a2", "2025-05-02")],
                        "next": f"{API}/artists/artist-1/albums?include_groups=album&offset=2&limit=2",
                    },
                )
            return httpx.Response(
                200,
                json={
                    "items": [_album("a3", "2025-05-01"), _album("a4", "2025-04-30")],
                    "next": f"{API}/artists/artist-1/albums?include_groups=album&offset=4&limit=2",
                },
            )

        async with make_client(handler) as client:
            releases = await client.get_artist_recent_releases(
                "artist-1", "app-token", limit=3
            )

        assert [r.id for r in releases] == ["a1", "a2", "a3"]
        # Two album pages, then one single page. The third album page is never requested.
        assert len(requested) == 3

    async def test_rate_limit_raises_with_retry_after(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "5"})

        async with make_client(handler) as client:
            with pytest.raises(RateLimitExceededError) as exc_info:
                await client.get_artist_recent_releases("artist-1", "app-token")

        assert exc_info.value.retry_after == 5.0

    @pytest.mark.parametrize("status_code", [404, 500, 502])
    async def test_other_http_errors_return_empty(self, make_client, status_code: int):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"error": {"status": status_code}})

        async with make_client(handler) as client:
            assert await client.get_artist_recent_releases("artist-1", "app-token") == []

    async def test_transport_error_returns_empty(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            assert await client.get_artist_recent_releases("artist-1", "app-token") == []

    async def test_fetches_token_when_not_given(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return _token_response("fresh-token")
            assert request.headers["authorization"] == "Bearer fresh-token"
            return httpx.Response(200, json={"items": [], "next": None})

        async with make_client(handler) as client:
            assert await client.get_artist_recent_releases("artist-1") == []


class TestLifecycle:
    async def test_close_is_idempotent(self, make_client):
        client = make_client(lambda request: _token_response())
        await client.get_token()
        assert client._client is not None

        await client.close()
        await client.close()

        assert client._client is None
