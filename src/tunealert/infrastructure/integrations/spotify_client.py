"""Spotify catalog client using the client-credentials flow."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import httpx

from tunealert.config import SpotifySettings
from tunealert.domain.entities import Release, ReleaseType
from tunealert.domain.exceptions import (
    CatalogAuthError,
    ConfigurationError,
    ExternalServiceError,
    RateLimitExceededError,
)
from tunealert.domain.ports import ICatalogClient
from tunealert.domain.value_objects.release_dates import lookback_cutoff, parse_release_date

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class SpotifyCatalogClient(ICatalogClient):
    """HTTP client for the Spotify catalog (no user context, app token only)."""

    # Hey future me - Spotify wants one include_groups value per query if you want a
    # fair share of each group. "album,single" in one call returns albums first and the
    # singles get cut off by limit, which is exactly where new releases hide.
    RELEASE_GROUPS = ("album", "single")
    MAX_PAGE_SIZE = 50

    # Hey future me, this init is deceptively simple - we DON'T create the HTTP client here
    # because we need to be async-friendly. The actual client gets lazy-loaded in _get_client().
    # transport is only for tests (httpx.MockTransport), production leaves it None.
    def __init__(
        self,
        settings: SpotifySettings,
        clock: Callable[[], datetime] = _utc_now,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Spotify catalog client.

        Args:
            settings: Spotify configuration settings
            clock: Returns the current aware UTC time (token expiry, lookback window)
            transport: Optional httpx transport override
        """
        self.settings = settings
        self._clock = clock
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        # Cached app token. One client per process, so one token per process.
        self._token: str | None = None
        self._expires_at: datetime | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout_seconds, transport=self._transport
            )
        return self._client

    # Hey, this close() is IMPORTANT - if you don't call it, you'll leak connections.
    # The app lifespan calls it on shutdown, the CLI in a finally block.
    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _token_is_fresh(self) -> bool:
        if self._token is None or self._expires_at is None:
            return False
        margin = timedelta(seconds=self.settings.token_expiry_margin_seconds)
        return self._clock() < self._expires_at - margin

    async def get_token(self) -> str:
        """Get an app access token, reusing the cached one until shortly before expiry.

        Returns:
            Bearer token string

        Raises:
            ConfigurationError: client_id or client_secret is missing
            CatalogAuthError: Spotify rejected the credentials or sent no token
            ExternalServiceError: Network failure or unexpected status from the token endpoint
        """
        if self._token_is_fresh():
            return cast(str, self._token)

        if not self.settings.client_id or not self.settings.client_secret:
            raise ConfigurationError("Spotify client credentials are not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                self.settings.token_url,
                data={"grant_type": "client_credentials"},
                auth=(self.settings.client_id, self.settings.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Spotify token request failed: {e}") from e

        if response.status_code in (400, 401, 403):
            raise CatalogAuthError(
                f"Spotify rejected client credentials (HTTP {response.status_code})",
                http_status=response.status_code,
            )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Spotify token endpoint returned HTTP {response.status_code}",
                http_status=response.status_code,
            )

        try:
            payload = cast(dict[str, Any], response.json())
        except ValueError as e:
            raise CatalogAuthError("Spotify token response was not JSON") from e

        token = payload.get("access_token")
        if not token:
            raise CatalogAuthError("Spotify token response contained no access_token")

        expires_in = int(payload.get("expires_in") or 3600)
        self._token = token
        self._expires_at = self._clock() + timedelta(seconds=expires_in)
        logger.debug("Fetched new Spotify app token (expires in %ss)", expires_in)
        return cast(str, token)

    # Hey future me - all catalog GETs go through here. Unlike the user-facing client we do
    # NOT retry 429s: the release check runs on a hard time budget and decides itself how
    # long to back off, so a 429 becomes RateLimitExceededError right away.
    async def _api_request(
        self,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an authenticated GET request.

        Raises:
            RateLimitExceededError: Spotify answered 429
            httpx.HTTPError: Transport failures
        """
        client = await self._get_client()
        response = await client.get(
            url, params=params, headers={"Authorization": f"Bearer {access_token}"}
        )

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitExceededError(
                f"Spotify API rate limited (429). Retry-After: "
                f"{retry_after if retry_after is not None else 'not provided'} seconds.",
                retry_after=retry_after,
            )
        return response

    async def _fetch_group(
        self, artist_id: str, access_token: str, group: str, limit: int
    ) -> list[dict[str, Any]]:
        """Fetch up to `limit` raw items of one release group, following next links."""
        items: list[dict[str, Any]] = []
        url: str | None = f"{self.settings.api_base_url}/artists/{artist_id}/albums"
        params: dict[str, Any] | None = {
            "include_groups": group,
            "limit": min(limit, self.MAX_PAGE_SIZE),
            "offset": 0,
        }

        while url and len(items) < limit:
            response = await self._api_request(url, access_token, params=params)
            response.raise_for_status()
            page = cast(dict[str, Any], response.json())
            items.extend(page.get("items") or [])
            url = page.get("next")
            # next already carries offset/limit/include_groups
            params = None

        return items[:limit]

    @staticmethod
    def _to_release(item: dict[str, Any]) -> Release | None:
        release_id = item.get("id")
        release_date = parse_release_date(
            item.get("release_date"), item.get("release_date_precision")
        )
        if not release_id or release_date is None:
            return None

        images = item.get("images") or []
        external_urls = item.get("external_urls") or {}
        return Release(
            id=release_id,
            name=item.get("name") or "",
            release_type=ReleaseType.from_string(item.get("album_type")),
            release_date=release_date,
            release_date_precision=item.get("release_date_precision") or "day",
            external_url=external_urls.get("spotify"),
            image_url=images[0].get("url") if images else None,
            total_tracks=item.get("total_tracks"),
        )

    async def get_artist_recent_releases(
        self,
        artist_id: str,
        access_token: str | None = None,
        limit: int = 10,
        lookback_months: int = 24,
    ) -> list[Release]:
        """Get an artist's albums and singles from the lookback window, newest first.

        Args:
            artist_id: Spotify artist ID
            access_token: App token; fetched via get_token() when omitted
            limit: Max items fetched per release group
            lookback_months: Drop releases older than this many months

        Returns:
            Releases sorted by release date descending. Empty list when Spotify
            fails for this artist (one artist must never break the caller's loop).

        Raises:
            RateLimitExceededError: Spotify answered 429
        """
        token = access_token or await self.get_token()

        raw_items: list[dict[str, Any]] = []
        try:
            for group in self.RELEASE_GROUPS:
                raw_items.extend(await self._fetch_group(artist_id, token, group, limit))
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Spotify API error for artist %s: HTTP %s",
                artist_id,
                e.response.status_code,
            )
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Error fetching releases for artist %s: %s", artist_id, e)
            return []

        cutoff = lookback_cutoff(self._clock(), lookback_months)
        seen: set[str] = set()
        releases: list[Release] = []
        for item in raw_items:
            release = self._to_release(item)
            if release is None or release.id in seen:
                continue
            seen.add(release.id)
            if release.release_date >= cutoff:
                releases.append(release)

        releases.sort(key=lambda r: r.release_date, reverse=True)
        return releases

    async def __aenter__(self) -> "SpotifyCatalogClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
