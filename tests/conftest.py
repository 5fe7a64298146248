"""Shared fixtures for the TuneAlert test suite.

Hey future me - nothing in here talks to Spotify or sleeps for real:

- FakeClock drives both the monotonic time budget and the rate limiter's sleep, so a
  "30 second" artist lookup takes zero wall-clock time.
- FakeCatalog implements ICatalogClient with canned releases per artist id and can be told
  to raise for specific artists (or for the token).
- Each test gets its own SQLite file under tmp_path with the schema created from the ORM
  metadata and the cron_state row seeded like the initial migration does.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tunealert.application.services import ReleaseCheckService
from tunealert.config import (
    CronSettings,
    DatabaseSettings,
    ReleaseCheckSettings,
    Settings,
    SpotifySettings,
)
from tunealert.domain.entities import JobStatus, Release, ReleaseType
from tunealert.domain.ports import ICatalogClient
from tunealert.infrastructure.persistence import Database
from tunealert.infrastructure.persistence.models import (
    CronStateModel,
    FollowedArtistModel,
    ProfileModel,
)
from tunealert.infrastructure.rate_limiter import RateLimiter

JOB_NAME = "check-new-releases"
CRON_SECRET = "test-cron-secret"
# Fixed "now" used across the suite: 2025-06-01T12:00:00Z
NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced monotonic clock with a matching async sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_release(
    release_id: str,
    released: date,
    name: str | None = None,
    release_type: ReleaseType = ReleaseType.SINGLE,
) -> Release:
    """Build a catalog release with sensible defaults."""
    return Release(
        id=release_id,
        name=name or f"Release {release_id}",
        release_type=release_type,
        release_date=released,
        external_url=f"https://open.spotify.com/album/{release_id}",
        image_url=f"https://i.scdn.co/image/{release_id}",
        total_tracks=1,
    )


class FakeCatalog(ICatalogClient):
    """In-memory catalog.

    Args:
        releases: Releases returned per artist id
        errors: Exception raised per artist id instead of returning releases
        clock: When given, every release lookup advances it by seconds_per_call
        seconds_per_call: Simulated duration of one lookup
    """

    def __init__(
        self,
        releases: dict[str, list[Release]] | None = None,
        errors: dict[str, Exception] | None = None,
        clock: FakeClock | None = None,
        seconds_per_call: float = 0.0,
    ) -> None:
        self.releases = releases or {}
        self.errors = errors or {}
        self.clock = clock
        self.seconds_per_call = seconds_per_call
        self.token_error: Exception | None = None
        self.token_calls = 0
        self.calls: list[str] = []
        self.closed = False

    async def get_token(self) -> str:
        self.token_calls += 1
        if self.token_error is not None:
            raise self.token_error
        return "fake-token"

    async def get_artist_recent_releases(
        self,
        artist_id: str,
        access_token: str | None = None,
        limit: int = 10,
        lookback_months: int = 24,
    ) -> list[Release]:
        self.calls.append(artist_id)
        if self.clock is not None:
            self.clock.advance(self.seconds_per_call)
        if artist_id in self.errors:
            raise self.errors[artist_id]
        return list(self.releases.get(artist_id, []))[:limit]

    async def close(self) -> None:
        self.closed = True


class Seeder:
    """Inserts profiles, follows and checkpoint state directly through the ORM."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._follow_seq = 0

    async def user(self, user_id: str, notification_enabled: bool = True) -> None:
        self.session.add(
            ProfileModel(
                id=user_id,
                nickname=user_id,
                notification_enabled=notification_enabled,
            )
        )
        await self.session.commit()

    async def follow(
        self, user_id: str, artist_id: str, artist_name: str | None = None
    ) -> None:
        # Explicit created_at keeps follow order deterministic within one test
        self._follow_seq += 1
        self.session.add(
            FollowedArtistModel(
                user_id=user_id,
                artist_id=artist_id,
                artist_name=artist_name or f"Artist {artist_id}",
                artist_image=f"https://i.scdn.co/image/{artist_id}",
                created_at=NOW + timedelta(seconds=self._follow_seq),
            )
        )
        await self.session.commit()

    async def checkpoint(self, **values: Any) -> None:
        model = await self.session.get(CronStateModel, JOB_NAME, populate_existing=True)
        assert model is not None
        for key, value in values.items():
            setattr(model, key, value)
        await self.session.commit()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        app_env="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'tunealert.db'}"),
        spotify=SpotifySettings(client_id="test-client", client_secret="test-secret"),
        cron=CronSettings(secret=CRON_SECRET),
    )


async def _prepare_database(settings: Settings, seed_checkpoint: bool) -> Database:
    database = Database(settings)
    await database.create_tables()
    if seed_checkpoint:
        async with database.session_scope() as session:
            session.add(CronStateModel(job_name=JOB_NAME, status=JobStatus.IDLE.value))
    return database


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Database with tables created and the release check checkpoint seeded."""
    database = await _prepare_database(settings, seed_checkpoint=True)
    yield database
    await database.close()


@pytest.fixture
async def unseeded_db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Database with tables but WITHOUT the cron_state row."""
    database = await _prepare_database(settings, seed_checkpoint=False)
    yield database
    await database.close()


@pytest.fixture
async def session(db: Database) -> AsyncGenerator[AsyncSession, None]:
    """Session used by the code under test."""
    async with db.session_factory() as db_session:
        yield db_session


@pytest.fixture
async def seed(db: Database) -> AsyncGenerator[Seeder, None]:
    """Seeder on its own session so test setup never shares state with the code under test."""
    async with db.session_factory() as seed_session:
        yield Seeder(seed_session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_service(
    clock: FakeClock,
) -> Callable[..., ReleaseCheckService]:
    """Factory for a ReleaseCheckService on fake time.

    Keyword arguments other than the repository overrides go to ReleaseCheckSettings.
    """

    def _make(
        session: AsyncSession, catalog: ICatalogClient, **overrides: Any
    ) -> ReleaseCheckService:
        repositories = {
            key: overrides.pop(key)
            for key in ("users", "follows", "notifications", "checkpoints")
            if key in overrides
        }
        check_settings = ReleaseCheckSettings(**overrides)
        return ReleaseCheckService(
            session=session,
            catalog=catalog,
            settings=check_settings,
            clock=lambda: NOW,
            monotonic=clock.monotonic,
            rate_limiter=RateLimiter.from_settings(
                check_settings, sleep=clock.sleep, clock=clock.monotonic
            ),
            **repositories,
        )

    return _make
