"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tunealert.config import DatabaseSettings, ReleaseCheckSettings, Settings


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CRON__SECRET", raising=False)
        settings = Settings(_env_file=None)

        assert settings.release_check.job_name == "check-new-releases"
        assert settings.release_check.users_per_batch == 30
        assert settings.release_check.max_execution_seconds == 45.0
        assert settings.release_check.request_delay_seconds == 0.2
        assert settings.release_check.release_window_hours == 6
        assert settings.spotify.token_expiry_margin_seconds == 60
        assert settings.cron.secret == ""

    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRON__SECRET", "from-env")
        monkeypatch.setenv("RELEASE_CHECK__USERS_PER_BATCH", "10")
        monkeypatch.setenv("SPOTIFY__CLIENT_ID", "abc")

        settings = Settings(_env_file=None)

        assert settings.cron.secret == "from-env"
        assert settings.release_check.users_per_batch == 10
        assert settings.spotify.client_id == "abc"

    def test_log_level_is_normalized(self) -> None:
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_batch_size_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseCheckSettings(users_per_batch=0)


class TestSqlitePath:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite+aiosqlite:///./data/app.db", Path("./data/app.db")),
            ("sqlite+aiosqlite:////var/lib/tunealert/app.db", Path("/var/lib/tunealert/app.db")),
            ("sqlite+aiosqlite:///:memory:", None),
            ("postgresql+asyncpg://user:pw@db:5432/tunealert", None),
        ],
    )
    def test_db_path(self, url: str, expected: Path | None) -> None:
        settings = Settings(_env_file=None, database=DatabaseSettings(url=url))

        assert settings._get_sqlite_db_path() == expected

    def test_is_sqlite(self) -> None:
        assert Settings(_env_file=None).is_sqlite
        assert not Settings(
            _env_file=None,
            database=DatabaseSettings(url="postgresql+asyncpg://u:p@h/db"),
        ).is_sqlite
