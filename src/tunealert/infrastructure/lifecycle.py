"""Application lifecycle management for startup and shutdown tasks."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tunealert.config import Settings
from tunealert.domain.exceptions import ConfigurationError
from tunealert.infrastructure.integrations import SpotifyCatalogClient
from tunealert.infrastructure.observability import configure_logging
from tunealert.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, this validates SQLite paths BEFORE we try creating the DB engine. SQLite needs
# to create -journal/-wal files next to the .db file, so the directory must be writable. Only
# runs for file-backed SQLite URLs - Postgres and :memory: return early.
def validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable.

    Raises:
        ConfigurationError: Directory can't be created or written to
    """
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE__URL or adjust directory permissions."
        ) from exc

    test_file = db_path.parent / f".{db_path.stem}_write_test"
    try:
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


# Listen future me, everything before `yield` runs at startup, everything after at shutdown.
# create_app() may have put a Database / catalog client on app.state already (tests do);
# we only build what's missing, but we close whatever is there on the way out.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles:
    - Logging configuration
    - Database initialization
    - The process-wide Spotify catalog client (and its cached app token)
    - Resource cleanup
    """
    settings: Settings = app.state.settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s (%s)", settings.app_name, settings.app_env)

    if getattr(app.state, "db", None) is None:
        validate_sqlite_path(settings)
        app.state.db = Database(settings)
    if getattr(app.state, "catalog_client", None) is None:
        app.state.catalog_client = SpotifyCatalogClient(settings.spotify)

    try:
        yield
    finally:
        logger.info("Shutting down application")
        await app.state.catalog_client.close()
        await app.state.db.close()
