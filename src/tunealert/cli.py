"""Command-line entry point for schedulers that run a process instead of calling HTTP.

    tunealert-check-releases            # one invocation, summary JSON on stdout
    tunealert-check-releases --pretty

Exit codes: 0 success (including a deadline-truncated run), 1 run failed,
2 another invocation holds the run claim.
"""

import argparse
import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any

from tunealert.application.services import ReleaseCheckService
from tunealert.config import Settings, get_settings
from tunealert.domain.exceptions import (
    ConfigurationError,
    JobAlreadyRunningError,
    JobExecutionError,
)
from tunealert.domain.ports import ICatalogClient
from tunealert.infrastructure.integrations import SpotifyCatalogClient
from tunealert.infrastructure.lifecycle import validate_sqlite_path
from tunealert.infrastructure.observability import configure_logging, set_correlation_id
from tunealert.infrastructure.persistence import Database

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ALREADY_RUNNING = 2


async def run_release_check(
    settings: Settings,
    db: Database | None = None,
    catalog: ICatalogClient | None = None,
) -> tuple[int, dict[str, Any]]:
    """Run one release check and map the outcome to (exit code, payload)."""
    owns_db = db is None
    owns_catalog = catalog is None
    if db is None:
        try:
            validate_sqlite_path(settings)
        except ConfigurationError as e:
            logger.error("Database location unusable: %s", e.message)
            return EXIT_FAILED, {"error": e.message}
        db = Database(settings)
    if catalog is None:
        catalog = SpotifyCatalogClient(settings.spotify)

    try:
        async with db.session_scope() as session:
            service = ReleaseCheckService(
                session=session, catalog=catalog, settings=settings.release_check
            )
            try:
                summary = await service.run()
            except JobAlreadyRunningError as e:
                return EXIT_ALREADY_RUNNING, {"error": e.message}
            except JobExecutionError as e:
                return EXIT_FAILED, {"error": e.message}
            return EXIT_OK, summary.to_response()
    finally:
        if owns_catalog:
            await catalog.close()
        if owns_db:
            await db.close()


def _cli(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run one invocation of the new-release notification job"
    )
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON summary")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run (DEBUG, INFO, ...)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        log_level=args.log_level or settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    set_correlation_id()

    exit_code, payload = asyncio.run(run_release_check(settings))
    print(json.dumps(payload, indent=2 if args.pretty else None))
    return exit_code


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
