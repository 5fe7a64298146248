"""FastAPI dependency providers."""

import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tunealert.application.services import FollowedReleasesService, ReleaseCheckService
from tunealert.config import Settings
from tunealert.domain.exceptions import AuthenticationError
from tunealert.domain.ports import ICatalogClient
from tunealert.infrastructure.persistence import (
    CheckpointRepository,
    Database,
    FollowedArtistRepository,
    NotificationRepository,
)


def get_app_settings(request: Request) -> Settings:
    """Get the settings the app was built with."""
    settings: Settings = request.app.state.settings
    return settings


# Hey future me, session_scope() commits at the end of the request and rolls back on any
# exception. The release check commits on its own after every user, the final scope commit
# is then a no-op.
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db: Database = request.app.state.db
    async with db.session_scope() as session:
        yield session


def get_catalog_client(request: Request) -> ICatalogClient:
    """Get the process-wide catalog client (holds the cached app token)."""
    catalog: ICatalogClient = request.app.state.catalog_client
    return catalog


def parse_bearer_token(authorization: str) -> str:
    """Strip a case-insensitive "Bearer " prefix from an Authorization header."""
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


# Listen up - the cron secret check. An EMPTY configured secret rejects everything instead of
# letting everything through, so a missing env var can never open the trigger to the world.
# compare_digest keeps the comparison constant-time.
def verify_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Authenticate the scheduler calling the cron trigger.

    Raises:
        AuthenticationError: Header missing, malformed or wrong secret
    """
    expected = settings.cron.secret
    if not expected or not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Unauthorized")

    provided = parse_bearer_token(authorization)
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Unauthorized")


def get_release_check_service(
    session: AsyncSession = Depends(get_db_session),
    catalog: ICatalogClient = Depends(get_catalog_client),
    settings: Settings = Depends(get_app_settings),
) -> ReleaseCheckService:
    """Build a release check for this invocation."""
    return ReleaseCheckService(session=session, catalog=catalog, settings=settings.release_check)


def get_notification_repository(
    session: AsyncSession = Depends(get_db_session),
) -> NotificationRepository:
    return NotificationRepository(session)


def get_checkpoint_repository(
    session: AsyncSession = Depends(get_db_session),
) -> CheckpointRepository:
    return CheckpointRepository(session)


def get_followed_releases_service(
    session: AsyncSession = Depends(get_db_session),
    catalog: ICatalogClient = Depends(get_catalog_client),
    settings: Settings = Depends(get_app_settings),
) -> FollowedReleasesService:
    """Build the followed-artists release feed service."""
    return FollowedReleasesService(
        follows=FollowedArtistRepository(session),
        catalog=catalog,
        releases_per_artist=5,
        lookback_months=settings.release_check.catalog_lookback_months,
    )
