"""FastAPI application factory.

Run with:
    uvicorn tunealert.main:create_app --factory
"""

from fastapi import FastAPI

from tunealert import __version__
from tunealert.api.exception_handlers import register_exception_handlers
from tunealert.api.routers import api_router
from tunealert.config import Settings, get_settings
from tunealert.domain.ports import ICatalogClient
from tunealert.infrastructure.lifecycle import lifespan
from tunealert.infrastructure.observability import RequestLoggingMiddleware
from tunealert.infrastructure.persistence import Database


def create_app(
    settings: Settings | None = None,
    db: Database | None = None,
    catalog_client: ICatalogClient | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings())
        db: Pre-built database (tests); created at startup when omitted
        catalog_client: Pre-built catalog client (tests); created at startup when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="TuneAlert",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.catalog_client = catalog_client

    app.add_middleware(
        RequestLoggingMiddleware,
        log_request_body=settings.observability.log_request_body,
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    return app
