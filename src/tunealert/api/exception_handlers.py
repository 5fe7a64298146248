"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
into JSON responses with the right status codes.

Hey future me - the cron trigger speaks {"error": "..."} (that's what schedulers and the
old frontend expect), everything else uses FastAPI's {"detail": "..."} convention.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tunealert.domain.exceptions import (
    AuthenticationError,
    CatalogAuthError,
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    JobAlreadyRunningError,
    JobExecutionError,
    RateLimitExceededError,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        # Never log the Authorization header itself
        logger.warning("Unauthorized request to %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": exc.message},
        )

    # Starlette picks handlers by MRO, so without this a rejected Spotify credential would
    # surface as 401 like a wrong cron secret. It is an upstream problem, not the caller's.
    @app.exception_handler(CatalogAuthError)
    async def catalog_auth_error_handler(
        request: Request, exc: CatalogAuthError
    ) -> JSONResponse:
        logger.error("Spotify authentication failed at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message},
        )

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(JobAlreadyRunningError)
    async def job_already_running_handler(
        request: Request, exc: JobAlreadyRunningError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": exc.message},
        )

    @app.exception_handler(JobExecutionError)
    async def job_execution_error_handler(
        request: Request, exc: JobExecutionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": exc.message},
        )

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(
        request: Request, exc: RateLimitExceededError
    ) -> JSONResponse:
        headers = {}
        if exc.retry_after is not None:
            headers["Retry-After"] = str(int(exc.retry_after))
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        logger.warning("External service error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.message},
        )

    # Catch-all for domain errors without a dedicated mapping
    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        logger.error("Unhandled domain error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": exc.message},
        )
