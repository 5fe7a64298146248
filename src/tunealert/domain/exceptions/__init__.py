"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can read it without
    # parsing str(exc). Don't raise this base class directly - use a subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("Spotify credentials not configured")
    """

    pass


class AuthenticationError(DomainException):
    """Caller is not authenticated.

    Raised when the cron trigger gets a missing or wrong shared secret.

    HTTP Status: 401
    """

    pass


class CatalogAuthError(AuthenticationError):
    """The catalog provider rejected our client credentials or returned no token.

    Hey future me - this is NOT the caller's fault, so the runner converts it to
    JobExecutionError (500) instead of letting it surface as a 401.
    """

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class ExternalServiceError(DomainException):
    """External service (Spotify) returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class RateLimitExceededError(DomainException):
    """External service rate limit was exceeded (HTTP 429).

    HTTP Status: 429

    Example:
        raise RateLimitExceededError("Spotify rate limit exceeded", retry_after=30)
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class JobExecutionError(DomainException):
    """A batch job invocation failed as a whole.

    Raised for a missing or unreadable checkpoint, a failed run claim, an unavailable
    catalog token or a failed user page fetch. The checkpoint is flagged status=error before this reaches the API.

    HTTP Status: 500
    """

    def __init__(self, job_name: str, message: str) -> None:
        super().__init__(message)
        self.job_name = job_name


class JobAlreadyRunningError(DomainException):
    """Another invocation of the same job currently holds the run claim.

    HTTP Status: 409
    """

    def __init__(self, job_name: str) -> None:
        super().__init__(f"Job {job_name} is already running")
        self.job_name = job_name


__all__ = [
    "AuthenticationError",
    "CatalogAuthError",
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "JobAlreadyRunningError",
    "JobExecutionError",
    "RateLimitExceededError",
]
