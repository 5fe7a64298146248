"""External service integrations."""

from tunealert.infrastructure.integrations.spotify_client import SpotifyCatalogClient

__all__ = ["SpotifyCatalogClient"]
