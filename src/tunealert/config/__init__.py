"""Configuration module for TuneAlert."""

from .settings import (
    CronSettings,
    DatabaseSettings,
    ObservabilitySettings,
    ReleaseCheckSettings,
    Settings,
    SpotifySettings,
    get_settings,
)

__all__ = [
    "CronSettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "ReleaseCheckSettings",
    "Settings",
    "SpotifySettings",
    "get_settings",
]
