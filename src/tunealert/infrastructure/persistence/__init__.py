"""Persistence layer - SQLAlchemy models, repositories and session management."""

from tunealert.infrastructure.persistence.database import Database
from tunealert.infrastructure.persistence.repositories import (
    CheckpointRepository,
    FollowedArtistRepository,
    NotificationRepository,
    UserRepository,
)

__all__ = [
    "CheckpointRepository",
    "Database",
    "FollowedArtistRepository",
    "NotificationRepository",
    "UserRepository",
]
