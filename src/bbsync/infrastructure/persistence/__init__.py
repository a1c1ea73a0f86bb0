"""Persistence layer: engine, ORM models and repositories."""

from .database import Database
from .models import (
    ArtistModel,
    Base,
    BilibiliMetadataModel,
    LocalMetadataModel,
    PlaylistModel,
    PlaylistTrackModel,
    TrackModel,
)
from .repositories import ArtistRepository, PlaylistRepository, TrackRepository

__all__ = [
    "ArtistModel",
    "ArtistRepository",
    "Base",
    "BilibiliMetadataModel",
    "Database",
    "LocalMetadataModel",
    "PlaylistModel",
    "PlaylistRepository",
    "PlaylistTrackModel",
    "TrackModel",
    "TrackRepository",
]
