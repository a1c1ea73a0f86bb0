"""API request/response schemas."""

from bbsync.api.schemas.library import (
    AddBilibiliTrackRequest,
    ArtistResponse,
    DuplicatePlaylistRequest,
    DuplicatePlaylistResponse,
    NotificationResponse,
    NotificationsListResponse,
    PlaylistResponse,
    RemotePlaylistMetadataResponse,
    SyncResponse,
    TrackResponse,
)

__all__ = [
    "AddBilibiliTrackRequest",
    "ArtistResponse",
    "DuplicatePlaylistRequest",
    "DuplicatePlaylistResponse",
    "NotificationResponse",
    "NotificationsListResponse",
    "PlaylistResponse",
    "RemotePlaylistMetadataResponse",
    "SyncResponse",
    "TrackResponse",
]
