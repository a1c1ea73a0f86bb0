"""API schemas for playlists, tracks, sync results and notifications."""

from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, Field

from bbsync.domain.dtos import RemotePlaylistMetadata
from bbsync.domain.entities import (
    Artist,
    BilibiliMetadata,
    LocalMetadata,
    Playlist,
    Track,
)
from bbsync.domain.ports.notification import Notification


class ArtistResponse(BaseModel):
    """Artist as returned by the API."""

    id: int
    name: str
    source: str
    remote_id: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_entity(cls, artist: Artist) -> Self:
        return cls(
            id=artist.id,
            name=artist.name,
            source=artist.source.value,
            remote_id=artist.remote_id,
            avatar_url=artist.avatar_url,
        )


class TrackResponse(BaseModel):
    """Track with its flattened source metadata."""

    id: int
    unique_key: str
    title: str
    source: str
    artist: ArtistResponse | None = None
    cover_url: str | None = None
    duration: int | None = None
    bvid: str | None = None
    cid: int | None = None
    is_multi_page: bool = False
    main_track_title: str | None = None
    video_is_valid: bool = True
    local_path: str | None = None

    @classmethod
    def from_entity(cls, track: Track) -> Self:
        fields: dict[str, Any] = {}
        match track.metadata:
            case BilibiliMetadata() as meta:
                fields = {
                    "bvid": meta.bvid,
                    "cid": meta.cid,
                    "is_multi_page": meta.is_multi_page,
                    "main_track_title": meta.main_track_title,
                    "video_is_valid": meta.video_is_valid,
                }
            case LocalMetadata(local_path=local_path):
                fields = {"local_path": local_path}
        return cls(
            id=track.id,
            unique_key=track.unique_key,
            title=track.title,
            source=track.source.value,
            artist=ArtistResponse.from_entity(track.artist) if track.artist else None,
            cover_url=track.cover_url,
            duration=track.duration,
            **fields,
        )


class PlaylistResponse(BaseModel):
    """Playlist header (no tracks)."""

    id: int
    title: str
    type: str
    item_count: int
    description: str | None = None
    cover_url: str | None = None
    remote_sync_id: int | None = None
    author: ArtistResponse | None = None
    last_synced_at: datetime | None = None

    @classmethod
    def from_entity(cls, playlist: Playlist) -> Self:
        return cls(
            id=playlist.id,
            title=playlist.title,
            type=playlist.type.value,
            item_count=playlist.item_count,
            description=playlist.description,
            cover_url=playlist.cover_url,
            remote_sync_id=playlist.remote_sync_id,
            author=ArtistResponse.from_entity(playlist.author) if playlist.author else None,
            last_synced_at=playlist.last_synced_at,
        )


class SyncResponse(BaseModel):
    """Successful sync outcome."""

    playlist_id: int | None = Field(
        default=None, description="Local playlist id; null for local or empty-and-new"
    )
    notices: list[str] = Field(default_factory=list, description="Informational notices")


class RemotePlaylistMetadataResponse(BaseModel):
    """Current details of a remote favorite, collection or multi-part video."""

    title: str
    description: str | None = None
    cover_url: str | None = None

    @classmethod
    def from_dto(cls, metadata: RemotePlaylistMetadata) -> Self:
        return cls(
            title=metadata.title,
            description=metadata.description,
            cover_url=metadata.cover_url,
        )


class DuplicatePlaylistRequest(BaseModel):
    """Request to copy a playlist into a new local playlist."""

    name: str = Field(..., min_length=1, description="Title of the copy")


class DuplicatePlaylistResponse(BaseModel):
    """Id of the new local playlist."""

    playlist_id: int


class AddBilibiliTrackRequest(BaseModel):
    """Request to resolve a Bilibili video (or one of its parts) into a track."""

    bvid: str = Field(..., min_length=12, max_length=12, description="Video BV id")
    cid: int | None = Field(default=None, description="Part id for multi-part videos")


class NotificationResponse(BaseModel):
    """Single notification response."""

    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_notification(cls, notification_id: str, notification: Notification) -> Self:
        return cls(
            id=notification_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            data=notification.data,
            created_at=notification.created_at,
        )


class NotificationsListResponse(BaseModel):
    """List of notifications response."""

    notifications: list[NotificationResponse]
    total: int
