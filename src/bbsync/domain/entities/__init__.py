"""Domain entities for the local library mirror."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class TrackSource(str, Enum):
    """Where a track (or artist) comes from."""

    BILIBILI = "bilibili"
    LOCAL = "local"


class PlaylistType(str, Enum):
    """Kind of playlist.

    Hey future me - everything except LOCAL is owned by the sync engine and gets its
    membership fully rewritten on every sync. Only LOCAL playlists accept direct edits.
    """

    FAVORITE = "favorite"
    COLLECTION = "collection"
    MULTI_PAGE = "multi_page"
    LOCAL = "local"

    @property
    def is_remote(self) -> bool:
        """True for playlists mirrored from a remote resource."""
        return self is not PlaylistType.LOCAL


@dataclass
class Artist:
    """Artist entity (uploader for remote sources, free-form name for local)."""

    id: int
    name: str
    source: TrackSource
    remote_id: str | None = None
    avatar_url: str | None = None
    signature: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Track metadata - a tagged union. Bilibili tracks carry BilibiliMetadata, local
# tracks carry LocalMetadata. Consumers `match` on the variant.
# =============================================================================


@dataclass(frozen=True)
class BilibiliMetadata:
    """Remote video metadata for a bilibili track."""

    bvid: str
    cid: int | None = None
    is_multi_page: bool = False
    video_is_valid: bool = True
    main_track_title: str | None = None

    @property
    def source(self) -> TrackSource:
        return TrackSource.BILIBILI


@dataclass(frozen=True)
class LocalMetadata:
    """Local file metadata for a local track."""

    local_path: str

    @property
    def source(self) -> TrackSource:
        return TrackSource.LOCAL


TrackMetadata = BilibiliMetadata | LocalMetadata


@dataclass
class Track:
    """Track entity.

    ``source`` always agrees with the metadata variant; the repository refuses to
    build a Track from rows where they disagree.
    """

    id: int
    unique_key: str
    title: str
    source: TrackSource
    metadata: TrackMetadata
    artist: Artist | None = None
    cover_url: str | None = None
    duration: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_playable(self) -> bool:
        """False for remote videos that were taken down or hidden."""
        match self.metadata:
            case BilibiliMetadata(video_is_valid=valid):
                return valid
            case LocalMetadata():
                return True


@dataclass
class Playlist:
    """Playlist entity representing an ordered collection of tracks."""

    id: int
    title: str
    type: PlaylistType
    item_count: int = 0
    description: str | None = None
    cover_url: str | None = None
    remote_sync_id: int | None = None
    author: Artist | None = None
    last_synced_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Create payloads - what the resolver services accept
# =============================================================================


@dataclass(frozen=True)
class CreateArtistPayload:
    """Data needed to find or create an artist."""

    name: str
    source: TrackSource
    remote_id: str | None = None
    avatar_url: str | None = None
    signature: str | None = None


@dataclass(frozen=True)
class CreateTrackPayload:
    """Data needed to find or create a track.

    ``source`` is the declared source. ``metadata`` must be the matching variant;
    the key generator and services reject mismatches.
    """

    title: str
    source: TrackSource
    metadata: TrackMetadata
    artist_id: int | None = None
    cover_url: str | None = None
    duration: int | None = None


@dataclass(frozen=True)
class CreatePlaylistPayload:
    """Data needed to create a playlist."""

    title: str
    type: PlaylistType
    description: str | None = None
    cover_url: str | None = None
    remote_sync_id: int | None = None
    author_id: int | None = None


__all__ = [
    "Artist",
    "BilibiliMetadata",
    "CreateArtistPayload",
    "CreatePlaylistPayload",
    "CreateTrackPayload",
    "LocalMetadata",
    "Playlist",
    "PlaylistType",
    "Track",
    "TrackMetadata",
    "TrackSource",
]
