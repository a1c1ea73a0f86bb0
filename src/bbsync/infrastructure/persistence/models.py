"""SQLAlchemy ORM models for bbsync."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Hey future me, every timestamp is UTC. SQLite drops tzinfo on the way back, so
# compare through ensure_utc_aware() below, never against naive datetimes.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Source and type columns are plain strings, not DB enums (SQLite compatibility).
# Values are TrackSource / PlaylistType .value strings.
class ArtistModel(Base):
    """SQLAlchemy model for Artist entity.

    Identity:
    - remote artists (source != 'local'): unique (source, remote_id)
    - local artists: unique name among source == 'local'
    """

    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    remote_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        sa.UniqueConstraint("source", "remote_id", name="uq_artists_source_remote_id"),
        Index(
            "uq_artists_local_name",
            "name",
            unique=True,
            sqlite_where=text("source = 'local'"),
            postgresql_where=text("source = 'local'"),
        ),
    )


class TrackModel(Base):
    """SQLAlchemy model for Track entity.

    unique_key is the natural key produced by generate_unique_track_key(); all
    find-or-create lookups go through it, never through the surrogate id.
    Exactly one of bilibili_metadata / local_metadata exists, matching source.
    """

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unique_key: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    artist_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("artists.id", ondelete="SET NULL"), nullable=True
    )
    cover_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    artist: Mapped["ArtistModel | None"] = relationship("ArtistModel")
    bilibili_metadata: Mapped["BilibiliMetadataModel | None"] = relationship(
        "BilibiliMetadataModel",
        back_populates="track",
        uselist=False,
        cascade="all, delete-orphan",
    )
    local_metadata: Mapped["LocalMetadataModel | None"] = relationship(
        "LocalMetadataModel",
        back_populates="track",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_tracks_artist_id", "artist_id"),
        Index("ix_tracks_source", "source"),
    )


class BilibiliMetadataModel(Base):
    """Remote video metadata, one row per bilibili track."""

    __tablename__ = "bilibili_metadata"

    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True
    )
    bvid: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    cid: Mapped[int | None] = mapped_column(sa.BigInteger, nullable=True)
    is_multi_page: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False)
    main_track_title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    video_is_valid: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=True, server_default="1"
    )

    track: Mapped["TrackModel"] = relationship(
        "TrackModel", back_populates="bilibili_metadata"
    )


class LocalMetadataModel(Base):
    """Local file metadata, one row per local track."""

    __tablename__ = "local_metadata"

    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True
    )
    local_path: Mapped[str] = mapped_column(Text, nullable=False)

    track: Mapped["TrackModel"] = relationship(
        "TrackModel", back_populates="local_metadata"
    )


class PlaylistModel(Base):
    """SQLAlchemy model for Playlist entity.

    Hey future me - remote_sync_id is the favorite media_id, the collection season_id,
    or the aid of a multi-part video (bv2av of the bvid). It's NULL only for local
    playlists. item_count is denormalized and must match playlist_tracks; the
    sync replacer and the local-edit paths keep it in step.
    """

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("artists.id", ondelete="SET NULL"), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    item_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    remote_sync_id: Mapped[int | None] = mapped_column(sa.BigInteger, nullable=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    author: Mapped["ArtistModel | None"] = relationship("ArtistModel")
    playlist_tracks: Mapped[list["PlaylistTrackModel"]] = relationship(
        "PlaylistTrackModel",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistTrackModel.order",
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "type", "remote_sync_id", name="uq_playlists_type_remote_sync_id"
        ),
    )


class PlaylistTrackModel(Base):
    """Ordered association between playlists and tracks.

    order is dense and zero-based within one playlist.
    """

    __tablename__ = "playlist_tracks"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True
    )
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    playlist: Mapped["PlaylistModel"] = relationship(
        "PlaylistModel", back_populates="playlist_tracks"
    )
    track: Mapped["TrackModel"] = relationship("TrackModel")

    __table_args__ = (Index("ix_playlist_tracks_order", "playlist_id", "order"),)
