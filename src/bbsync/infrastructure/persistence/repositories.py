"""Repository implementations for domain entities.

Repositories are thin: one session, SQL in, domain entities out. They never commit -
the caller's session_scope() owns the transaction. Identity and validation rules
live in the application services.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bbsync.domain.entities import (
    Artist,
    BilibiliMetadata,
    CreateArtistPayload,
    CreatePlaylistPayload,
    CreateTrackPayload,
    LocalMetadata,
    Playlist,
    PlaylistType,
    Track,
    TrackSource,
)
from bbsync.domain.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    ValidationError,
)

from .models import (
    ArtistModel,
    Base,
    BilibiliMetadataModel,
    LocalMetadataModel,
    PlaylistModel,
    PlaylistTrackModel,
    TrackModel,
    ensure_utc_aware,
    utc_now,
)

_INSERT_CHUNK_SIZE = 500

# =============================================================================
# Model -> entity conversion
# =============================================================================


def _artist_to_entity(model: ArtistModel) -> Artist:
    return Artist(
        id=model.id,
        name=model.name,
        source=TrackSource(model.source),
        remote_id=model.remote_id,
        avatar_url=model.avatar_url,
        signature=model.signature,
        created_at=ensure_utc_aware(model.created_at),
    )


def _track_to_entity(model: TrackModel) -> Track:
    """Build a Track, refusing rows whose source and metadata row disagree."""
    source = TrackSource(model.source)
    metadata: BilibiliMetadata | LocalMetadata
    match source:
        case TrackSource.BILIBILI if model.bilibili_metadata is not None:
            bili = model.bilibili_metadata
            metadata = BilibiliMetadata(
                bvid=bili.bvid,
                cid=bili.cid,
                is_multi_page=bili.is_multi_page,
                video_is_valid=bili.video_is_valid,
                main_track_title=bili.main_track_title,
            )
        case TrackSource.LOCAL if model.local_metadata is not None:
            metadata = LocalMetadata(local_path=model.local_metadata.local_path)
        case _:
            raise ValidationError(
                f"Track {model.id} has source '{model.source}' but no matching metadata"
            )

    return Track(
        id=model.id,
        unique_key=model.unique_key,
        title=model.title,
        source=source,
        metadata=metadata,
        artist=_artist_to_entity(model.artist) if model.artist else None,
        cover_url=model.cover_url,
        duration=model.duration,
        created_at=ensure_utc_aware(model.created_at),
    )


def _playlist_to_entity(model: PlaylistModel) -> Playlist:
    return Playlist(
        id=model.id,
        title=model.title,
        type=PlaylistType(model.type),
        item_count=model.item_count,
        description=model.description,
        cover_url=model.cover_url,
        remote_sync_id=model.remote_sync_id,
        author=_artist_to_entity(model.author) if model.author else None,
        last_synced_at=ensure_utc_aware(model.last_synced_at),
        created_at=ensure_utc_aware(model.created_at),
    )


def _bilibili_metadata_row(track_id: int, bili: BilibiliMetadata) -> dict[str, Any]:
    return {
        "track_id": track_id,
        "bvid": bili.bvid,
        "cid": bili.cid,
        "is_multi_page": bili.is_multi_page,
        "main_track_title": bili.main_track_title,
        "video_is_valid": bili.video_is_valid,
    }


def _track_row(payload: CreateTrackPayload, unique_key: str, now: datetime) -> dict[str, Any]:
    return {
        "unique_key": unique_key,
        "title": payload.title,
        "artist_id": payload.artist_id,
        "cover_url": payload.cover_url,
        "duration": payload.duration,
        "source": payload.source.value,
        "created_at": now,
        "updated_at": now,
    }


def _artist_row(payload: CreateArtistPayload, now: datetime) -> dict[str, Any]:
    return {
        "name": payload.name,
        "source": payload.source.value,
        "remote_id": payload.remote_id,
        "avatar_url": payload.avatar_url,
        "signature": payload.signature,
        "created_at": now,
        "updated_at": now,
    }


# Hey future me - two syncs of DIFFERENT resources may both decide the same uploader or
# video is missing (their reads happen before either one writes). On SQLite the second
# writer waits for the first to commit and would then trip the UNIQUE constraint, rolling
# back its whole sync. Inserting with ON CONFLICT DO NOTHING and re-selecting afterwards
# makes "create" safe against rows another transaction committed in the meantime.
# No conflict target: every unique constraint of the table is covered.
async def _insert_ignoring_conflicts(
    session: AsyncSession, model: type[Base], rows: Sequence[dict[str, Any]]
) -> None:
    if not rows:
        return
    match session.get_bind().dialect.name:
        case "sqlite":
            insert = sqlite_insert
        case "postgresql":
            insert = postgresql_insert
        case dialect:
            raise ConfigurationError(f"Unsupported database dialect '{dialect}'")
    # Keeps each statement well under SQLite's bound-parameter limit
    for start in range(0, len(rows), _INSERT_CHUNK_SIZE):
        chunk = rows[start : start + _INSERT_CHUNK_SIZE]
        await session.execute(insert(model).values(chunk).on_conflict_do_nothing())


_TRACK_LOAD_OPTIONS = (
    selectinload(TrackModel.artist),
    selectinload(TrackModel.bilibili_metadata),
    selectinload(TrackModel.local_metadata),
)


# =============================================================================
# ARTISTS
# =============================================================================


class ArtistRepository:
    """Repository for Artist rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, artist_id: int) -> Artist | None:
        model = await self.session.get(ArtistModel, artist_id)
        return _artist_to_entity(model) if model else None

    async def get_by_remote_id(self, source: TrackSource, remote_id: str) -> Artist | None:
        """Get a remote artist by its (source, remote_id) identity."""
        stmt = select(ArtistModel).where(
            ArtistModel.source == source.value,
            ArtistModel.remote_id == remote_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _artist_to_entity(model) if model else None

    async def get_local_by_name(self, name: str) -> Artist | None:
        stmt = select(ArtistModel).where(
            ArtistModel.source == TrackSource.LOCAL.value,
            ArtistModel.name == name,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _artist_to_entity(model) if model else None

    async def get_many_by_remote_ids(
        self, keys: Sequence[tuple[TrackSource, str]]
    ) -> list[Artist]:
        """Get all artists matching any of the (source, remote_id) pairs in one query."""
        if not keys:
            return []
        predicate = or_(
            *(
                and_(ArtistModel.source == source.value, ArtistModel.remote_id == remote_id)
                for source, remote_id in keys
            )
        )
        result = await self.session.execute(select(ArtistModel).where(predicate))
        return [_artist_to_entity(model) for model in result.scalars().all()]

    async def add(self, payload: CreateArtistPayload) -> Artist:
        """Insert one artist, or return the row that already holds its identity."""
        await _insert_ignoring_conflicts(
            self.session, ArtistModel, [_artist_row(payload, utc_now())]
        )
        if payload.source is TrackSource.LOCAL:
            artist = await self.get_local_by_name(payload.name)
        else:
            artist = await self.get_by_remote_id(payload.source, payload.remote_id or "")
        if artist is None:
            raise EntityNotFoundException("Artist", payload.remote_id or payload.name)
        return artist

    async def add_many(self, payloads: Sequence[CreateArtistPayload]) -> list[Artist]:
        """Insert remote artists and return the stored rows (never commits).

        Payloads whose (source, remote_id) already exists are skipped; the existing
        row is returned for them instead.
        """
        now = utc_now()
        await _insert_ignoring_conflicts(
            self.session, ArtistModel, [_artist_row(payload, now) for payload in payloads]
        )
        return await self.get_many_by_remote_ids(
            [(payload.source, payload.remote_id) for payload in payloads if payload.remote_id]
        )


# =============================================================================
# TRACKS
# =============================================================================


class TrackRepository:
    """Repository for Track rows and their metadata rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, track_id: int) -> Track | None:
        stmt = (
            select(TrackModel)
            .where(TrackModel.id == track_id)
            .options(*_TRACK_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _track_to_entity(model) if model else None

    async def get_by_unique_key(self, unique_key: str) -> Track | None:
        stmt = (
            select(TrackModel)
            .where(TrackModel.unique_key == unique_key)
            .options(*_TRACK_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _track_to_entity(model) if model else None

    async def get_ids_by_unique_keys(self, unique_keys: Sequence[str]) -> dict[str, int]:
        """Map unique_key -> id for every key that exists."""
        if not unique_keys:
            return {}
        stmt = select(TrackModel.unique_key, TrackModel.id).where(
            TrackModel.unique_key.in_(unique_keys)
        )
        result = await self.session.execute(stmt)
        return {unique_key: track_id for unique_key, track_id in result.all()}

    async def add(self, payload: CreateTrackPayload, unique_key: str) -> Track:
        await self.add_many([(unique_key, payload)])
        track = await self.get_by_unique_key(unique_key)
        if track is None:
            raise EntityNotFoundException("Track", unique_key)
        return track

    async def add_many(
        self, items: Sequence[tuple[str, CreateTrackPayload]]
    ) -> dict[str, int]:
        """Insert tracks with their metadata rows and return unique_key -> id.

        Keys that already exist keep their stored row (and its metadata); their
        existing id is returned.
        """
        if not items:
            return {}
        now = utc_now()
        await _insert_ignoring_conflicts(
            self.session, TrackModel, [_track_row(payload, key, now) for key, payload in items]
        )
        ids = await self.get_ids_by_unique_keys([key for key, _ in items])

        bilibili_rows: list[dict[str, Any]] = []
        local_rows: list[dict[str, Any]] = []
        for key, payload in items:
            track_id = ids.get(key)
            if track_id is None:
                continue
            match payload.metadata:
                case BilibiliMetadata() as bili:
                    bilibili_rows.append(_bilibili_metadata_row(track_id, bili))
                case LocalMetadata(local_path=local_path):
                    local_rows.append({"track_id": track_id, "local_path": local_path})
        await _insert_ignoring_conflicts(self.session, BilibiliMetadataModel, bilibili_rows)
        await _insert_ignoring_conflicts(self.session, LocalMetadataModel, local_rows)
        return {key: ids[key] for key, _ in items if key in ids}


# =============================================================================
# PLAYLISTS
# =============================================================================


class PlaylistRepository:
    """Repository for playlists and their ordered membership."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, playlist_id: int) -> Playlist | None:
        stmt = (
            select(PlaylistModel)
            .where(PlaylistModel.id == playlist_id)
            .options(selectinload(PlaylistModel.author))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _playlist_to_entity(model) if model else None

    async def get_by_type_and_remote_id(
        self, playlist_type: PlaylistType, remote_sync_id: int
    ) -> Playlist | None:
        stmt = (
            select(PlaylistModel)
            .where(
                PlaylistModel.type == playlist_type.value,
                PlaylistModel.remote_sync_id == remote_sync_id,
            )
            .options(selectinload(PlaylistModel.author))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _playlist_to_entity(model) if model else None

    async def add(self, payload: CreatePlaylistPayload) -> Playlist:
        model = PlaylistModel(
            title=payload.title,
            type=payload.type.value,
            description=payload.description,
            cover_url=payload.cover_url,
            remote_sync_id=payload.remote_sync_id,
            author_id=payload.author_id,
            item_count=0,
        )
        self.session.add(model)
        await self.session.flush()
        playlist = await self.get_by_id(model.id)
        if playlist is None:
            raise EntityNotFoundException("Playlist", model.id)
        return playlist

    async def get_tracks(self, playlist_id: int) -> list[Track]:
        """Get the playlist's tracks in membership order."""
        stmt = (
            select(TrackModel)
            .join(PlaylistTrackModel, PlaylistTrackModel.track_id == TrackModel.id)
            .where(PlaylistTrackModel.playlist_id == playlist_id)
            .order_by(PlaylistTrackModel.order)
            .options(*_TRACK_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [_track_to_entity(model) for model in result.scalars().all()]

    async def replace_tracks(
        self, playlist_id: int, ordered_track_ids: Sequence[int]
    ) -> None:
        """Delete all links, insert the new ordered links, bump bookkeeping fields."""
        await self.session.execute(
            delete(PlaylistTrackModel).where(PlaylistTrackModel.playlist_id == playlist_id)
        )
        self.session.add_all(
            PlaylistTrackModel(playlist_id=playlist_id, track_id=track_id, order=index)
            for index, track_id in enumerate(ordered_track_ids)
        )
        await self.session.execute(
            update(PlaylistModel)
            .where(PlaylistModel.id == playlist_id)
            .values(
                item_count=len(ordered_track_ids),
                last_synced_at=datetime.now(UTC),
            )
        )
        await self.session.flush()

    async def append_tracks(self, playlist_id: int, track_ids: Sequence[int]) -> int:
        """Append tracks after the current last position. Returns the new item count.

        Tracks already in the playlist are skipped.
        """
        existing = await self.session.execute(
            select(PlaylistTrackModel.track_id).where(
                PlaylistTrackModel.playlist_id == playlist_id
            )
        )
        present = set(existing.scalars().all())
        max_order = await self.session.scalar(
            select(func.max(PlaylistTrackModel.order)).where(
                PlaylistTrackModel.playlist_id == playlist_id
            )
        )
        next_order = -1 if max_order is None else max_order
        to_add = [track_id for track_id in dict.fromkeys(track_ids) if track_id not in present]
        self.session.add_all(
            PlaylistTrackModel(playlist_id=playlist_id, track_id=track_id, order=next_order + offset)
            for offset, track_id in enumerate(to_add, start=1)
        )
        item_count = len(present) + len(to_add)
        await self.session.execute(
            update(PlaylistModel)
            .where(PlaylistModel.id == playlist_id)
            .values(item_count=item_count)
        )
        await self.session.flush()
        return item_count
