"""Playlist service: lookup, creation and ordered membership replace."""

import logging
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bbsync.domain.entities import CreatePlaylistPayload, Playlist, PlaylistType, Track
from bbsync.domain.exceptions import (
    ConfigurationError,
    DatabaseError,
    EntityNotFoundException,
    InvalidStateException,
    ValidationError,
)
from bbsync.infrastructure.persistence.repositories import PlaylistRepository

logger = logging.getLogger(__name__)


class PlaylistService:
    """Service for playlist operations."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        """Initialize playlist service.

        Args:
            session: Database session, None for a template used via with_session()
        """
        self._session = session

    def with_session(self, session: AsyncSession) -> Self:
        """Return a copy of this service bound to another session (e.g. a transaction)."""
        return type(self)(session)

    def _repo(self) -> PlaylistRepository:
        if self._session is None:
            raise ConfigurationError("PlaylistService used without a session")
        return PlaylistRepository(self._session)

    async def get_playlist_by_id(self, playlist_id: int) -> Playlist:
        """Get playlist by id.

        Raises:
            EntityNotFoundException: No such playlist
        """
        try:
            playlist = await self._repo().get_by_id(playlist_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to load playlist {playlist_id}") from e
        if playlist is None:
            raise EntityNotFoundException("Playlist", playlist_id)
        return playlist

    async def create_playlist(self, payload: CreatePlaylistPayload) -> Playlist:
        """Create a new playlist.

        Args:
            payload: Playlist data. Remote types need remote_sync_id, local must not have one.

        Returns:
            Created playlist

        Raises:
            ValidationError: remote_sync_id does not agree with the type
            DatabaseError: Storage failure (e.g. duplicate (type, remote_sync_id))
        """
        if payload.type.is_remote and payload.remote_sync_id is None:
            raise ValidationError(f"{payload.type.value} playlists require a remote_sync_id")
        if not payload.type.is_remote and payload.remote_sync_id is not None:
            raise ValidationError("Local playlists cannot have a remote_sync_id")

        try:
            playlist = await self._repo().add(payload)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to create playlist '{payload.title}'") from e

        logger.info(f"Created {playlist.type.value} playlist {playlist.id}: {playlist.title}")
        return playlist

    async def find_or_create_remote_playlist(self, payload: CreatePlaylistPayload) -> Playlist:
        """Find the playlist mirroring (type, remote_sync_id), creating it if absent.

        An existing playlist is returned unchanged; title and cover are not refreshed.

        Raises:
            ValidationError: Payload is local or lacks remote_sync_id
            DatabaseError: Storage failure
        """
        if not payload.type.is_remote or payload.remote_sync_id is None:
            raise ValidationError("find_or_create_remote_playlist needs a remote type and id")

        existing = await self.find_playlist_by_type_and_remote_id(
            payload.type, payload.remote_sync_id
        )
        if existing is not None:
            return existing
        return await self.create_playlist(payload)

    async def find_playlist_by_type_and_remote_id(
        self, playlist_type: PlaylistType, remote_sync_id: int
    ) -> Playlist | None:
        """Get the local playlist mirroring a remote resource, or None."""
        try:
            return await self._repo().get_by_type_and_remote_id(playlist_type, remote_sync_id)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to look up {playlist_type.value} playlist {remote_sync_id}"
            ) from e

    async def get_playlist_tracks(self, playlist_id: int) -> list[Track]:
        """Get all tracks of a playlist in membership order."""
        try:
            return await self._repo().get_tracks(playlist_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to load tracks of playlist {playlist_id}") from e

    async def replace_playlist_all_tracks(
        self, playlist_id: int, ordered_track_ids: list[int]
    ) -> None:
        """Replace the whole membership of a playlist.

        Deletes every link, inserts the new ones with order = list index and sets
        item_count and last_synced_at. Runs on this service's session, so it's
        all-or-nothing together with whatever else the surrounding transaction does.

        Args:
            playlist_id: Playlist to rewrite
            ordered_track_ids: Final membership in order; duplicates are dropped

        Raises:
            EntityNotFoundException: No such playlist
            DatabaseError: Storage failure
        """
        repo = self._repo()
        track_ids = list(dict.fromkeys(ordered_track_ids))
        try:
            if await repo.get_by_id(playlist_id) is None:
                raise EntityNotFoundException("Playlist", playlist_id)
            await repo.replace_tracks(playlist_id, track_ids)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to replace tracks of playlist {playlist_id}") from e

        logger.debug(f"Replaced membership of playlist {playlist_id} with {len(track_ids)} tracks")

    async def add_tracks_to_local_playlist(
        self, playlist_id: int, track_ids: list[int]
    ) -> int:
        """Append tracks to a local playlist.

        Returns:
            New item count

        Raises:
            EntityNotFoundException: No such playlist
            InvalidStateException: Playlist is owned by the sync engine
        """
        playlist = await self.get_playlist_by_id(playlist_id)
        if playlist.type is not PlaylistType.LOCAL:
            raise InvalidStateException(
                f"Playlist {playlist_id} is a {playlist.type.value} playlist; "
                "only local playlists accept direct edits"
            )
        try:
            return await self._repo().append_tracks(playlist_id, track_ids)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to add tracks to playlist {playlist_id}") from e
