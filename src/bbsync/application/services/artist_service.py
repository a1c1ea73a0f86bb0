"""Artist resolution service.

Hey future me - this is the artist half of the entity resolver. It's idempotent:
resolving the same uploader twice returns the same row, and existing rows are NEVER
updated (a renamed uploader keeps the old name locally). That create-once behaviour
is intentional and observable, so don't "fix" it by refreshing metadata here.
"""

import logging
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bbsync.domain.entities import Artist, CreateArtistPayload, TrackSource
from bbsync.domain.exceptions import (
    ConfigurationError,
    DatabaseError,
    ValidationError,
)
from bbsync.infrastructure.persistence.repositories import ArtistRepository

logger = logging.getLogger(__name__)


class ArtistService:
    """Find-or-create operations for artists."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        """Initialize the service.

        Args:
            session: Session every query runs on. May be None for a "template"
                instance that is only ever used through with_session().
        """
        self._session = session

    def with_session(self, session: AsyncSession) -> Self:
        """Return a copy of this service bound to another session (e.g. a transaction)."""
        return type(self)(session)

    def _repo(self) -> ArtistRepository:
        if self._session is None:
            raise ConfigurationError("ArtistService used without a session")
        return ArtistRepository(self._session)

    async def find_or_create_artist(self, payload: CreateArtistPayload) -> Artist:
        """Find an artist by its identity, creating it if absent.

        Remote artists are identified by (source, remote_id), local artists by name.

        Args:
            payload: Artist data; remote sources require remote_id

        Returns:
            The existing or newly created artist

        Raises:
            ValidationError: Identity fields are missing
            DatabaseError: Storage failure
        """
        if not payload.source:
            raise ValidationError("source is required to resolve an artist")

        repo = self._repo()
        try:
            if payload.source is TrackSource.LOCAL:
                if not payload.name:
                    raise ValidationError("name is required to resolve a local artist")
                existing = await repo.get_local_by_name(payload.name)
            else:
                if not payload.remote_id:
                    raise ValidationError("source and remote_id are required")
                existing = await repo.get_by_remote_id(payload.source, payload.remote_id)

            if existing is not None:
                return existing

            artist = await repo.add(payload)
            logger.debug(f"Created artist {artist.id} ({artist.name})")
            return artist
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to find or create artist '{payload.name}'") from e

    async def find_or_create_many_remote_artists(
        self, payloads: list[CreateArtistPayload]
    ) -> dict[str, Artist]:
        """Resolve many remote artists with one lookup and one batch insert.

        Duplicate payloads (same remote_id) collapse to the first occurrence.

        Args:
            payloads: Remote artist payloads, each with remote_id

        Returns:
            Mapping remote_id -> Artist covering existing and created rows

        Raises:
            ValidationError: A payload is local or lacks remote_id
            DatabaseError: Storage failure
        """
        unique: dict[str, CreateArtistPayload] = {}
        for payload in payloads:
            if payload.source is TrackSource.LOCAL or not payload.remote_id:
                raise ValidationError(
                    f"Remote artist payload requires a remote source and remote_id: {payload.name}"
                )
            unique.setdefault(payload.remote_id, payload)

        if not unique:
            return {}

        repo = self._repo()
        try:
            existing = await repo.get_many_by_remote_ids(
                [(payload.source, remote_id) for remote_id, payload in unique.items()]
            )
            resolved: dict[str, Artist] = {
                artist.remote_id: artist for artist in existing if artist.remote_id
            }

            missing = [
                payload for remote_id, payload in unique.items() if remote_id not in resolved
            ]
            if missing:
                created = await repo.add_many(missing)
                resolved.update(
                    {artist.remote_id: artist for artist in created if artist.remote_id}
                )
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to find or create artists in batch") from e

        logger.debug(
            f"Resolved {len(resolved)} artists ({len(existing)} existing, {len(missing)} created)"
        )
        return resolved
