"""Track resolution service.

Tracks are keyed by their natural unique key (see track_keys), never by the
surrogate id. Like artists they are create-once: an existing row is returned as-is.
"""

import logging
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bbsync.application.services.track_keys import generate_unique_track_key
from bbsync.domain.entities import CreateTrackPayload, Track, TrackSource
from bbsync.domain.exceptions import (
    ConfigurationError,
    DatabaseError,
    EntityNotFoundException,
    ValidationError,
)
from bbsync.infrastructure.persistence.repositories import TrackRepository

logger = logging.getLogger(__name__)


def _check_source(payload: CreateTrackPayload) -> None:
    if payload.metadata.source is not payload.source:
        raise ValidationError(
            f"Track '{payload.title}' declares source '{payload.source.value}' "
            f"but carries {payload.metadata.source.value} metadata"
        )


class TrackService:
    """Find-or-create and lookup operations for tracks."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._session = session

    def with_session(self, session: AsyncSession) -> Self:
        """Return a copy of this service bound to another session (e.g. a transaction)."""
        return type(self)(session)

    def _repo(self) -> TrackRepository:
        if self._session is None:
            raise ConfigurationError("TrackService used without a session")
        return TrackRepository(self._session)

    async def get_track_by_id(self, track_id: int) -> Track:
        """Get a track by id.

        Raises:
            EntityNotFoundException: No such track
        """
        try:
            track = await self._repo().get_by_id(track_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to load track {track_id}") from e
        if track is None:
            raise EntityNotFoundException("Track", track_id)
        return track

    async def find_or_create_track(self, payload: CreateTrackPayload) -> Track:
        """Find a track by its unique key, creating it with its metadata if absent.

        Args:
            payload: Track data with the metadata variant matching its source

        Returns:
            The existing or newly created track

        Raises:
            ValidationError: Source/metadata mismatch or missing identity fields,
                also when the stored row itself is inconsistent
            DatabaseError: Storage failure
        """
        _check_source(payload)
        unique_key = generate_unique_track_key(payload)

        repo = self._repo()
        try:
            existing = await repo.get_by_unique_key(unique_key)
            if existing is not None:
                return existing
            track = await repo.add(payload, unique_key)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to find or create track {unique_key}") from e

        logger.debug(f"Created track {track.id} ({unique_key})")
        return track

    async def find_or_create_many_tracks(
        self, payloads: list[CreateTrackPayload], source: TrackSource
    ) -> dict[str, int]:
        """Resolve many tracks of one source in batch.

        Existing keys are looked up in one query; only the complement is inserted
        (track rows and metadata rows together). The result is re-checked against
        the distinct input keys.

        Args:
            payloads: Track payloads, all with the given source
            source: The shared source of every payload

        Returns:
            Mapping unique_key -> track id, in payload order

        Raises:
            ValidationError: Mixed sources or invalid payloads
            DatabaseError: Storage failure or inconsistent result
        """
        if not payloads:
            return {}

        keyed: dict[str, CreateTrackPayload] = {}
        for payload in payloads:
            if payload.source is not source:
                raise ValidationError(
                    f"All tracks must have source '{source.value}', "
                    f"got '{payload.source.value}' for '{payload.title}'"
                )
            _check_source(payload)
            keyed.setdefault(generate_unique_track_key(payload), payload)

        repo = self._repo()
        unique_keys = list(keyed)
        try:
            existing = await repo.get_ids_by_unique_keys(unique_keys)
            missing = [(key, keyed[key]) for key in unique_keys if key not in existing]
            if missing:
                await repo.add_many(missing)
            resolved = await repo.get_ids_by_unique_keys(unique_keys)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to find or create tracks in batch") from e

        if len(resolved) != len(unique_keys):
            raise DatabaseError(
                f"Track batch is inconsistent: expected {len(unique_keys)} rows, "
                f"found {len(resolved)}"
            )

        logger.debug(
            f"Resolved {len(unique_keys)} {source.value} tracks "
            f"({len(existing)} existing, {len(missing)} created)"
        )
        return {key: resolved[key] for key in unique_keys}

    async def find_track_ids_by_unique_keys(self, unique_keys: list[str]) -> dict[str, int]:
        """Map unique keys to track ids. Unknown keys are simply absent from the result."""
        if not unique_keys:
            return {}
        try:
            return await self._repo().get_ids_by_unique_keys(unique_keys)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to look up tracks by unique key") from e
