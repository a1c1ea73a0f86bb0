"""Integration tests for the store facades against a real SQLite database.

Hey future me - every test gets a fresh file database in tmp_path (see the
`database` fixture in conftest). Each `async with database.session_scope()` is one
transaction, like one sync.
"""

import pytest
from sqlalchemy import func, select

from bbsync.application.services import ArtistService, PlaylistService, TrackService
from bbsync.domain.entities import (
    BilibiliMetadata,
    CreateArtistPayload,
    CreatePlaylistPayload,
    CreateTrackPayload,
    LocalMetadata,
    PlaylistType,
    TrackSource,
)
from bbsync.domain.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    ValidationError,
)
from bbsync.infrastructure.persistence import ArtistModel, Database, TrackModel


def _remote_artist(mid: int, name: str = "up") -> CreateArtistPayload:
    return CreateArtistPayload(name=name, source=TrackSource.BILIBILI, remote_id=str(mid))


def _video(bvid: str, title: str = "t", **metadata) -> CreateTrackPayload:
    return CreateTrackPayload(
        title=title,
        source=TrackSource.BILIBILI,
        metadata=BilibiliMetadata(bvid=bvid, **metadata),
    )


async def _count(database: Database, model) -> int:
    async with database.session_scope() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestArtistService:
    @pytest.mark.asyncio
    async def test_remote_artist_created_once(self, database: Database) -> None:
        async with database.session_scope() as session:
            first = await ArtistService(session).find_or_create_artist(_remote_artist(1, "first"))
        async with database.session_scope() as session:
            again = await ArtistService(session).find_or_create_artist(_remote_artist(1, "renamed"))

        assert again.id == first.id
        # Create-once: the stored name is not refreshed
        assert again.name == "first"
        assert await _count(database, ArtistModel) == 1

    @pytest.mark.asyncio
    async def test_local_artists_match_by_name(self, database: Database) -> None:
        payload = CreateArtistPayload(name="Me", source=TrackSource.LOCAL)
        async with database.session_scope() as session:
            service = ArtistService(session)
            first = await service.find_or_create_artist(payload)
            second = await service.find_or_create_artist(payload)

        assert first.id == second.id
        assert first.remote_id is None

    @pytest.mark.asyncio
    async def test_remote_artist_requires_remote_id(self, database: Database) -> None:
        async with database.session_scope() as session:
            with pytest.raises(ValidationError):
                await ArtistService(session).find_or_create_artist(
                    CreateArtistPayload(name="x", source=TrackSource.BILIBILI)
                )

    @pytest.mark.asyncio
    async def test_batch_dedupes_and_reuses_existing(self, database: Database) -> None:
        async with database.session_scope() as session:
            await ArtistService(session).find_or_create_artist(_remote_artist(1))

        async with database.session_scope() as session:
            resolved = await ArtistService(session).find_or_create_many_remote_artists(
                [_remote_artist(1), _remote_artist(2), _remote_artist(2), _remote_artist(3)]
            )

        assert set(resolved) == {"1", "2", "3"}
        assert await _count(database, ArtistModel) == 3

    @pytest.mark.asyncio
    async def test_batch_of_nothing(self, database: Database) -> None:
        async with database.session_scope() as session:
            assert await ArtistService(session).find_or_create_many_remote_artists([]) == {}


class TestTrackService:
    @pytest.mark.asyncio
    async def test_find_or_create_is_idempotent(self, database: Database) -> None:
        async with database.session_scope() as session:
            created = await TrackService(session).find_or_create_track(_video("BV1a", "A"))
        async with database.session_scope() as session:
            found = await TrackService(session).find_or_create_track(_video("BV1a", "other title"))

        assert found.id == created.id
        assert found.unique_key == "bilibili::BV1a"
        assert found.metadata == BilibiliMetadata(bvid="BV1a")
        assert await _count(database, TrackModel) == 1

    @pytest.mark.asyncio
    async def test_parts_of_one_video_are_distinct_tracks(self, database: Database) -> None:
        async with database.session_scope() as session:
            service = TrackService(session)
            p1 = await service.find_or_create_track(_video("BV1a", cid=1, is_multi_page=True))
            p2 = await service.find_or_create_track(_video("BV1a", cid=2, is_multi_page=True))
            whole = await service.find_or_create_track(_video("BV1a"))

        assert len({p1.id, p2.id, whole.id}) == 3
        assert p2.metadata.cid == 2

    @pytest.mark.asyncio
    async def test_local_track_round_trip(self, database: Database) -> None:
        payload = CreateTrackPayload(
            title="song", source=TrackSource.LOCAL, metadata=LocalMetadata(local_path="/m/a.flac")
        )
        async with database.session_scope() as session:
            track = await TrackService(session).find_or_create_track(payload)
        async with database.session_scope() as session:
            loaded = await TrackService(session).get_track_by_id(track.id)

        assert loaded.source is TrackSource.LOCAL
        assert loaded.metadata == LocalMetadata(local_path="/m/a.flac")

    @pytest.mark.asyncio
    async def test_mismatched_source_rejected(self, database: Database) -> None:
        payload = CreateTrackPayload(
            title="x", source=TrackSource.LOCAL, metadata=BilibiliMetadata(bvid="BV1a")
        )
        async with database.session_scope() as session:
            with pytest.raises(ValidationError):
                await TrackService(session).find_or_create_track(payload)

    @pytest.mark.asyncio
    async def test_batch_returns_payload_order(self, database: Database) -> None:
        async with database.session_scope() as session:
            existing = await TrackService(session).find_or_create_track(_video("BV1b"))

        async with database.session_scope() as session:
            resolved = await TrackService(session).find_or_create_many_tracks(
                [_video("BV1c"), _video("BV1b"), _video("BV1a"), _video("BV1c")],
                TrackSource.BILIBILI,
            )

        assert list(resolved) == ["bilibili::BV1c", "bilibili::BV1b", "bilibili::BV1a"]
        assert resolved["bilibili::BV1b"] == existing.id
        assert await _count(database, TrackModel) == 3

    @pytest.mark.asyncio
    async def test_batch_rejects_mixed_sources(self, database: Database) -> None:
        local = CreateTrackPayload(
            title="x", source=TrackSource.LOCAL, metadata=LocalMetadata(local_path="/x")
        )
        async with database.session_scope() as session:
            with pytest.raises(ValidationError):
                await TrackService(session).find_or_create_many_tracks(
                    [_video("BV1a"), local], TrackSource.BILIBILI
                )

    @pytest.mark.asyncio
    async def test_unknown_track(self, database: Database) -> None:
        async with database.session_scope() as session:
            with pytest.raises(EntityNotFoundException):
                await TrackService(session).get_track_by_id(999)


class TestPlaylistService:
    @pytest.mark.asyncio
    async def test_replace_writes_order_and_count(self, database: Database) -> None:
        async with database.session_scope() as session:
            ids = await TrackService(session).find_or_create_many_tracks(
                [_video("BV1a"), _video("BV1b"), _video("BV1c")], TrackSource.BILIBILI
            )
            playlists = PlaylistService(session)
            playlist = await playlists.create_playlist(
                CreatePlaylistPayload(title="p", type=PlaylistType.COLLECTION, remote_sync_id=1)
            )
            a, b, c = ids.values()
            await playlists.replace_playlist_all_tracks(playlist.id, [c, a, b, a])

        async with database.session_scope() as session:
            playlists = PlaylistService(session)
            tracks = await playlists.get_playlist_tracks(playlist.id)
            reloaded = await playlists.get_playlist_by_id(playlist.id)

        assert [t.metadata.bvid for t in tracks] == ["BV1c", "BV1a", "BV1b"]
        assert reloaded.item_count == 3
        assert reloaded.last_synced_at is not None

    @pytest.mark.asyncio
    async def test_replace_with_nothing_empties_playlist(self, database: Database) -> None:
        async with database.session_scope() as session:
            playlists = PlaylistService(session)
            track = await TrackService(session).find_or_create_track(_video("BV1a"))
            playlist = await playlists.create_playlist(
                CreatePlaylistPayload(title="p", type=PlaylistType.FAVORITE, remote_sync_id=1)
            )
            await playlists.replace_playlist_all_tracks(playlist.id, [track.id])
            await playlists.replace_playlist_all_tracks(playlist.id, [])

        async with database.session_scope() as session:
            reloaded = await PlaylistService(session).get_playlist_by_id(playlist.id)
            assert await PlaylistService(session).get_playlist_tracks(playlist.id) == []
        assert reloaded.item_count == 0
        # The track itself stays in the library
        assert await _count(database, TrackModel) == 1

    @pytest.mark.asyncio
    async def test_replace_unknown_playlist(self, database: Database) -> None:
        async with database.session_scope() as session:
            with pytest.raises(EntityNotFoundException):
                await PlaylistService(session).replace_playlist_all_tracks(404, [])

    @pytest.mark.asyncio
    async def test_remote_playlist_found_not_duplicated(self, database: Database) -> None:
        payload = CreatePlaylistPayload(title="v1", type=PlaylistType.FAVORITE, remote_sync_id=9)
        async with database.session_scope() as session:
            first = await PlaylistService(session).find_or_create_remote_playlist(payload)
        async with database.session_scope() as session:
            second = await PlaylistService(session).find_or_create_remote_playlist(
                CreatePlaylistPayload(title="v2", type=PlaylistType.FAVORITE, remote_sync_id=9)
            )
            other_type = await PlaylistService(session).find_or_create_remote_playlist(
                CreatePlaylistPayload(title="c", type=PlaylistType.COLLECTION, remote_sync_id=9)
            )

        assert second.id == first.id
        assert second.title == "v1"
        assert other_type.id != first.id

    @pytest.mark.asyncio
    async def test_remote_id_must_agree_with_type(self, database: Database) -> None:
        async with database.session_scope() as session:
            playlists = PlaylistService(session)
            with pytest.raises(ValidationError):
                await playlists.create_playlist(
                    CreatePlaylistPayload(title="x", type=PlaylistType.FAVORITE)
                )
            with pytest.raises(ValidationError):
                await playlists.create_playlist(
                    CreatePlaylistPayload(title="x", type=PlaylistType.LOCAL, remote_sync_id=1)
                )

    @pytest.mark.asyncio
    async def test_only_local_playlists_accept_direct_adds(self, database: Database) -> None:
        async with database.session_scope() as session:
            playlists = PlaylistService(session)
            track = await TrackService(session).find_or_create_track(_video("BV1a"))
            local = await playlists.create_playlist(
                CreatePlaylistPayload(title="mine", type=PlaylistType.LOCAL)
            )
            remote = await playlists.create_playlist(
                CreatePlaylistPayload(title="fav", type=PlaylistType.FAVORITE, remote_sync_id=1)
            )

            assert await playlists.add_tracks_to_local_playlist(local.id, [track.id]) == 1
            # Already present: skipped
            assert await playlists.add_tracks_to_local_playlist(local.id, [track.id]) == 1
            with pytest.raises(InvalidStateException):
                await playlists.add_tracks_to_local_playlist(remote.id, [track.id])
