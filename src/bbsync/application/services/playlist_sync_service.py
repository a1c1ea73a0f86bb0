"""Remote-to-local playlist sync.

Hey future me - this is THE sync engine. Three remote shapes, three strategies:

- collection:  one remote call returns everything -> resolve all -> full replace
- multi_page:  one video, every part becomes a track -> resolve all -> full replace
- favorite:    paginated, no diff API -> diff the id index against the local
               playlist, fetch details only for new ids, resolve those, then
               rebuild the COMPLETE ordered membership from the remote index

Rules that matter:
1. Remote reads happen OUTSIDE the write transaction. Everything that writes
   (artists, tracks, playlist, membership) happens inside ONE session_scope(), so a
   failure anywhere rolls the whole sync back and local state stays untouched.
2. Single flight per resource key ("favorite::123", "collection::45",
   "multiPage::BV1xx..."). A second call for a key already running gets
   SyncTaskAlreadyRunning straight away, before touching the API or the DB.
   Different keys run concurrently just fine.
3. Public methods never raise. They return SyncResult; the error inside is either
   a BilibiliApiError, a SyncTaskAlreadyRunning, or the flavor's facade error
   (SyncFavoriteFailed / SyncCollectionFailed / SyncMultiPageFailed) wrapping the
   real cause.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from bbsync.application.services.artist_service import ArtistService
from bbsync.application.services.favorite_fetcher import fetch_favorite_details
from bbsync.application.services.playlist_diff import SetDiff, diff_sets, full_add
from bbsync.application.services.playlist_service import PlaylistService
from bbsync.application.services.track_keys import (
    bilibili_video_key,
    generate_unique_track_key,
)
from bbsync.application.services.track_service import TrackService
from bbsync.domain.dtos import BilibiliUpper, FavoriteListPage, FavoriteMedia
from bbsync.domain.entities import (
    Artist,
    BilibiliMetadata,
    CreateArtistPayload,
    CreatePlaylistPayload,
    CreateTrackPayload,
    LocalMetadata,
    Playlist,
    PlaylistType,
    TrackSource,
)
from bbsync.domain.exceptions import (
    BilibiliApiError,
    FacadeError,
    SyncCollectionFailed,
    SyncFavoriteFailed,
    SyncMultiPageFailed,
    SyncTaskAlreadyRunning,
    ValidationError,
)
from bbsync.domain.ports import IBilibiliApi
from bbsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationType,
)
from bbsync.infrastructure.integrations.bilibili_ids import av2bv, bv2av
from bbsync.infrastructure.observability.logging import reset_sync_task, set_sync_task

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class SyncResult:
    """Outcome of one sync call.

    playlist_id is None on failure, for local playlists, and for a favorite that is
    empty remotely and was never synced before.
    """

    playlist_id: int | None = None
    error: Exception | None = None
    # User-facing informational messages (e.g. hidden favorite items)
    notices: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def already_running(self) -> bool:
        return isinstance(self.error, SyncTaskAlreadyRunning)


def _artist_payload(upper: BilibiliUpper) -> CreateArtistPayload:
    return CreateArtistPayload(
        name=upper.name,
        source=TrackSource.BILIBILI,
        remote_id=str(upper.mid),
        avatar_url=upper.face,
    )


def _unique_artist_payloads(uppers: Iterable[BilibiliUpper]) -> list[CreateArtistPayload]:
    """One payload per uploader mid, first occurrence wins."""
    unique: dict[int, CreateArtistPayload] = {}
    for upper in uppers:
        unique.setdefault(upper.mid, _artist_payload(upper))
    return list(unique.values())


def _artist_id(artists: dict[str, Artist], upper: BilibiliUpper) -> int | None:
    artist = artists.get(str(upper.mid))
    return artist.id if artist else None


class PlaylistSyncService:
    """Sync orchestrator for remote playlists."""

    def __init__(
        self,
        bilibili_api: IBilibiliApi,
        session_scope: SessionScope,
        artist_service: ArtistService | None = None,
        track_service: TrackService | None = None,
        playlist_service: PlaylistService | None = None,
        notifier: INotificationProvider | None = None,
        syncing_ids: set[str] | None = None,
        max_favorite_pages: int | None = None,
    ) -> None:
        """Initialize the sync service.

        Args:
            bilibili_api: Remote API port
            session_scope: Factory for transactional sessions (Database.session_scope)
            artist_service: Artist resolver template, rebound per transaction
            track_service: Track resolver template, rebound per transaction
            playlist_service: Playlist service template, rebound per transaction
            notifier: Where informational notices go (hidden favorite items)
            syncing_ids: Registry of in-flight sync keys; injectable for tests
            max_favorite_pages: Optional cap on the favorite page walk
        """
        self._api = bilibili_api
        self._session_scope = session_scope
        self._artist_service = artist_service or ArtistService()
        self._track_service = track_service or TrackService()
        self._playlist_service = playlist_service or PlaylistService()
        self._notifier = notifier
        self._syncing_ids: set[str] = syncing_ids if syncing_ids is not None else set()
        self._max_favorite_pages = max_favorite_pages

    @property
    def running(self) -> frozenset[str]:
        """Keys of the syncs currently in flight."""
        return frozenset(self._syncing_ids)

    # =========================================================================
    # Public entry points
    # =========================================================================

    async def sync(
        self, remote_sync_id: int, playlist_type: PlaylistType | str
    ) -> SyncResult:
        """Sync a playlist by its remote id and type.

        Args:
            remote_sync_id: favorite media_id, collection season_id, or video aid
            playlist_type: Which kind of remote resource the id refers to

        Returns:
            SyncResult; local playlists succeed immediately with playlist_id=None
        """
        try:
            playlist_type = PlaylistType(playlist_type)
        except ValueError:
            return SyncResult(error=ValidationError(f"Unknown playlist type: {playlist_type}"))

        match playlist_type:
            case PlaylistType.FAVORITE:
                return await self.sync_favorite(remote_sync_id)
            case PlaylistType.COLLECTION:
                return await self.sync_collection(remote_sync_id)
            case PlaylistType.MULTI_PAGE:
                try:
                    bvid = av2bv(remote_sync_id)
                except ValidationError as e:
                    return SyncResult(
                        error=SyncMultiPageFailed(f"Invalid aid {remote_sync_id}", cause=e)
                    )
                return await self.sync_multi_page_video(bvid)
            case PlaylistType.LOCAL:
                return SyncResult()

    async def sync_collection(self, collection_id: int) -> SyncResult:
        """Mirror a collection (season) into a local playlist, full replace."""
        return await self._single_flight(
            f"collection::{collection_id}",
            f"Collection {collection_id}",
            SyncCollectionFailed,
            lambda: self._sync_collection(collection_id),
        )

    async def sync_multi_page_video(self, bvid: str) -> SyncResult:
        """Mirror the parts of a multi-part video into a local playlist, full replace."""
        return await self._single_flight(
            f"multiPage::{bvid}",
            f"Multi-part video {bvid}",
            SyncMultiPageFailed,
            lambda: self._sync_multi_page_video(bvid),
        )

    async def sync_favorite(self, favorite_id: int) -> SyncResult:
        """Incrementally mirror a favorite folder into a local playlist."""
        return await self._single_flight(
            f"favorite::{favorite_id}",
            f"Favorite {favorite_id}",
            SyncFavoriteFailed,
            lambda: self._sync_favorite(favorite_id),
        )

    # =========================================================================
    # Single flight + error conversion
    # =========================================================================

    async def _single_flight(
        self,
        sync_key: str,
        label: str,
        failure: type[FacadeError],
        operation: Callable[[], Awaitable[SyncResult]],
    ) -> SyncResult:
        # Check and add happen with no await in between, so this is atomic on the loop
        if sync_key in self._syncing_ids:
            logger.info(f"{label}: sync already running, skipping")
            return SyncResult(error=SyncTaskAlreadyRunning(sync_key))

        self._syncing_ids.add(sync_key)
        token = set_sync_task(sync_key)
        try:
            logger.info(f"{label}: sync started")
            result = await operation()
            logger.info(f"{label}: sync complete (playlist {result.playlist_id})")
            return result
        except (BilibiliApiError, FacadeError) as e:
            logger.error(f"{label}: sync failed: {e}", exc_info=True)
            return SyncResult(error=e)
        except Exception as e:
            logger.error(f"{label}: sync failed: {e}", exc_info=True)
            return SyncResult(error=failure(f"{label} sync failed", cause=e))
        finally:
            self._syncing_ids.discard(sync_key)
            reset_sync_task(token)

    # =========================================================================
    # Full-replace syncs
    # =========================================================================

    async def _sync_collection(self, collection_id: int) -> SyncResult:
        contents = await self._api.get_collection_all_contents(collection_id)
        medias = contents.medias or []
        logger.info(f"Fetched collection '{contents.info.title}' with {len(medias)} items")
        if not medias:
            raise SyncCollectionFailed(f"Collection {collection_id} has no tracks")

        async with self._session_scope() as session:
            artists = self._artist_service.with_session(session)
            tracks = self._track_service.with_session(session)
            playlists = self._playlist_service.with_session(session)

            author = await artists.find_or_create_artist(_artist_payload(contents.info.upper))
            playlist = await playlists.find_or_create_remote_playlist(
                CreatePlaylistPayload(
                    title=contents.info.title,
                    type=PlaylistType.COLLECTION,
                    description=contents.info.intro,
                    cover_url=contents.info.cover,
                    remote_sync_id=collection_id,
                    author_id=author.id,
                )
            )

            artist_map = await artists.find_or_create_many_remote_artists(
                _unique_artist_payloads(media.upper for media in medias)
            )
            payloads = [
                CreateTrackPayload(
                    title=media.title,
                    source=TrackSource.BILIBILI,
                    metadata=BilibiliMetadata(bvid=media.bvid),
                    artist_id=_artist_id(artist_map, media.upper),
                    cover_url=media.cover,
                    duration=media.duration,
                )
                for media in medias
            ]
            ordered_ids = await self._resolve_ordered_track_ids(tracks, payloads)
            await playlists.replace_playlist_all_tracks(playlist.id, ordered_ids)

        return SyncResult(playlist_id=playlist.id)

    async def _sync_multi_page_video(self, bvid: str) -> SyncResult:
        details = await self._api.get_video_details(bvid)
        logger.info(f"Fetched video '{details.title}' with {len(details.pages)} parts")
        remote_sync_id = bv2av(bvid)

        async with self._session_scope() as session:
            artists = self._artist_service.with_session(session)
            tracks = self._track_service.with_session(session)
            playlists = self._playlist_service.with_session(session)

            author = await artists.find_or_create_artist(_artist_payload(details.owner))
            playlist = await playlists.find_or_create_remote_playlist(
                CreatePlaylistPayload(
                    title=details.title,
                    type=PlaylistType.MULTI_PAGE,
                    description=details.desc,
                    cover_url=details.pic,
                    remote_sync_id=remote_sync_id,
                    author_id=author.id,
                )
            )

            payloads = [
                CreateTrackPayload(
                    title=page.part,
                    source=TrackSource.BILIBILI,
                    metadata=BilibiliMetadata(
                        bvid=bvid,
                        cid=page.cid,
                        is_multi_page=True,
                        main_track_title=details.title,
                    ),
                    artist_id=author.id,
                    cover_url=details.pic,
                    duration=page.duration,
                )
                for page in details.pages
            ]
            ordered_ids = await self._resolve_ordered_track_ids(tracks, payloads)
            await playlists.replace_playlist_all_tracks(playlist.id, ordered_ids)

        return SyncResult(playlist_id=playlist.id)

    async def _resolve_ordered_track_ids(
        self, tracks: TrackService, payloads: list[CreateTrackPayload]
    ) -> list[int]:
        """Resolve payloads in batch and return their ids in payload order."""
        key_to_id = await tracks.find_or_create_many_tracks(payloads, TrackSource.BILIBILI)
        return [key_to_id[generate_unique_track_key(payload)] for payload in payloads]

    # =========================================================================
    # Incremental favorite sync
    # =========================================================================

    async def _sync_favorite(self, favorite_id: int) -> SyncResult:
        index, first_page = await asyncio.gather(
            self._api.get_favorite_list_all_contents(favorite_id),
            self._api.get_favorite_list_contents(favorite_id, 1),
        )
        # Videos only, remote order, duplicates collapsed
        remote_bvids = list(dict.fromkeys(item.bvid for item in index if item.is_video))
        logger.debug(f"Favorite index has {len(remote_bvids)} videos")

        local_playlist, diff = await self._diff_favorite(favorite_id, remote_bvids)
        logger.info(
            f"Favorite {favorite_id} changes: {len(diff.added)} added, "
            f"{len(diff.removed)} removed"
        )
        if not diff.has_changes:
            logger.info(f"Favorite {favorite_id} unchanged (or empty), nothing to sync")
            return SyncResult(playlist_id=local_playlist.id if local_playlist else None)

        outcome = await fetch_favorite_details(
            self._api,
            favorite_id,
            diff.added,
            max_pages=self._max_favorite_pages,
            first_page=first_page,
        )
        logger.debug(
            f"Fetched details for {len(outcome.found)} added items "
            f"in {outcome.pages_requested} pages"
        )

        if outcome.truncated:
            # Dropping them would shrink the playlist for items that still exist remotely
            raise SyncFavoriteFailed(
                f"Favorite {favorite_id}: stopped after {outcome.pages_requested} pages "
                f"with {len(outcome.truncated)} added items not found; "
                f"raise BILIBILI__MAX_FAVORITE_PAGES"
            )

        notices: list[str] = []
        if outcome.hidden:
            hidden = set(outcome.hidden)
            remote_bvids = [bvid for bvid in remote_bvids if bvid not in hidden]
            notices.append(await self._notify_hidden_items(favorite_id, outcome.hidden))

        playlist_id = await self._apply_favorite(
            favorite_id, first_page, list(outcome.found.values()), remote_bvids
        )
        return SyncResult(playlist_id=playlist_id, notices=notices)

    async def _diff_favorite(
        self, favorite_id: int, remote_bvids: list[str]
    ) -> tuple[Playlist | None, SetDiff]:
        """Load the local snapshot (read-only) and diff it against the remote index."""
        async with self._session_scope() as session:
            playlists = self._playlist_service.with_session(session)
            local_playlist = await playlists.find_playlist_by_type_and_remote_id(
                PlaylistType.FAVORITE, favorite_id
            )
            if local_playlist is None or local_playlist.item_count == 0:
                return local_playlist, full_add(remote_bvids)

            local_bvids: list[str] = []
            for track in await playlists.get_playlist_tracks(local_playlist.id):
                match track.metadata:
                    case BilibiliMetadata(bvid=bvid):
                        local_bvids.append(bvid)
                    case LocalMetadata():
                        raise SyncFavoriteFailed(
                            f"Favorite playlist {local_playlist.id} contains non-bilibili "
                            f"track {track.id}; the local database looks corrupted"
                        )
            return local_playlist, diff_sets(remote_bvids, local_bvids)

    async def _apply_favorite(
        self,
        favorite_id: int,
        first_page: FavoriteListPage,
        added_medias: list[FavoriteMedia],
        remote_bvids: list[str],
    ) -> int:
        """Resolve the newly added items and rewrite membership, in one transaction."""
        info = first_page.info
        async with self._session_scope() as session:
            artists = self._artist_service.with_session(session)
            tracks = self._track_service.with_session(session)
            playlists = self._playlist_service.with_session(session)

            author = await artists.find_or_create_artist(_artist_payload(info.upper))
            playlist = await playlists.find_or_create_remote_playlist(
                CreatePlaylistPayload(
                    title=info.title,
                    type=PlaylistType.FAVORITE,
                    description=info.intro,
                    cover_url=info.cover,
                    remote_sync_id=favorite_id,
                    author_id=author.id,
                )
            )

            artist_map = await artists.find_or_create_many_remote_artists(
                _unique_artist_payloads(media.upper for media in added_medias)
            )
            await tracks.find_or_create_many_tracks(
                [
                    CreateTrackPayload(
                        title=media.title,
                        source=TrackSource.BILIBILI,
                        metadata=BilibiliMetadata(
                            bvid=media.bvid, video_is_valid=media.attr == 0
                        ),
                        artist_id=_artist_id(artist_map, media.upper),
                        cover_url=media.cover,
                        duration=media.duration,
                    )
                    for media in added_medias
                ],
                TrackSource.BILIBILI,
            )

            # Final order comes from the full remote index, not from the diff
            ordered_keys = [bilibili_video_key(bvid) for bvid in remote_bvids]
            key_to_id = await tracks.find_track_ids_by_unique_keys(ordered_keys)
            missing = [key for key in ordered_keys if key not in key_to_id]
            if missing:
                raise SyncFavoriteFailed(
                    f"{len(missing)} tracks still missing after creation, e.g. {missing[0]}"
                )

            await playlists.replace_playlist_all_tracks(
                playlist.id, [key_to_id[key] for key in ordered_keys]
            )

        return playlist.id

    async def _notify_hidden_items(self, favorite_id: int, hidden: list[str]) -> str:
        """Emit the single informational notice about hidden favorite items."""
        message = (
            f"{len(hidden)} videos in favorite {favorite_id} were hidden by their "
            f"uploader and could not be synced: {', '.join(hidden)}"
        )
        logger.warning(message)

        if self._notifier is not None:
            try:
                await self._notifier.send(
                    Notification(
                        type=NotificationType.SYNC_HIDDEN_ITEMS,
                        title="Some favorite videos were not synced",
                        message=message,
                        data={"favorite_id": favorite_id, "bvids": hidden},
                    )
                )
            except Exception:
                # A lost notice must not fail a sync that is otherwise fine
                logger.warning("Failed to deliver hidden-items notice", exc_info=True)
        return message
