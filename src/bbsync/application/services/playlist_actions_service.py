"""User-triggered playlist actions and remote metadata lookups."""

import logging

from bbsync.application.services.artist_service import ArtistService
from bbsync.application.services.playlist_service import PlaylistService
from bbsync.application.services.playlist_sync_service import SessionScope
from bbsync.application.services.track_service import TrackService
from bbsync.domain.dtos import RemotePlaylistMetadata
from bbsync.domain.entities import (
    BilibiliMetadata,
    CreateArtistPayload,
    CreatePlaylistPayload,
    CreateTrackPayload,
    PlaylistType,
    Track,
    TrackSource,
)
from bbsync.domain.exceptions import ValidationError
from bbsync.domain.ports import IBilibiliApi
from bbsync.infrastructure.integrations.bilibili_ids import av2bv

logger = logging.getLogger(__name__)


class PlaylistActionsService:
    """One-shot actions on tracks and playlists, each in its own transaction."""

    def __init__(
        self,
        bilibili_api: IBilibiliApi,
        session_scope: SessionScope,
        artist_service: ArtistService | None = None,
        track_service: TrackService | None = None,
        playlist_service: PlaylistService | None = None,
    ) -> None:
        self._api = bilibili_api
        self._session_scope = session_scope
        self._artist_service = artist_service or ArtistService()
        self._track_service = track_service or TrackService()
        self._playlist_service = playlist_service or PlaylistService()

    async def add_track_from_bilibili(self, bvid: str, cid: int | None = None) -> Track:
        """Resolve a Bilibili video (or one part of it) into a local track.

        Args:
            bvid: Video id
            cid: Part id; given means the track is one part of a multi-part video

        Returns:
            The existing or newly created track

        Raises:
            BilibiliApiError: Video details could not be fetched
            ValidationError: cid does not belong to the video
        """
        details = await self._api.get_video_details(bvid)

        title = details.title
        duration = details.duration
        if cid is not None:
            page = next((page for page in details.pages if page.cid == cid), None)
            if page is None:
                raise ValidationError(f"Video {bvid} has no part with cid {cid}")
            title = page.part
            duration = page.duration

        async with self._session_scope() as session:
            artist = await self._artist_service.with_session(session).find_or_create_artist(
                CreateArtistPayload(
                    name=details.owner.name,
                    source=TrackSource.BILIBILI,
                    remote_id=str(details.owner.mid),
                    avatar_url=details.owner.face,
                )
            )
            track = await self._track_service.with_session(session).find_or_create_track(
                CreateTrackPayload(
                    title=title,
                    source=TrackSource.BILIBILI,
                    metadata=BilibiliMetadata(
                        bvid=bvid,
                        cid=cid,
                        is_multi_page=cid is not None,
                        main_track_title=details.title if cid is not None else None,
                    ),
                    artist_id=artist.id,
                    cover_url=details.pic,
                    duration=duration,
                )
            )

        logger.info(f"Resolved {bvid} (cid={cid}) to track {track.id}")
        return track

    async def duplicate_playlist(self, playlist_id: int, name: str) -> int:
        """Copy a playlist into a new local playlist.

        Tracks keep their order. Bilibili tracks whose video is no longer valid are
        left out of the copy.

        Returns:
            Id of the new playlist

        Raises:
            EntityNotFoundException: Source playlist does not exist
        """
        async with self._session_scope() as session:
            playlists = self._playlist_service.with_session(session)
            source = await playlists.get_playlist_by_id(playlist_id)
            tracks = await playlists.get_playlist_tracks(playlist_id)

            copy = await playlists.create_playlist(
                CreatePlaylistPayload(
                    title=name,
                    type=PlaylistType.LOCAL,
                    description=source.description,
                    cover_url=source.cover_url,
                    author_id=source.author.id if source.author else None,
                )
            )
            track_ids = [track.id for track in tracks if track.is_playable]
            await playlists.add_tracks_to_local_playlist(copy.id, track_ids)

        skipped = len(tracks) - len(track_ids)
        logger.info(
            f"Duplicated playlist {playlist_id} into {copy.id} "
            f"({len(track_ids)} tracks, {skipped} invalid skipped)"
        )
        return copy.id

    async def fetch_remote_playlist_metadata(
        self, remote_id: int, playlist_type: PlaylistType | str
    ) -> RemotePlaylistMetadata:
        """Fetch the current title, description and cover of a remote playlist.

        Read-only: nothing is stored. Used to refresh a playlist's details by hand.

        Args:
            remote_id: favorite media_id, collection season_id, or video aid
            playlist_type: favorite, collection or multi_page

        Raises:
            ValidationError: Local or unknown type, or an invalid aid
            BilibiliApiError: The remote lookup failed
        """
        try:
            playlist_type = PlaylistType(playlist_type)
        except ValueError:
            raise ValidationError(f"Unknown playlist type: {playlist_type}") from None

        match playlist_type:
            case PlaylistType.FAVORITE:
                info = (await self._api.get_favorite_list_contents(remote_id, 1)).info
                return RemotePlaylistMetadata(
                    title=info.title, description=info.intro, cover_url=info.cover
                )
            case PlaylistType.COLLECTION:
                info = (await self._api.get_collection_all_contents(remote_id)).info
                return RemotePlaylistMetadata(
                    title=info.title, description=info.intro, cover_url=info.cover
                )
            case PlaylistType.MULTI_PAGE:
                details = await self._api.get_video_details(av2bv(remote_id))
                return RemotePlaylistMetadata(
                    title=details.title, description=details.desc, cover_url=details.pic
                )
            case _:
                raise ValidationError(
                    f"Playlist type '{playlist_type.value}' has no remote metadata"
                )
