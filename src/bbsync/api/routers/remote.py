"""Read-only lookups against Bilibili that store nothing."""

from fastapi import APIRouter, Depends

from bbsync.api.dependencies import get_actions_service
from bbsync.api.schemas import RemotePlaylistMetadataResponse
from bbsync.application.services import PlaylistActionsService
from bbsync.domain.entities import PlaylistType

router = APIRouter()


@router.get("/{playlist_type}/{remote_id}", response_model=RemotePlaylistMetadataResponse)
async def get_remote_playlist_metadata(
    playlist_type: PlaylistType,
    remote_id: int,
    actions: PlaylistActionsService = Depends(get_actions_service),
) -> RemotePlaylistMetadataResponse:
    """Current title, description and cover of a remote playlist.

    Local playlists have no remote side and get a 422.
    """
    metadata = await actions.fetch_remote_playlist_metadata(remote_id, playlist_type)
    return RemotePlaylistMetadataResponse.from_dto(metadata)
