"""Playlist endpoints."""

from fastapi import APIRouter, Depends

from bbsync.api.dependencies import get_actions_service, get_playlist_service
from bbsync.api.schemas import (
    DuplicatePlaylistRequest,
    DuplicatePlaylistResponse,
    PlaylistResponse,
    TrackResponse,
)
from bbsync.application.services import PlaylistActionsService, PlaylistService

router = APIRouter()


@router.get("/{playlist_id}", response_model=PlaylistResponse)
async def get_playlist(
    playlist_id: int,
    playlist_service: PlaylistService = Depends(get_playlist_service),
) -> PlaylistResponse:
    """Get a playlist header. 404 if it doesn't exist."""
    playlist = await playlist_service.get_playlist_by_id(playlist_id)
    return PlaylistResponse.from_entity(playlist)


@router.get("/{playlist_id}/tracks", response_model=list[TrackResponse])
async def get_playlist_tracks(
    playlist_id: int,
    playlist_service: PlaylistService = Depends(get_playlist_service),
) -> list[TrackResponse]:
    """Get the tracks of a playlist in membership order."""
    await playlist_service.get_playlist_by_id(playlist_id)
    tracks = await playlist_service.get_playlist_tracks(playlist_id)
    return [TrackResponse.from_entity(track) for track in tracks]


@router.post(
    "/{playlist_id}/duplicate",
    response_model=DuplicatePlaylistResponse,
    status_code=201,
)
async def duplicate_playlist(
    playlist_id: int,
    request: DuplicatePlaylistRequest,
    actions: PlaylistActionsService = Depends(get_actions_service),
) -> DuplicatePlaylistResponse:
    """Copy a playlist into a new local playlist, skipping invalid videos."""
    new_id = await actions.duplicate_playlist(playlist_id, request.name)
    return DuplicatePlaylistResponse(playlist_id=new_id)
