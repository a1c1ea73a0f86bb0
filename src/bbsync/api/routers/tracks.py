"""Track endpoints."""

from fastapi import APIRouter, Depends

from bbsync.api.dependencies import get_actions_service
from bbsync.api.schemas import AddBilibiliTrackRequest, TrackResponse
from bbsync.application.services import PlaylistActionsService

router = APIRouter()


@router.post("/bilibili", response_model=TrackResponse)
async def add_bilibili_track(
    request: AddBilibiliTrackRequest,
    actions: PlaylistActionsService = Depends(get_actions_service),
) -> TrackResponse:
    """Resolve a Bilibili video (or one part, with cid) into a local track.

    Idempotent: posting the same bvid/cid again returns the same track.
    """
    track = await actions.add_track_from_bilibili(request.bvid, request.cid)
    return TrackResponse.from_entity(track)
