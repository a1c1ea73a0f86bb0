"""Sync endpoints."""

import logging

from fastapi import APIRouter, Depends

from bbsync.api.dependencies import get_sync_service
from bbsync.api.schemas import SyncResponse
from bbsync.application.services import PlaylistSyncService
from bbsync.domain.entities import PlaylistType

logger = logging.getLogger(__name__)

router = APIRouter()


# Hey future me, the sync itself never raises; it hands back a SyncResult. We re-raise
# result.error here so the global exception handlers pick the status code:
# SyncTaskAlreadyRunning -> 409, BilibiliApiError -> 502, Sync*Failed -> 500.
# The request waits for the whole sync; there is no background job queue.
@router.post("/{playlist_type}/{remote_sync_id}", response_model=SyncResponse)
async def sync_playlist(
    playlist_type: PlaylistType,
    remote_sync_id: int,
    sync_service: PlaylistSyncService = Depends(get_sync_service),
) -> SyncResponse:
    """Sync one remote playlist into the local library.

    Args:
        playlist_type: favorite, collection, multi_page or local
        remote_sync_id: favorite media_id, collection season_id or video aid
    """
    result = await sync_service.sync(remote_sync_id, playlist_type)
    if result.error is not None:
        raise result.error
    return SyncResponse(playlist_id=result.playlist_id, notices=result.notices)
