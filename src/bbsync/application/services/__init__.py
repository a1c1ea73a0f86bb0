"""Application services - store facades, diffing, fetching and the sync engine."""

from bbsync.application.services.artist_service import ArtistService
from bbsync.application.services.favorite_fetcher import FetchOutcome, fetch_favorite_details
from bbsync.application.services.playlist_actions_service import PlaylistActionsService
from bbsync.application.services.playlist_diff import SetDiff, diff_sets, full_add
from bbsync.application.services.playlist_service import PlaylistService

# Hey future me - PlaylistSyncService is the entry point for every sync. The other
# services are the store facades it rebinds to one transaction per sync.
from bbsync.application.services.playlist_sync_service import (
    PlaylistSyncService,
    SyncResult,
)
from bbsync.application.services.track_keys import (
    bilibili_video_key,
    generate_unique_track_key,
    unique_key_for,
)
from bbsync.application.services.track_service import TrackService

__all__ = [
    "ArtistService",
    "FetchOutcome",
    "PlaylistActionsService",
    "PlaylistService",
    "PlaylistSyncService",
    "SetDiff",
    "SyncResult",
    "TrackService",
    "bilibili_video_key",
    "diff_sets",
    "fetch_favorite_details",
    "full_add",
    "generate_unique_track_key",
    "unique_key_for",
]
