"""API router initialization."""

# Hey future me, this is the main API router aggregator! It gets mounted at /api in
# main.py, so the prefixes below turn into /api/sync/..., /api/playlists/..., etc.
# The tags group endpoints in the OpenAPI docs.

from fastapi import APIRouter

from bbsync.api.routers import notifications, playlists, remote, sync, tracks

api_router = APIRouter()

api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])
api_router.include_router(playlists.router, prefix="/playlists", tags=["Playlists"])
api_router.include_router(tracks.router, prefix="/tracks", tags=["Tracks"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(remote.router, prefix="/remote", tags=["Remote"])

__all__ = ["api_router"]
