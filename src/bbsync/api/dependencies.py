"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bbsync.application.services import (
    PlaylistActionsService,
    PlaylistService,
    PlaylistSyncService,
)
from bbsync.infrastructure.notifications import InAppNotificationProvider
from bbsync.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, everything long-lived (db, Bilibili client, sync service, notifier) is
# built once in lifespan() and parked on app.state. These helpers only fetch it. If it's
# missing, startup went wrong, so 503 rather than a confusing AttributeError.
def _from_state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        logger.error(f"app.state.{name} is not initialized")
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return value


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state.

    Uses session_scope(), so the request's work commits when the endpoint returns
    and rolls back if it raises.
    """
    db = cast(Database, _from_state(request, "db"))
    async with db.session_scope() as session:
        yield session


def get_sync_service(request: Request) -> PlaylistSyncService:
    """Get the shared sync service (it owns the single-flight registry)."""
    return cast(PlaylistSyncService, _from_state(request, "sync_service"))


def get_actions_service(request: Request) -> PlaylistActionsService:
    """Get the playlist actions service."""
    return cast(PlaylistActionsService, _from_state(request, "actions_service"))


def get_notification_provider(request: Request) -> InAppNotificationProvider:
    """Get the in-app notification provider."""
    return cast(InAppNotificationProvider, _from_state(request, "notifier"))


def get_playlist_service(
    session: AsyncSession = Depends(get_db_session),
) -> PlaylistService:
    """Get a playlist service bound to the request session."""
    return PlaylistService(session)
