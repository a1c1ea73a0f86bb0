"""Application lifecycle management for startup and shutdown tasks.

Startup builds everything long-lived and parks it on app.state:
- db:              Database (engine + session_scope), tables created if missing
- bilibili_client: BilibiliClient (one httpx.AsyncClient for the whole app)
- notifier:        InAppNotificationProvider
- sync_service:    PlaylistSyncService (owns the single-flight registry)
- actions_service: PlaylistActionsService
Shutdown closes the client and disposes the engine.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bbsync.application.services import PlaylistActionsService, PlaylistSyncService
from bbsync.config import Settings, get_settings
from bbsync.domain.exceptions import ConfigurationError
from bbsync.infrastructure.integrations import BilibiliClient
from bbsync.infrastructure.notifications import InAppNotificationProvider
from bbsync.infrastructure.observability import configure_logging
from bbsync.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, SQLite creates the .db file lazily but fails late and cryptically when
# its directory is missing or read-only (it also needs room for -journal/-wal files).
# Catch that here, before the engine exists, with a message that names the setting.
def _prepare_sqlite_directory(settings: Settings) -> None:
    """Create the SQLite file's directory if needed and check that it is writable."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    directory = db_path.parent
    marker = directory / f".{db_path.stem}.write-test"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        marker.touch()
        marker.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"SQLite directory '{directory}' is not usable ({exc}); "
            "point DATABASE__URL somewhere writable"
        ) from exc
    logger.debug(f"SQLite directory ready: {directory}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Uses app.state.settings when create_app() was given settings, get_settings()
    otherwise.
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.json_logs,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db: Database | None = None
    bilibili_client: BilibiliClient | None = None
    try:
        _prepare_sqlite_directory(settings)

        db = Database(settings)
        await db.create_tables()
        app.state.db = db
        logger.info("Database initialized: %s", settings.database.url)

        bilibili_client = BilibiliClient(settings.bilibili)
        app.state.bilibili_client = bilibili_client

        notifier = InAppNotificationProvider(max_count=settings.notification_history)
        app.state.notifier = notifier

        app.state.sync_service = PlaylistSyncService(
            bilibili_api=bilibili_client,
            session_scope=db.session_scope,
            notifier=notifier,
            max_favorite_pages=settings.bilibili.max_favorite_pages,
        )
        app.state.actions_service = PlaylistActionsService(
            bilibili_api=bilibili_client,
            session_scope=db.session_scope,
        )
        logger.info("Sync services initialized")

        yield

    except Exception as e:
        logger.exception("Error during application startup: %s", e)
        raise
    finally:
        logger.info("Shutting down application")

        if bilibili_client is not None:
            await bilibili_client.close()
            logger.info("Bilibili client closed")

        if db is not None:
            await db.close()
            logger.info("Database connection closed")
