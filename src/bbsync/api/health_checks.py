"""Health check endpoints for application monitoring."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bbsync import __version__
from bbsync.config import Settings

logger = logging.getLogger(__name__)


def register_health_endpoints(app: FastAPI, settings: Settings) -> None:
    """Register /health (liveness) and /ready (database reachable) on the app.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """

    # Hey, this is the BASIC health check - no DB or remote calls, so it stays fast.
    # Use /ready to find out whether the database actually answers.
    @app.get("/health", tags=["Health"], summary="Basic health check")
    async def health_check() -> dict[str, Any]:
        """Liveness check.

        Example response:
            {"status": "healthy", "app_name": "bbsync", "version": "0.1.0"}
        """
        return {
            "status": "healthy",
            "app_name": settings.app_name,
            "version": __version__,
        }

    @app.get("/ready", tags=["Health"], summary="Readiness check")
    async def readiness_check() -> JSONResponse:
        """Readiness check: 200 when a trivial query succeeds, 503 otherwise."""
        db = getattr(app.state, "db", None)
        if db is None:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "not initialized"},
            )
        try:
            async with db.session_scope() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("Readiness check failed: %s", e)
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": str(e)},
            )
        return JSONResponse(content={"status": "ready", "database": "ok"})
