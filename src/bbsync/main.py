"""FastAPI application factory.

Run with:
    uvicorn bbsync.main:app
"""

from fastapi import FastAPI

from bbsync import __version__
from bbsync.api.exception_handlers import register_exception_handlers
from bbsync.api.health_checks import register_health_endpoints
from bbsync.api.routers import api_router
from bbsync.config import Settings, get_settings
from bbsync.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment (tests)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Mirror Bilibili favorites, collections and multi-part videos locally",
        lifespan=lifespan,
    )
    app.state.settings = settings

    register_exception_handlers(app)
    register_health_endpoints(app, settings)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
