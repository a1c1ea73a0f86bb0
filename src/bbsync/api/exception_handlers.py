"""Custom exception handlers for FastAPI application.

Domain exceptions become JSON responses of the shape
{"error": <exception kind>, "message": <human readable>}.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bbsync.domain.exceptions import (
    ConfigurationError,
    DatabaseError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    FacadeError,
    InvalidStateException,
    SyncTaskAlreadyRunning,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int, exc: DomainException, **extra: object
) -> JSONResponse:
    error = exc.kind if isinstance(exc, FacadeError) else type(exc).__name__
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": exc.message, **extra},
    )


# Hey future me, this registers GLOBAL exception handlers for the entire app! Starlette
# picks the most specific handler along the exception's MRO, so SyncTaskAlreadyRunning
# gets its 409 even though it's also a FacadeError (500). Must be called during app
# setup, before any request arrives.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers that map domain exceptions to HTTP responses.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle domain validation errors with 422 Unprocessable Entity."""
        logger.warning("Validation error at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
        )
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(InvalidStateException)
    async def invalid_state_exception_handler(
        request: Request, exc: InvalidStateException
    ) -> JSONResponse:
        """Handle invalid state exceptions with 409 Conflict."""
        logger.warning("Invalid state at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(SyncTaskAlreadyRunning)
    async def sync_running_exception_handler(
        request: Request, exc: SyncTaskAlreadyRunning
    ) -> JSONResponse:
        """A sync for the same resource is in flight: 409 Conflict."""
        logger.info("Sync already running at %s: %s", request.url.path, exc.sync_key)
        return _error_response(status.HTTP_409_CONFLICT, exc, sync_key=exc.sync_key)

    @app.exception_handler(ExternalServiceError)
    async def external_service_exception_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Remote API failures: 502 Bad Gateway."""
        logger.error("External service error at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_502_BAD_GATEWAY, exc)

    @app.exception_handler(ConfigurationError)
    async def configuration_exception_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Misconfiguration: 503 Service Unavailable."""
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.exception_handler(DatabaseError)
    async def database_exception_handler(
        request: Request, exc: DatabaseError
    ) -> JSONResponse:
        """Storage failures: 500 Internal Server Error."""
        logger.error("Database error at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    @app.exception_handler(FacadeError)
    async def facade_exception_handler(
        request: Request, exc: FacadeError
    ) -> JSONResponse:
        """Sync failures: 500 Internal Server Error. The cause was logged by the sync."""
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed requests with the same error shape as domain errors."""
        logger.warning("Request validation error at %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "RequestValidationError",
                "message": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
            },
        )
