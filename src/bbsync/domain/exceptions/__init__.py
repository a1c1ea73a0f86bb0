"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message lives on the instance so handlers can read it without
    # parsing str(exc). Never raise this directly, always a subclass.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found.

    HTTP Status: 404

    Example:
        raise EntityNotFoundException("Playlist", 42)
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    Raised when a payload lacks identity fields, mixes sources, or carries
    metadata that disagrees with its source tag.

    HTTP Status: 422

    Example:
        raise ValidationError("source and remote_id are required")
        raise ValidationError("cid is required for multi-part tracks")
    """

    pass


class InvalidStateException(DomainException):
    """Raised when an entity is in an invalid state for the requested operation.

    HTTP Status: 409

    Example:
        raise InvalidStateException("Only local playlists accept direct edits")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("ArtistService used without a session")
    """

    pass


class DatabaseError(DomainException):
    """A storage operation failed.

    The original SQLAlchemy error is chained as ``__cause__``. Raising it inside
    ``Database.session_scope()`` rolls the whole transaction back.

    HTTP Status: 500

    Example:
        raise DatabaseError("Failed to insert tracks") from exc
    """

    pass


class ExternalServiceError(DomainException):
    """External service returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    pass


class BilibiliApiError(ExternalServiceError):
    """The Bilibili web API call failed.

    ``type`` is one of:
    - ``RequestFailed``: transport failure (DNS, timeout, non-2xx status)
    - ``ResponseFailed``: envelope ``code`` was non-zero
    - ``InvalidResponse``: payload did not have the expected shape

    Example:
        raise BilibiliApiError("啥都木有", type="ResponseFailed", msg_code=-404)
    """

    def __init__(
        self,
        message: str,
        type: str = "RequestFailed",
        msg_code: int | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message)
        self.type = type
        self.msg_code = msg_code
        self.raw = raw


# =============================================================================
# Sync facade errors
# One error per sync flavor. The underlying failure is chained as __cause__.
# =============================================================================


class FacadeError(DomainException):
    """Base class for errors reported by the sync and playlist facades."""

    kind: str = "FacadeError"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        """The wrapped underlying error, if any."""
        return self.__cause__


class SyncFavoriteFailed(FacadeError):
    """Favorite folder sync failed. HTTP Status: 500"""

    kind = "SyncFavoriteFailed"


class SyncCollectionFailed(FacadeError):
    """Collection sync failed. HTTP Status: 500"""

    kind = "SyncCollectionFailed"


class SyncMultiPageFailed(FacadeError):
    """Multi-part video sync failed. HTTP Status: 500"""

    kind = "SyncMultiPageFailed"


class SyncTaskAlreadyRunning(FacadeError):
    """A sync for the same resource key is already in flight.

    This is an expected outcome, not a failure worth an ERROR log line.

    HTTP Status: 409 (Conflict)
    """

    kind = "SyncTaskAlreadyRunning"

    def __init__(self, sync_key: str) -> None:
        super().__init__(f"Sync task already running: {sync_key}")
        self.sync_key = sync_key


# =============================================================================
# Public API - All exceptions that can be imported
# =============================================================================
__all__ = [
    # Base
    "DomainException",
    # Entity exceptions
    "EntityNotFoundException",
    # Validation
    "ValidationError",
    # State
    "InvalidStateException",
    # Infrastructure
    "ConfigurationError",
    "DatabaseError",
    # External service exceptions
    "ExternalServiceError",
    "BilibiliApiError",
    # Facade
    "FacadeError",
    "SyncFavoriteFailed",
    "SyncCollectionFailed",
    "SyncMultiPageFailed",
    "SyncTaskAlreadyRunning",
]
