"""Observability infrastructure for structured logging."""

from bbsync.infrastructure.observability.logging import (
    configure_logging,
    get_sync_task,
    reset_sync_task,
    set_sync_task,
)

__all__ = [
    "configure_logging",
    "get_sync_task",
    "reset_sync_task",
    "set_sync_task",
]
