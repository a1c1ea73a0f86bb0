"""Port for user-visible notices.

Hey future me - the sync engine only knows INotificationProvider. The app wires in the
in-app provider, tests pass a mock. Notices are informational ("N videos hidden by
their uploader"); failures travel as SyncResult.error, never as notices.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """What a notice is about."""

    SYNC_HIDDEN_ITEMS = "sync_hidden_items"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    """A notice as handed to providers.

    Example:
        Notification(
            type=NotificationType.SYNC_HIDDEN_ITEMS,
            title="Some videos were not synced",
            message="Hidden by uploader: BV1xx411c7mD",
            data={"favorite_id": 123, "bvids": ["BV1xx411c7mD"]},
        )
    """

    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class INotificationProvider(ABC):
    """Somewhere notices can be delivered."""

    @abstractmethod
    async def send(self, notification: Notification) -> str:
        """Deliver a notice and return the id it was stored under."""
        pass


__all__ = [
    "INotificationProvider",
    "Notification",
    "NotificationType",
]
