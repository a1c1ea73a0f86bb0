"""In-app notices kept in memory.

Hey future me - this is what turns "some favorite items are hidden" into something
the UI can show. Notices sit in a bounded deque (oldest first, oldest dropped) and are
listed by GET /api/notifications. Nothing is persisted; a restart clears them.
"""

import logging
from collections import deque
from uuid import uuid4

from bbsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationType,
)

logger = logging.getLogger(__name__)


class InAppNotificationProvider(INotificationProvider):
    """Bounded in-memory store of recent notices."""

    def __init__(self, max_count: int = 100) -> None:
        self._notices: deque[tuple[str, Notification]] = deque(maxlen=max_count)

    async def send(self, notification: Notification) -> str:
        notice_id = uuid4().hex
        self._notices.append((notice_id, notification))
        logger.info(f"Stored {notification.type.value} notice {notice_id[:8]}: {notification.title}")
        return notice_id

    def list_notifications(
        self,
        limit: int = 50,
        notification_type: NotificationType | None = None,
    ) -> list[tuple[str, Notification]]:
        """Stored notices as (id, notice) pairs, newest first.

        Args:
            limit: At most this many
            notification_type: Only notices of this type
        """
        matching = (
            entry
            for entry in reversed(self._notices)
            if notification_type is None or entry[1].type is notification_type
        )
        return [entry for _, entry in zip(range(limit), matching)]

    def clear(self) -> int:
        """Forget every notice. Returns how many there were."""
        dropped = len(self._notices)
        self._notices.clear()
        return dropped
