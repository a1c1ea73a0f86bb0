"""Notification providers package.

Hey future me - the sync engine talks to INotificationProvider only. The in-app
provider keeps recent notices in memory for the API to list.
"""

from bbsync.infrastructure.notifications.inapp_provider import (
    InAppNotificationProvider,
)

__all__ = ["InAppNotificationProvider"]
