"""API routes for in-app notifications.

Hey future me - these are the informational notices the sync engine emits (hidden
favorite items for now). They live in memory only, newest first.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from bbsync.api.dependencies import get_notification_provider
from bbsync.api.schemas import NotificationResponse, NotificationsListResponse
from bbsync.domain.ports.notification import NotificationType
from bbsync.infrastructure.notifications import InAppNotificationProvider

router = APIRouter()


@router.get("", response_model=NotificationsListResponse)
async def list_notifications(
    provider: Annotated[InAppNotificationProvider, Depends(get_notification_provider)],
    notification_type: Annotated[
        NotificationType | None, Query(description="Filter by type")
    ] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max notifications to return")] = 50,
) -> NotificationsListResponse:
    """List in-app notifications, newest first."""
    items = provider.list_notifications(limit=limit, notification_type=notification_type)
    return NotificationsListResponse(
        notifications=[
            NotificationResponse.from_notification(notification_id, notification)
            for notification_id, notification in items
        ],
        total=len(items),
    )
