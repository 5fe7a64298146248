"""API routes for in-app notifications (read side).

Marking as read lives with the frontend's own data access and is not exposed here.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from tunealert.api.dependencies import get_notification_repository
from tunealert.infrastructure.persistence import NotificationRepository

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user_id: Annotated[str, Query(min_length=1)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    unread_only: bool = False,
    repository: NotificationRepository = Depends(get_notification_repository),
) -> dict[str, Any]:
    """List a user's notifications, newest first.

    Returns:
        {"notifications": [...], "unreadCount": int, "total": int} where total counts
        every notification matching the filter, not just this page
    """
    notifications = await repository.list_for_user(
        user_id, limit=limit, offset=offset, unread_only=unread_only
    )
    unread_count = await repository.count_for_user(user_id, unread_only=True)
    total = (
        unread_count
        if unread_only
        else await repository.count_for_user(user_id, unread_only=False)
    )
    return {
        "notifications": [notification.to_dict() for notification in notifications],
        "unreadCount": unread_count,
        "total": total,
    }
