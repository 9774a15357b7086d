"""
Notifications API Endpoints

Callers only ever see and acknowledge their own notifications; someone
else's notification is reported as not found.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from app.core.access_policy import Action
from app.core.exceptions import NotFoundError
from app.core.security import get_store, require_action
from app.models.schemas import NotificationCreate, NotificationRecord, UserRecord

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[NotificationRecord])
async def list_my_notifications(
    current_user: UserRecord = Depends(require_action(Action.MANAGE_OWN_ACCOUNT)),
    store=Depends(get_store),
):
    """The caller's notifications, newest first."""
    return await store.list_notifications(current_user.id)


@router.patch("/{notification_id}/read", response_model=NotificationRecord)
async def mark_notification_read(
    notification_id: int,
    current_user: UserRecord = Depends(require_action(Action.MANAGE_OWN_ACCOUNT)),
    store=Depends(get_store),
):
    notification = await store.get_notification(notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise NotFoundError("Notification", notification_id)

    updated = await store.mark_notification_read(notification_id)
    if updated is None:
        raise NotFoundError("Notification", notification_id)
    return updated


@router.post("", response_model=NotificationRecord, status_code=status.HTTP_201_CREATED)
async def send_notification(
    payload: NotificationCreate,
    current_user: UserRecord = Depends(require_action(Action.SEND_NOTIFICATION)),
    store=Depends(get_store),
):
    """Send a notification to any existing user."""
    notification = await store.create_notification(payload)
    logger.info(
        "Notification sent",
        notification_id=notification.id,
        recipient_id=notification.user_id,
        sent_by=current_user.id,
    )
    return notification
