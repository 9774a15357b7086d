"""
Activity feed and status-change notifications.

Both are side effects of an already-committed mutation: a failure is logged
and counted but never reaches the caller.
"""

from typing import Optional

import structlog

from app.core.metrics import ACTIVITY_APPEND_FAILURES, NOTIFICATION_FAILURES
from app.models.schemas import (
    ActivityRecord,
    EmergencyRequestRecord,
    MedicalServiceRecord,
    NotificationRecord,
    ResponseTeamRecord,
)

logger = structlog.get_logger(__name__)


def request_reference(request_id: int) -> str:
    """Human-facing emergency request reference, e.g. ``#EM-12``."""
    return f"#EM-{request_id}"


async def record_activity(
    store,
    title: str,
    description: Optional[str] = None,
    icon: Optional[str] = None,
    icon_bg: Optional[str] = None,
) -> Optional[ActivityRecord]:
    """Append an activity entry; returns None if it could not be stored."""
    try:
        return await store.create_activity({
            "title": title,
            "description": description,
            "icon": icon,
            "icon_bg": icon_bg,
        })
    except Exception as e:
        ACTIVITY_APPEND_FAILURES.inc()
        logger.error("Failed to record activity", title=title, error=str(e))
        return None


async def request_created(store, request: EmergencyRequestRecord) -> Optional[ActivityRecord]:
    reference = request_reference(request.id)
    return await record_activity(
        store,
        title=f"Emergency request {reference} created",
        description=f"Emergency request {reference} has been created",
        icon="fa-exclamation-circle",
        icon_bg="bg-danger-50",
    )


async def request_updated(store, request: EmergencyRequestRecord) -> Optional[ActivityRecord]:
    reference = request_reference(request.id)
    return await record_activity(
        store,
        title=f"Emergency request {reference} updated",
        description=f"Emergency request {reference} has been updated to {request.status}",
        icon="fa-check-circle",
        icon_bg="bg-success-50",
    )


async def team_created(store, team: ResponseTeamRecord) -> Optional[ActivityRecord]:
    return await record_activity(
        store,
        title="Response team created",
        description=f'New response team "{team.name}" has been created',
        icon="fa-user-md",
        icon_bg="bg-primary-100",
    )


async def service_added(store, service: MedicalServiceRecord) -> Optional[ActivityRecord]:
    return await record_activity(
        store,
        title="Medical service added",
        description=f'New medical service "{service.name}" has been added',
        icon="fa-hospital",
        icon_bg="bg-success-50",
    )


async def notify_status_change(
    store, request: EmergencyRequestRecord, previous_status: str
) -> Optional[NotificationRecord]:
    """Tell the owner that their request changed status."""
    if request.status == previous_status:
        return None

    reference = request_reference(request.id)
    try:
        return await store.create_notification({
            "user_id": request.user_id,
            "title": f"Emergency request {reference} {request.status}",
            "message": (
                f"The status of your emergency request {reference} changed "
                f"from {previous_status} to {request.status}"
            ),
        })
    except Exception as e:
        NOTIFICATION_FAILURES.inc()
        logger.error(
            "Failed to notify request owner",
            request_id=request.id,
            user_id=request.user_id,
            error=str(e),
        )
        return None
