"""
Emergency Requests API Endpoints

Submission, listing and status management of emergency requests. Every
create or update refreshes the stats and appends to the activity feed.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from app.core.access_policy import Action, is_staff
from app.core.exceptions import NotFoundError
from app.core.metrics import EMERGENCY_REQUESTS_CREATED
from app.core.security import get_store, require_action
from app.models.schemas import (
    EmergencyRequestRecord,
    EmergencyRequestSubmit,
    EmergencyRequestUpdate,
    UserRecord,
)
from app.services import activity
from app.services.stats import refresh_stats

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("", response_model=EmergencyRequestRecord, status_code=status.HTTP_201_CREATED)
async def create_emergency_request(
    payload: EmergencyRequestSubmit,
    current_user: UserRecord = Depends(require_action(Action.CREATE_EMERGENCY_REQUEST)),
    store=Depends(get_store),
):
    """
    Submit an emergency request owned by the caller.

    Side effects:
    - stats are recomputed
    - an activity entry mentioning the new request id is appended
    """
    request = await store.create_emergency_request({
        **payload.model_dump(),
        "user_id": current_user.id,
    })

    EMERGENCY_REQUESTS_CREATED.labels(status=request.status).inc()
    logger.info(
        "Emergency request created",
        request_id=request.id,
        user_id=current_user.id,
        status=request.status,
    )

    await refresh_stats(store)
    await activity.request_created(store, request)
    return request


@router.get("", response_model=List[EmergencyRequestRecord])
async def list_emergency_requests(
    current_user: UserRecord = Depends(require_action(Action.LIST_ALL_EMERGENCY_REQUESTS)),
    store=Depends(get_store),
):
    return await store.list_emergency_requests()


@router.get("/me", response_model=List[EmergencyRequestRecord])
async def list_my_emergency_requests(
    current_user: UserRecord = Depends(require_action(Action.LIST_OWN_EMERGENCY_REQUESTS)),
    store=Depends(get_store),
):
    """Requests owned by the caller, whatever their role."""
    return await store.list_emergency_requests(user_id=current_user.id)


@router.get("/{request_id}", response_model=EmergencyRequestRecord)
async def get_emergency_request(
    request_id: int,
    current_user: UserRecord = Depends(require_action(Action.READ_EMERGENCY_REQUEST)),
    store=Depends(get_store),
):
    """Read one request. Non-staff callers only see their own."""
    request = await store.get_emergency_request(request_id)
    if request is None or not (is_staff(current_user) or request.user_id == current_user.id):
        raise NotFoundError("Emergency request", request_id)
    return request


@router.patch("/{request_id}", response_model=EmergencyRequestRecord)
async def update_emergency_request(
    request_id: int,
    payload: EmergencyRequestUpdate,
    current_user: UserRecord = Depends(require_action(Action.UPDATE_EMERGENCY_REQUEST)),
    store=Depends(get_store),
):
    """
    Merge the given fields into a request.

    Any status may follow any other. The owner is notified when the status
    changes.
    """
    previous = await store.get_emergency_request(request_id)
    if previous is None:
        raise NotFoundError("Emergency request", request_id)

    request = await store.update_emergency_request(request_id, payload)
    if request is None:
        raise NotFoundError("Emergency request", request_id)

    logger.info(
        "Emergency request updated",
        request_id=request.id,
        updated_by=current_user.id,
        status=request.status,
        previous_status=previous.status,
    )

    await refresh_stats(store)
    await activity.request_updated(store, request)
    await activity.notify_status_change(store, request, previous.status)
    return request
