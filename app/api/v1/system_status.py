"""
System Status API Endpoints
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from app.core.access_policy import Action
from app.core.exceptions import NotFoundError
from app.core.security import get_store, require_action
from app.models.schemas import (
    SystemStatusCreate,
    SystemStatusRecord,
    SystemStatusUpdate,
    UserRecord,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[SystemStatusRecord])
async def list_system_statuses(store=Depends(get_store)):
    return await store.list_system_statuses()


@router.get("/{status_id}", response_model=SystemStatusRecord)
async def get_system_status(status_id: int, store=Depends(get_store)):
    indicator = await store.get_system_status(status_id)
    if indicator is None:
        raise NotFoundError("System status", status_id)
    return indicator


@router.post("", response_model=SystemStatusRecord, status_code=status.HTTP_201_CREATED)
async def create_system_status(
    payload: SystemStatusCreate,
    current_user: UserRecord = Depends(require_action(Action.CREATE_SYSTEM_STATUS)),
    store=Depends(get_store),
):
    indicator = await store.create_system_status(payload)
    logger.info("System status created", status_id=indicator.id, created_by=current_user.id)
    return indicator


@router.patch("/{status_id}", response_model=SystemStatusRecord)
async def update_system_status(
    status_id: int,
    payload: SystemStatusUpdate,
    current_user: UserRecord = Depends(require_action(Action.UPDATE_SYSTEM_STATUS)),
    store=Depends(get_store),
):
    indicator = await store.update_system_status(status_id, payload)
    if indicator is None:
        raise NotFoundError("System status", status_id)

    logger.info(
        "System status updated",
        status_id=indicator.id,
        status=indicator.status,
        updated_by=current_user.id,
    )
    return indicator
