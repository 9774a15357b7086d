"""
User Settings API Endpoints
"""

import structlog
from fastapi import APIRouter, Depends

from app.core.access_policy import Action
from app.core.exceptions import NotFoundError
from app.core.security import get_store, require_action
from app.models.schemas import SettingRecord, SettingUpdate, UserRecord

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=SettingRecord)
async def get_my_settings(
    current_user: UserRecord = Depends(require_action(Action.MANAGE_OWN_ACCOUNT)),
    store=Depends(get_store),
):
    user_settings = await store.get_user_settings(current_user.id)
    if user_settings is None:
        raise NotFoundError("Settings", message="Settings not found")
    return user_settings


@router.patch("", response_model=SettingRecord)
async def update_my_settings(
    payload: SettingUpdate,
    current_user: UserRecord = Depends(require_action(Action.MANAGE_OWN_ACCOUNT)),
    store=Depends(get_store),
):
    """
    Update the caller's settings, creating them first if missing.

    Omitted fields keep their current (or default) values.
    """
    user_settings = await store.update_user_settings(current_user.id, payload)
    if user_settings is None:
        user_settings = await store.create_user_settings({
            **payload.changes(),
            "user_id": current_user.id,
        })
        logger.info("User settings created", user_id=current_user.id)
    return user_settings
