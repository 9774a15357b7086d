"""
Response Teams API Endpoints
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from app.core.access_policy import Action
from app.core.exceptions import NotFoundError
from app.core.security import get_store, require_action
from app.models.schemas import (
    ResponseTeamCreate,
    ResponseTeamRecord,
    ResponseTeamUpdate,
    TeamStatus,
    UserRecord,
)
from app.services import activity
from app.services.stats import refresh_stats

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[ResponseTeamRecord])
async def list_response_teams(store=Depends(get_store)):
    return await store.list_response_teams()


# Declared before "/{team_id}" so "available" is not parsed as an id
@router.get("/available", response_model=List[ResponseTeamRecord])
async def list_available_response_teams(store=Depends(get_store)):
    return await store.list_response_teams(status=TeamStatus.AVAILABLE.value)


@router.get("/{team_id}", response_model=ResponseTeamRecord)
async def get_response_team(team_id: int, store=Depends(get_store)):
    team = await store.get_response_team(team_id)
    if team is None:
        raise NotFoundError("Response team", team_id)
    return team


@router.post("", response_model=ResponseTeamRecord, status_code=status.HTTP_201_CREATED)
async def create_response_team(
    payload: ResponseTeamCreate,
    current_user: UserRecord = Depends(require_action(Action.CREATE_RESPONSE_TEAM)),
    store=Depends(get_store),
):
    """Create a team; the team count in the stats follows."""
    team = await store.create_response_team(payload)
    logger.info("Response team created", team_id=team.id, created_by=current_user.id)

    await refresh_stats(store)
    await activity.team_created(store, team)
    return team


@router.patch("/{team_id}", response_model=ResponseTeamRecord)
async def update_response_team(
    team_id: int,
    payload: ResponseTeamUpdate,
    current_user: UserRecord = Depends(require_action(Action.UPDATE_RESPONSE_TEAM)),
    store=Depends(get_store),
):
    team = await store.update_response_team(team_id, payload)
    if team is None:
        raise NotFoundError("Response team", team_id)

    logger.info("Response team updated", team_id=team.id, status=team.status, updated_by=current_user.id)
    return team
