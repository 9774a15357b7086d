"""
Activity Feed API Endpoints
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.security import get_store
from app.models.schemas import ActivityRecord

router = APIRouter()


@router.get("", response_model=List[ActivityRecord])
async def list_activities(store=Depends(get_store)):
    """All activity entries, newest first."""
    return await store.list_activities()
