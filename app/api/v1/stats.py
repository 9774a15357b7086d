"""
Stats API Endpoints
"""

from fastapi import APIRouter, Depends

from app.core.security import get_store
from app.models.schemas import StatsRecord

router = APIRouter()


@router.get("", response_model=StatsRecord)
async def get_stats(store=Depends(get_store)):
    """Current counters; maintained by request and team mutations."""
    return await store.get_stats()
