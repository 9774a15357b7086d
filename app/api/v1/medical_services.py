"""
Medical Services API Endpoints

Directory of hospitals, clinics and pharmacies. Distances are static values
stored with each service.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from app.core.access_policy import Action
from app.core.exceptions import NotFoundError
from app.core.security import get_store, require_action
from app.models.schemas import MedicalServiceCreate, MedicalServiceRecord, UserRecord
from app.services import activity

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[MedicalServiceRecord])
async def list_medical_services(store=Depends(get_store)):
    return await store.list_medical_services()


@router.get("/type/{service_type}", response_model=List[MedicalServiceRecord])
async def list_medical_services_by_type(service_type: str, store=Depends(get_store)):
    """Services of one type, in id order. Unknown types yield an empty list."""
    return await store.list_medical_services(service_type=service_type)


@router.get("/{service_id}", response_model=MedicalServiceRecord)
async def get_medical_service(service_id: int, store=Depends(get_store)):
    service = await store.get_medical_service(service_id)
    if service is None:
        raise NotFoundError("Medical service", service_id)
    return service


@router.post("", response_model=MedicalServiceRecord, status_code=status.HTTP_201_CREATED)
async def create_medical_service(
    payload: MedicalServiceCreate,
    current_user: UserRecord = Depends(require_action(Action.CREATE_MEDICAL_SERVICE)),
    store=Depends(get_store),
):
    service = await store.create_medical_service(payload)
    logger.info(
        "Medical service created",
        service_id=service.id,
        service_type=service.type,
        created_by=current_user.id,
    )

    await activity.service_added(store, service)
    return service
