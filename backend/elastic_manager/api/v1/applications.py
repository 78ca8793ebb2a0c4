"""
Application endpoints: instance queries, scaling and removal
"""

from fastapi import APIRouter, Depends
from typing import List
import logging

from elastic_manager.core.dependencies import get_registration_service
from elastic_manager.schemas.application import AppIdResponse, AppInstanceResponse, ScaleRequest
from elastic_manager.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{application_id}", response_model=List[AppInstanceResponse])
async def get_application_info(
    application_id: int,
    service: RegistrationService = Depends(get_registration_service)
):
    """List the running instances of an application"""
    instances = await service.get_instances(application_id)
    return [AppInstanceResponse.from_snapshot(instance) for instance in instances]


@router.delete("/{application_id}", response_model=AppIdResponse)
async def remove_application(
    application_id: int,
    service: RegistrationService = Depends(get_registration_service)
):
    """Remove an application and its configuration"""
    removed_id = await service.delete(application_id)
    return AppIdResponse(id=removed_id)


@router.patch("/{application_id}", response_model=List[AppInstanceResponse])
async def scale_application(
    application_id: int,
    request: ScaleRequest,
    service: RegistrationService = Depends(get_registration_service)
):
    """Scale an application by a delta and return the resulting instances"""
    instances = await service.scale(application_id, request.increment_by)
    return [AppInstanceResponse.from_snapshot(instance) for instance in instances]
