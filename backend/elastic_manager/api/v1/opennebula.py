"""
OpenNebula registration endpoints
"""

from fastapi import APIRouter, Depends, Response
import logging

from elastic_manager.core.dependencies import get_registration_service
from elastic_manager.schemas.application import AppIdResponse, OpenNebulaRequest
from elastic_manager.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=AppIdResponse)
async def create_opennebula(
    request: OpenNebulaRequest,
    service: RegistrationService = Depends(get_registration_service)
):
    """Register an OpenNebula VM group role"""
    logger.info(f"create_opennebula(request = {request!r})")

    application_id = await service.create(request.to_config())

    return AppIdResponse(id=application_id)


@router.put("/{application_id}", response_class=Response)
async def update_opennebula(
    application_id: int,
    request: OpenNebulaRequest,
    service: RegistrationService = Depends(get_registration_service)
):
    """Replace the OpenNebula configuration of an application"""
    logger.info(f"update_opennebula(request = {request!r}, id = {application_id})")

    await service.update(application_id, request.to_config())

    return Response(status_code=200)
