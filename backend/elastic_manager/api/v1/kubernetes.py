"""
Kubernetes registration endpoints
The request body is the raw kubeconfig text
"""

from fastapi import APIRouter, Depends, Request, Response
import logging

from elastic_manager.core.dependencies import get_registration_service
from elastic_manager.core.exceptions import BadRequestException
from elastic_manager.platforms.models import KubernetesConfig
from elastic_manager.schemas.application import AppIdResponse
from elastic_manager.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)
router = APIRouter()


async def read_kubeconfig(request: Request) -> str:
    """Raw request body decoded as UTF-8 text"""
    body = await request.body()
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequestException(
            f"Kubeconfig is not valid UTF-8 text: {e.reason} at byte {e.start}",
            position=e.start
        ) from e


@router.post("/{namespace}/{deployment}", response_model=AppIdResponse)
async def create_kubernetes(
    namespace: str,
    deployment: str,
    kubeconfig: str = Depends(read_kubeconfig),
    service: RegistrationService = Depends(get_registration_service)
):
    """Register a Kubernetes deployment"""
    logger.info(f"create_kubernetes(namespace = \"{namespace}\", deployment = \"{deployment}\")")

    config = KubernetesConfig(kubeconfig=kubeconfig, namespace=namespace, deployment=deployment)
    application_id = await service.create(config)

    return AppIdResponse(id=application_id)


@router.put("/{namespace}/{deployment}/{application_id}", response_class=Response)
async def update_kubernetes(
    namespace: str,
    deployment: str,
    application_id: int,
    kubeconfig: str = Depends(read_kubeconfig),
    service: RegistrationService = Depends(get_registration_service)
):
    """Replace the Kubernetes configuration of an application"""
    logger.info(
        f"update_kubernetes(namespace = \"{namespace}\", deployment = \"{deployment}\", id = {application_id})"
    )

    config = KubernetesConfig(kubeconfig=kubeconfig, namespace=namespace, deployment=deployment)
    await service.update(application_id, config)

    return Response(status_code=200)
