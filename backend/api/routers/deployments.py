"""Deployments router - deploy, refresh and remove Fargate services.

Every operation resumes from the checkpointed state for the service, so a
failed call can simply be repeated.
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.schemas.deployment import ServiceDeployRequest, ServiceResponse
from api.services.deployment_service import DeploymentService, get_deployment_service
from provisioner.errors import MissingResourcePrecondition, ProviderCallError, ProvisionerError
from provisioner.models import FargateServiceInputs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deployments", tags=["deployments"])


def raise_for_provisioner_error(e: ProvisionerError) -> NoReturn:
    """Translate a provisioner failure into an HTTP error."""
    if isinstance(e, ProviderCallError):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        ) from e
    if isinstance(e, MissingResourcePrecondition):
        logger.error("Provisioning invariant violated: %s", e)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e),
    ) from e


@router.put(
    "/{service_name}",
    response_model=ServiceResponse,
    summary="Deploy or converge a service",
)
async def deploy_service(
    service_name: str,
    request: ServiceDeployRequest,
    service: DeploymentService = Depends(get_deployment_service),
) -> ServiceResponse:
    """Deploy a Fargate service, creating its network stack when none is given.

    Args:
        service_name: ECS service name
        request: Service sizing, containers and placement
        service: Deployment service (injected)

    Returns:
        Service identity plus container and network interface metadata
    """
    inputs = FargateServiceInputs(service_name=service_name, **request.model_dump())
    try:
        outputs = await service.deploy_service(inputs)
    except ProvisionerError as e:
        raise_for_provisioner_error(e)
    return ServiceResponse(**outputs.model_dump())


@router.get(
    "/{service_name}",
    response_model=ServiceResponse,
    summary="Refresh task metadata for a service",
)
async def refresh_service(
    service_name: str,
    cluster: str | None = Query(default=None, description="Cluster name or ARN"),
    service: DeploymentService = Depends(get_deployment_service),
) -> ServiceResponse:
    """Re-poll the service's tasks and return refreshed metadata."""
    if (await service.get_state(service_name)).service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Service {service_name} is not deployed",
        )
    inputs = FargateServiceInputs(service_name=service_name, cluster=cluster)
    try:
        outputs = await service.refresh_service(inputs)
    except ProvisionerError as e:
        raise_for_provisioner_error(e)
    return ServiceResponse(**outputs.model_dump())


@router.delete(
    "/{service_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a service and its network stack",
)
async def remove_service(
    service_name: str,
    cluster: str | None = Query(default=None, description="Cluster name or ARN"),
    service: DeploymentService = Depends(get_deployment_service),
) -> None:
    """Remove everything recorded for the service. Repeating it is a no-op."""
    inputs = FargateServiceInputs(service_name=service_name, cluster=cluster)
    try:
        await service.remove_service(inputs)
    except ProvisionerError as e:
        raise_for_provisioner_error(e)
