"""Subscriptions router - SNS subscriptions and their attributes."""

from fastapi import APIRouter, Depends, status

from api.routers.deployments import raise_for_provisioner_error
from api.schemas.deployment import SubscriptionRequest, SubscriptionResponse
from api.services.deployment_service import DeploymentService, get_deployment_service
from provisioner.errors import ProvisionerError
from provisioner.models import SnsSubscriptionInputs

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.put("/{name}", response_model=SubscriptionResponse)
async def deploy_subscription(
    name: str,
    request: SubscriptionRequest,
    service: DeploymentService = Depends(get_deployment_service),
) -> SubscriptionResponse:
    """Subscribe, or update attributes of an existing subscription.

    Attributes dropped from the request are unset; unchanged ones are not
    re-sent.
    """
    inputs = SnsSubscriptionInputs(**request.model_dump())
    try:
        recorded = await service.deploy_subscription(name, inputs)
    except ProvisionerError as e:
        raise_for_provisioner_error(e)
    return SubscriptionResponse(**recorded)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_subscription(
    name: str,
    service: DeploymentService = Depends(get_deployment_service),
) -> None:
    """Unsubscribe. Repeating it is a no-op."""
    try:
        await service.remove_subscription(name)
    except ProvisionerError as e:
        raise_for_provisioner_error(e)
