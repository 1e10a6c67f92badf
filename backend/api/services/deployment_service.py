"""Deployment service wiring state store, clients and components together."""

import logging
from functools import lru_cache

from provisioner.aws import ProviderClients
from provisioner.components import FargateService, SnsSubscription, build_registry
from provisioner.context import DeploymentContext
from provisioner.models import (
    FargateServiceInputs,
    FargateServiceOutputs,
    SnsSubscriptionInputs,
)
from provisioner.state import ProvisioningState, StateStore, get_state_store

logger = logging.getLogger(__name__)


def service_state_key(service_name: str) -> str:
    return f"fargate:{service_name}"


def subscription_state_key(name: str) -> str:
    return f"sns-subscription:{name}"


class DeploymentService:
    """Runs component lifecycles against the configured store and AWS clients."""

    def __init__(self, store: StateStore, clients: ProviderClients):
        """Initialize the deployment service.

        Args:
            store: Where provisioning state is checkpointed.
            clients: boto3 clients used by components.
        """
        self.store = store
        self.clients = clients
        self.registry = build_registry(clients)

    def _context(self, key: str) -> DeploymentContext:
        return DeploymentContext(
            key=key,
            store=self.store,
            registry=self.registry,
            clients=self.clients,
        )

    async def get_state(self, service_name: str) -> ProvisioningState:
        return await self._context(service_state_key(service_name)).get_state()

    async def deploy_service(self, inputs: FargateServiceInputs) -> FargateServiceOutputs:
        """Deploy a Fargate service, resuming from any checkpointed state."""
        logger.info("Deploying Fargate service", extra={"service_name": inputs.service_name})
        component = FargateService(inputs, self.clients)
        return await component.deploy(None, self._context(service_state_key(inputs.service_name)))

    async def remove_service(self, inputs: FargateServiceInputs) -> FargateServiceOutputs:
        """Remove a Fargate service and everything created for it."""
        logger.info("Removing Fargate service", extra={"service_name": inputs.service_name})
        component = FargateService(inputs, self.clients)
        return await component.remove(None, self._context(service_state_key(inputs.service_name)))

    async def refresh_service(self, inputs: FargateServiceInputs) -> FargateServiceOutputs:
        """Re-poll a service's tasks and report their metadata."""
        component = FargateService(inputs, self.clients)
        return await component.get(None, self._context(service_state_key(inputs.service_name)))

    async def deploy_subscription(self, name: str, inputs: SnsSubscriptionInputs) -> dict:
        """Create or update an SNS subscription and reconcile its attributes."""
        logger.info("Deploying SNS subscription", extra={"subscription": name})
        component = SnsSubscription(inputs, self.clients)
        return await component.deploy(None, self._context(subscription_state_key(name)))

    async def remove_subscription(self, name: str) -> None:
        """Unsubscribe the SNS subscription recorded under ``name``, if any."""
        context = self._context(subscription_state_key(name))
        recorded = (await context.get_state()).extra
        if not recorded.get("subscription_arn"):
            logger.info("No SNS subscription recorded", extra={"subscription": name})
            return

        logger.info("Removing SNS subscription", extra={"subscription": name})
        inputs = SnsSubscriptionInputs(
            topic=recorded["topic"],
            protocol=recorded["protocol"],
            endpoint=recorded["endpoint"],
        )
        await SnsSubscription(inputs, self.clients).remove(None, context)


@lru_cache
def get_deployment_service() -> DeploymentService:
    """Get singleton deployment service instance."""
    return DeploymentService(store=get_state_store(), clients=ProviderClients.default())
