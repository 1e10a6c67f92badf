"""Fargate service component.

Builds an ECS Fargate service out of a task definition, an ECS service and,
unless the caller supplies network placement, a dedicated VPC stack. State
is checkpointed after every step; see :mod:`provisioner.network` and
:mod:`provisioner.teardown` for the network side.
"""

import asyncio
import logging
from typing import Any

from provisioner.aws import ProviderClients, call_provider
from provisioner.components.base import Component
from provisioner.context import ComponentType, DeploymentContext
from provisioner.models import FargateServiceInputs, FargateServiceOutputs, NetworkRefs
from provisioner.network import NetworkProvisioner
from provisioner.poller import ConvergencePoller, collect_task_metadata
from provisioner.state import ProvisioningState
from provisioner.teardown import TeardownSequencer

logger = logging.getLogger(__name__)


class FargateService(Component):
    """A Fargate service and everything it needs to run."""

    component_type = ComponentType.FARGATE_SERVICE

    def __init__(self, inputs: FargateServiceInputs, clients: ProviderClients):
        self.inputs = inputs
        self.clients = clients

    @classmethod
    def from_params(cls, params: dict[str, Any], clients: ProviderClients) -> "FargateService":
        return cls(FargateServiceInputs.model_validate(params), clients)

    def _task_definition_params(self) -> dict[str, Any]:
        return {
            "family": self.inputs.family,
            "container_definitions": self.inputs.container_definitions,
            "network_mode": "awsvpc",
            "requires_compatibilities": ["FARGATE"],
            "cpu": self.inputs.cpu,
            "memory": self.inputs.memory,
            "volumes": [],
        }

    def _service_params(self, task_definition: dict[str, Any], refs: NetworkRefs) -> dict[str, Any]:
        return {
            "service_name": self.inputs.service_name,
            "cluster": self.inputs.cluster,
            "launch_type": "FARGATE",
            "desired_count": self.inputs.desired_count,
            "task_definition": f"{task_definition['family']}:{task_definition['revision']}",
            "network_configuration": {
                "awsvpcConfiguration": {
                    "assignPublicIp": "ENABLED" if self.inputs.expose_publicly else "DISABLED",
                    "securityGroups": refs.security_groups,
                    "subnets": refs.subnets,
                }
            },
        }

    async def deploy(
        self, prev: dict[str, Any] | None, context: DeploymentContext
    ) -> FargateServiceOutputs:
        """Provision (or converge) the service.

        Raises:
            ProviderCallError: If a provider call fails; already-recorded
                resources are reused by the next deploy.
        """
        context = self.scoped(context)
        state = await context.get_state()

        task_definition_handle = context.registry.load(
            ComponentType.ECS_TASK_DEFINITION, "taskDefinition", self._task_definition_params()
        )
        task_definition = await task_definition_handle.deploy(state.task_definition, context)
        state = state.evolve(task_definition=task_definition)
        await context.save_state(state)

        refs, state = await NetworkProvisioner(self.clients.ec2, context).ensure_network(
            self.inputs, state
        )

        service_handle = context.registry.load(
            ComponentType.ECS_SERVICE, "service", self._service_params(task_definition, refs)
        )
        service = await service_handle.deploy(state.service, context)
        state = state.evolve(service=service)
        await context.save_state(state)

        context.log("Tasks: waiting for provisioning to finish")
        await asyncio.sleep(context.settings.deploy_settle_seconds)
        state = await self._refresh_tasks(
            service["service_name"], state, context, context.settings.deploy_max_attempts
        )
        context.log("Tasks: provision complete")
        context.log("AWS Fargate: deployment complete")

        return FargateServiceOutputs(
            service_arn=service["service_arn"],
            service_name=service["service_name"],
            containers=state.containers,
            attachments=state.attachments,
            network_interfaces=state.network_interfaces,
        )

    async def remove(
        self, prev: dict[str, Any] | None, context: DeploymentContext
    ) -> FargateServiceOutputs:
        context = self.scoped(context)
        state = await context.get_state()
        await TeardownSequencer(self.clients.ec2, self.clients.ecs, context).remove(self.inputs, state)
        return FargateServiceOutputs()

    async def get(
        self, prev: dict[str, Any] | None, context: DeploymentContext
    ) -> FargateServiceOutputs:
        """Re-poll the service's tasks and report the refreshed metadata."""
        context = self.scoped(context)
        state = await context.get_state()

        context.log("Tasks: waiting for provisioning to finish")
        await asyncio.sleep(context.settings.refresh_settle_seconds)
        service_name = (state.service or {}).get("service_name", self.inputs.service_name)
        state = await self._refresh_tasks(
            service_name, state, context, context.settings.deploy_max_attempts
        )
        context.log("Tasks: provision complete")

        service = state.service or {}
        return FargateServiceOutputs(
            service_arn=service.get("service_arn"),
            service_name=service.get("service_name"),
            containers=state.containers,
            attachments=state.attachments,
            network_interfaces=state.network_interfaces,
        )

    async def _refresh_tasks(
        self,
        service_name: str,
        state: ProvisioningState,
        context: DeploymentContext,
        max_attempts: int,
    ) -> ProvisioningState:
        # Prefer the cluster the service was deployed to
        cluster = (state.service or {}).get("cluster") or self.inputs.cluster
        params: dict[str, Any] = {"serviceName": service_name}
        if cluster:
            params["cluster"] = cluster
        response = await call_provider(self.clients.ecs, "list_tasks", **params)

        poller = ConvergencePoller(
            self.clients.ecs,
            cluster=cluster,
            interval_seconds=context.settings.task_poll_interval_seconds,
        )
        result = await poller.await_convergence(list(response.get("taskArns") or []), max_attempts)
        if not result.converged:
            logger.warning(
                "Reporting tasks that have not converged",
                extra={"service_name": service_name, "attempts": result.attempts},
            )

        metadata = await collect_task_metadata(self.clients.ec2, result.tasks)
        state = state.evolve(
            containers=metadata.containers,
            attachments=metadata.attachments,
            network_interfaces=metadata.network_interfaces,
        )
        await context.save_state(state)
        return state
