"""Removes a Fargate service and its network stack.

Sub-components go first, then network resources in the reverse of the order
they were created. Every step is gated on its id being present in state and
checkpoints as soon as the delete succeeds, so removal can be re-run after a
failure and is a no-op once everything is gone.
"""

import asyncio
import logging
from typing import Any

from provisioner.aws import call_provider
from provisioner.context import ComponentType, DeploymentContext
from provisioner.models import FargateServiceInputs
from provisioner.poller import ConvergencePoller
from provisioner.state import ProvisioningState

logger = logging.getLogger(__name__)

LOCAL_GATEWAY = "local"

# Rule numbers of the default entries every network ACL carries. Only
# entries strictly between these are user entries.
ACL_RULE_NUMBER_MIN = 1
ACL_RULE_NUMBER_MAX = 32767

ROUTE_DESTINATION_KEYS = ("DestinationCidrBlock", "DestinationIpv6CidrBlock")


def routes_to_delete(route_table: dict[str, Any]) -> list[dict[str, Any]]:
    """Delete-route parameters for every route not owned by the implicit local gateway."""
    params = []
    for route in route_table.get("Routes") or []:
        if route.get("GatewayId") == LOCAL_GATEWAY:
            continue
        destination = next((k for k in ROUTE_DESTINATION_KEYS if route.get(k)), None)
        if destination is None:
            continue
        params.append({destination: route[destination], "RouteTableId": route_table["RouteTableId"]})
    return params


def acl_entries_to_delete(network_acl: dict[str, Any]) -> list[dict[str, Any]]:
    """Delete-entry parameters for every entry strictly inside the reserved rule numbers."""
    return [
        {
            "RuleNumber": entry["RuleNumber"],
            "Egress": entry.get("Egress", False),
            "NetworkAclId": network_acl["NetworkAclId"],
        }
        for entry in network_acl.get("Entries") or []
        if ACL_RULE_NUMBER_MIN < entry.get("RuleNumber", ACL_RULE_NUMBER_MAX) < ACL_RULE_NUMBER_MAX
    ]


class TeardownSequencer:
    """Removes everything recorded in a Fargate service's state."""

    def __init__(self, ec2: Any, ecs: Any, context: DeploymentContext):
        self.ec2 = ec2
        self.ecs = ecs
        self.context = context
        self.settings = context.settings

    async def _checkpoint(self, state: ProvisioningState, **changes: Any) -> ProvisioningState:
        state = state.evolve(**changes)
        await self.context.save_state(state)
        return state

    async def _recorded(self, alias: str, reference: dict[str, Any] | None) -> dict[str, Any] | None:
        """The sub-component's outputs, from the parent state or its own state document."""
        if reference is not None:
            return reference
        child_state = await self.context.child(alias).get_state()
        return child_state.extra.get("outputs")

    async def remove(self, inputs: FargateServiceInputs, state: ProvisioningState) -> ProvisioningState:
        """Tear down the service and its network stack.

        Sub-components are looked up in their own state documents too, so one
        that was created just before a failed parent checkpoint is still
        removed.

        Args:
            inputs: The service being removed.
            state: State as last checkpointed.

        Returns:
            The cleared state (also saved).

        Raises:
            ProviderCallError: If any delete or describe call fails. Whatever
                was removed before the failure is already cleared in state.
        """
        task_definition = await self._recorded("taskDefinition", state.task_definition)
        service = await self._recorded("service", state.service)
        cluster = (service or {}).get("cluster") or inputs.cluster

        task_arns = await self._list_service_tasks(inputs, service, cluster)

        state = await self._remove_task_definition(inputs, state, task_definition)
        state = await self._remove_service(inputs, state, service, cluster)

        if task_arns:
            self.context.log("Task: waiting for removal to finish")
            poller = ConvergencePoller(
                self.ecs,
                cluster=cluster,
                interval_seconds=self.settings.task_poll_interval_seconds,
            )
            result = await poller.await_convergence(task_arns, self.settings.remove_max_attempts)
            if not result.converged:
                logger.warning(
                    "Tasks still stopping after removal budget",
                    extra={"service_name": inputs.service_name, "attempts": result.attempts},
                )
            self.context.log("Task: finished")

        state = await self._remove_association(state)
        state = await self._remove_subnet(state)
        state = await self._remove_route_table(state)
        state = await self._remove_network_acl(state)
        state = await self._remove_security_group(state)
        state = await self._remove_internet_gateway(state)
        state = await self._remove_vpc(state)

        state = ProvisioningState()
        await self.context.save_state(state)
        self.context.log("Fargate service: removal complete")
        return state

    async def _list_service_tasks(
        self, inputs: FargateServiceInputs, service: dict[str, Any] | None, cluster: str | None
    ) -> list[str]:
        if service is None:
            return []
        params: dict[str, Any] = {"serviceName": service.get("service_name") or inputs.service_name}
        if cluster:
            params["cluster"] = cluster
        response = await call_provider(self.ecs, "list_tasks", **params)
        return list(response.get("taskArns") or [])

    async def _remove_task_definition(
        self,
        inputs: FargateServiceInputs,
        state: ProvisioningState,
        task_definition: dict[str, Any] | None,
    ) -> ProvisioningState:
        if task_definition is None:
            return state

        handle = self.context.registry.load(
            ComponentType.ECS_TASK_DEFINITION,
            "taskDefinition",
            {
                "family": inputs.family,
                "container_definitions": inputs.container_definitions,
                "cpu": inputs.cpu,
                "memory": inputs.memory,
            },
        )
        await handle.remove(task_definition, self.context)
        return await self._checkpoint(state, task_definition=None)

    async def _remove_service(
        self,
        inputs: FargateServiceInputs,
        state: ProvisioningState,
        service: dict[str, Any] | None,
        cluster: str | None,
    ) -> ProvisioningState:
        if service is None:
            return state

        handle = self.context.registry.load(
            ComponentType.ECS_SERVICE,
            "service",
            {
                "service_name": inputs.service_name,
                "cluster": cluster,
                "desired_count": inputs.desired_count,
            },
        )
        await handle.remove(service, self.context)
        return await self._checkpoint(state, service=None)

    async def _remove_association(self, state: ProvisioningState) -> ProvisioningState:
        if state.route_table_association_id is None:
            return state
        await call_provider(
            self.ec2, "disassociate_route_table", AssociationId=state.route_table_association_id
        )
        self.context.log("RouteTable: disassociated")
        return await self._checkpoint(state, route_table_association_id=None)

    async def _remove_subnet(self, state: ProvisioningState) -> ProvisioningState:
        if state.subnet_id is None:
            return state
        await call_provider(self.ec2, "delete_subnet", SubnetId=state.subnet_id)
        self.context.log("Subnet: deleted")
        return await self._checkpoint(state, subnet_id=None)

    async def _remove_route_table(self, state: ProvisioningState) -> ProvisioningState:
        if state.route_table_id is None:
            return state

        response = await call_provider(
            self.ec2, "describe_route_tables", RouteTableIds=[state.route_table_id]
        )
        route_tables = response.get("RouteTables") or []
        if route_tables:
            await asyncio.gather(
                *(
                    call_provider(self.ec2, "delete_route", **params)
                    for params in routes_to_delete(route_tables[0])
                )
            )

        await call_provider(self.ec2, "delete_route_table", RouteTableId=state.route_table_id)
        self.context.log("RouteTable: deleted")
        return await self._checkpoint(state, route_table_id=None)

    async def _remove_network_acl(self, state: ProvisioningState) -> ProvisioningState:
        if state.network_acl_id is None:
            return state

        response = await call_provider(
            self.ec2, "describe_network_acls", NetworkAclIds=[state.network_acl_id]
        )
        network_acls = response.get("NetworkAcls") or []
        if network_acls:
            await asyncio.gather(
                *(
                    call_provider(self.ec2, "delete_network_acl_entry", **params)
                    for params in acl_entries_to_delete(network_acls[0])
                )
            )

        await call_provider(self.ec2, "delete_network_acl", NetworkAclId=state.network_acl_id)
        self.context.log("NetworkAcl: deleted")
        return await self._checkpoint(state, network_acl_id=None)

    async def _remove_security_group(self, state: ProvisioningState) -> ProvisioningState:
        if state.security_group_id is None:
            return state
        await call_provider(self.ec2, "delete_security_group", GroupId=state.security_group_id)
        self.context.log("SecurityGroup: deleted")
        return await self._checkpoint(state, security_group_id=None)

    async def _remove_internet_gateway(self, state: ProvisioningState) -> ProvisioningState:
        if state.internet_gateway_id is None:
            return state
        if state.vpc_id is not None:
            await call_provider(
                self.ec2,
                "detach_internet_gateway",
                InternetGatewayId=state.internet_gateway_id,
                VpcId=state.vpc_id,
            )
            self.context.log("InternetGateway: detached")
        await call_provider(
            self.ec2, "delete_internet_gateway", InternetGatewayId=state.internet_gateway_id
        )
        self.context.log("InternetGateway: deleted")
        return await self._checkpoint(state, internet_gateway_id=None)

    async def _remove_vpc(self, state: ProvisioningState) -> ProvisioningState:
        if state.vpc_id is None:
            return state
        await call_provider(self.ec2, "delete_vpc", VpcId=state.vpc_id)
        self.context.log("VPC: deleted")
        return await self._checkpoint(state, vpc_id=None)
