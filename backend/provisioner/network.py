"""Private network stack for a Fargate service.

Creates, in order: VPC, internet gateway, security group, network ACL,
route table (with default routes), subnet, and the subnet/route table
association. Each step is skipped when its id is already in state, and the
id is checkpointed as soon as the create call returns, so a failed deploy
resumes where it stopped instead of leaking or duplicating resources.
"""

import logging
from typing import Any

from provisioner.aws import call_provider
from provisioner.context import DeploymentContext
from provisioner.errors import MissingResourcePrecondition, ProviderCallError
from provisioner.models import FargateServiceInputs, NetworkRefs
from provisioner.state import ProvisioningState

logger = logging.getLogger(__name__)

ALL_TRAFFIC = {"IpProtocol": "-1", "FromPort": -1, "ToPort": -1}


def _require(state: ProvisioningState, field: str, role: str) -> str:
    value = getattr(state, field)
    if value is None:
        raise MissingResourcePrecondition(role, field)
    return value


def _created_id(response: dict[str, Any], operation: str, *path: str) -> str:
    value: Any = response
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    if not value:
        raise ProviderCallError(operation, f"response did not include {'.'.join(path)}")
    return value


class NetworkProvisioner:
    """Ensures the network stack exists and returns where to place the service."""

    def __init__(self, ec2: Any, context: DeploymentContext):
        self.ec2 = ec2
        self.context = context
        self.vpc_cidr_block = context.settings.vpc_cidr_block
        self.subnet_cidr_block = context.settings.subnet_cidr_block

    async def _checkpoint(self, state: ProvisioningState, **changes: Any) -> ProvisioningState:
        state = state.evolve(**changes)
        await self.context.save_state(state)
        return state

    async def ensure_network(
        self, inputs: FargateServiceInputs, state: ProvisioningState
    ) -> tuple[NetworkRefs, ProvisioningState]:
        """Return network refs for the service, creating whatever is missing.

        Args:
            inputs: The requested service.
            state: State as last checkpointed.

        Returns:
            The security group and subnet refs, and the updated state.

        Raises:
            ProviderCallError: If any provider call fails. State saved up to
                that point is left in place for a retry.
        """
        if inputs.awsvpc_configuration is not None:
            return (
                NetworkRefs(
                    security_groups=list(inputs.awsvpc_configuration.security_groups),
                    subnets=list(inputs.awsvpc_configuration.subnets),
                ),
                state,
            )

        state = await self._ensure_vpc(state)
        state = await self._ensure_internet_gateway(state)
        state = await self._ensure_security_group(inputs, state)
        state = await self._ensure_network_acl(state)
        state = await self._ensure_route_table(state)
        state = await self._ensure_subnet(state)
        state = await self._ensure_association(state)

        refs = NetworkRefs(
            security_groups=[_require(state, "security_group_id", "service")],
            subnets=[_require(state, "subnet_id", "service")],
        )
        return refs, state

    async def _ensure_vpc(self, state: ProvisioningState) -> ProvisioningState:
        if state.vpc_id is not None:
            return state

        response = await call_provider(self.ec2, "create_vpc", CidrBlock=self.vpc_cidr_block)
        vpc_id = _created_id(response, "create_vpc", "Vpc", "VpcId")
        self.context.log("VPC: created")
        return await self._checkpoint(state, vpc_id=vpc_id)

    async def _ensure_internet_gateway(self, state: ProvisioningState) -> ProvisioningState:
        if state.internet_gateway_id is not None:
            return state

        vpc_id = _require(state, "vpc_id", "internet gateway")
        response = await call_provider(self.ec2, "create_internet_gateway")
        gateway_id = _created_id(
            response, "create_internet_gateway", "InternetGateway", "InternetGatewayId"
        )
        self.context.log("Internet Gateway: created")
        state = await self._checkpoint(state, internet_gateway_id=gateway_id)

        await call_provider(
            self.ec2, "attach_internet_gateway", InternetGatewayId=gateway_id, VpcId=vpc_id
        )
        self.context.log("Internet Gateway: attached to VPC")
        return state

    async def _ensure_security_group(
        self, inputs: FargateServiceInputs, state: ProvisioningState
    ) -> ProvisioningState:
        if state.security_group_id is not None:
            return state

        vpc_id = _require(state, "vpc_id", "security group")
        response = await call_provider(
            self.ec2,
            "create_security_group",
            Description=f"{inputs.service_name} security group",
            GroupName=f"{inputs.service_name}-security-group",
            VpcId=vpc_id,
        )
        group_id = _created_id(response, "create_security_group", "GroupId")
        self.context.log("Security Group: created")
        state = await self._checkpoint(state, security_group_id=group_id)

        await call_provider(
            self.ec2,
            "authorize_security_group_ingress",
            GroupId=group_id,
            IpPermissions=[
                {
                    **ALL_TRAFFIC,
                    "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
                    "Ipv6Ranges": [{"CidrIpv6": "::/0"}],
                }
            ],
        )
        self.context.log("SecurityGroupIngress: rule created")

        # New groups already allow all IPv4 egress; only IPv6 needs adding.
        await call_provider(
            self.ec2,
            "authorize_security_group_egress",
            GroupId=group_id,
            IpPermissions=[{**ALL_TRAFFIC, "Ipv6Ranges": [{"CidrIpv6": "::/0"}]}],
        )
        self.context.log("SecurityGroupEgress: rule created")
        return state

    async def _ensure_network_acl(self, state: ProvisioningState) -> ProvisioningState:
        if state.network_acl_id is not None:
            return state

        vpc_id = _require(state, "vpc_id", "network ACL")
        response = await call_provider(self.ec2, "create_network_acl", VpcId=vpc_id)
        acl_id = _created_id(response, "create_network_acl", "NetworkAcl", "NetworkAclId")
        self.context.log("NetworkAcl: created")
        return await self._checkpoint(state, network_acl_id=acl_id)

    async def _ensure_route_table(self, state: ProvisioningState) -> ProvisioningState:
        if state.route_table_id is not None:
            return state

        vpc_id = _require(state, "vpc_id", "route table")
        gateway_id = _require(state, "internet_gateway_id", "route table")
        response = await call_provider(self.ec2, "create_route_table", VpcId=vpc_id)
        route_table_id = _created_id(response, "create_route_table", "RouteTable", "RouteTableId")
        self.context.log("RouteTable: created")
        state = await self._checkpoint(state, route_table_id=route_table_id)

        await call_provider(
            self.ec2,
            "create_route",
            DestinationCidrBlock="0.0.0.0/0",
            GatewayId=gateway_id,
            RouteTableId=route_table_id,
        )
        await call_provider(
            self.ec2,
            "create_route",
            DestinationIpv6CidrBlock="::/0",
            GatewayId=gateway_id,
            RouteTableId=route_table_id,
        )
        self.context.log("RouteTable: routes created")
        return state

    async def _ensure_subnet(self, state: ProvisioningState) -> ProvisioningState:
        if state.subnet_id is not None:
            return state

        vpc_id = _require(state, "vpc_id", "subnet")
        response = await call_provider(
            self.ec2, "create_subnet", CidrBlock=self.subnet_cidr_block, VpcId=vpc_id
        )
        subnet_id = _created_id(response, "create_subnet", "Subnet", "SubnetId")
        self.context.log("Subnet: created")
        return await self._checkpoint(state, subnet_id=subnet_id)

    async def _ensure_association(self, state: ProvisioningState) -> ProvisioningState:
        if state.route_table_association_id is not None:
            return state

        route_table_id = _require(state, "route_table_id", "route table association")
        subnet_id = _require(state, "subnet_id", "route table association")
        response = await call_provider(
            self.ec2, "associate_route_table", RouteTableId=route_table_id, SubnetId=subnet_id
        )
        association_id = _created_id(response, "associate_route_table", "AssociationId")
        self.context.log("Subnet: route table associated")
        return await self._checkpoint(state, route_table_association_id=association_id)
