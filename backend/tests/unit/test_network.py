"""Unit tests for network stack provisioning."""

import pytest
from botocore.exceptions import ClientError
from fakes import NETWORK_CREATE_CALLS, called

from provisioner.errors import MissingResourcePrecondition, ProviderCallError
from provisioner.models import AwsVpcConfiguration, FargateServiceInputs
from provisioner.network import NetworkProvisioner
from provisioner.state import ProvisioningState


@pytest.fixture
def inputs() -> FargateServiceInputs:
    return FargateServiceInputs(service_name="web")


def create_calls(ec2) -> list[str]:
    return [name for name in called(ec2) if name in NETWORK_CREATE_CALLS]


class TestEnsureNetwork:
    """Tests for NetworkProvisioner.ensure_network."""

    @pytest.mark.asyncio
    async def test_creates_stack_in_dependency_order(self, ec2_client, context, inputs):
        """Test that every resource is created once, in order."""
        provisioner = NetworkProvisioner(ec2_client, context)

        refs, state = await provisioner.ensure_network(inputs, ProvisioningState())

        assert create_calls(ec2_client) == NETWORK_CREATE_CALLS
        assert refs.security_groups == ["sg-1"]
        assert refs.subnets == ["subnet-1"]
        assert state.vpc_id == "vpc-1"
        assert state.internet_gateway_id == "igw-1"
        assert state.network_acl_id == "acl-1"
        assert state.route_table_id == "rtb-1"
        assert state.route_table_association_id == "rtbassoc-1"

    @pytest.mark.asyncio
    async def test_follow_up_calls_use_created_ids(self, ec2_client, context, inputs):
        """Test attach, rules and routes reference the ids created before them."""
        await NetworkProvisioner(ec2_client, context).ensure_network(inputs, ProvisioningState())

        ec2_client.attach_internet_gateway.assert_called_once_with(
            InternetGatewayId="igw-1", VpcId="vpc-1"
        )
        assert ec2_client.authorize_security_group_ingress.call_args.kwargs["GroupId"] == "sg-1"
        assert ec2_client.authorize_security_group_egress.call_args.kwargs["GroupId"] == "sg-1"
        routes = [c.kwargs for c in ec2_client.create_route.call_args_list]
        assert routes == [
            {"DestinationCidrBlock": "0.0.0.0/0", "GatewayId": "igw-1", "RouteTableId": "rtb-1"},
            {"DestinationIpv6CidrBlock": "::/0", "GatewayId": "igw-1", "RouteTableId": "rtb-1"},
        ]
        ec2_client.associate_route_table.assert_called_once_with(
            RouteTableId="rtb-1", SubnetId="subnet-1"
        )

    @pytest.mark.asyncio
    async def test_security_group_named_after_service(self, ec2_client, context, inputs):
        """Test the security group name and description derive from the service name."""
        await NetworkProvisioner(ec2_client, context).ensure_network(inputs, ProvisioningState())

        kwargs = ec2_client.create_security_group.call_args.kwargs
        assert kwargs["GroupName"] == "web-security-group"
        assert kwargs["Description"] == "web security group"
        assert kwargs["VpcId"] == "vpc-1"

    @pytest.mark.asyncio
    async def test_checkpoints_after_every_create(self, ec2_client, context, store, inputs):
        """Test state is saved once per created resource, each time with one more id."""
        await NetworkProvisioner(ec2_client, context).ensure_network(inputs, ProvisioningState())

        saved = [state for _key, state in store.saves]
        assert len(saved) == len(NETWORK_CREATE_CALLS)
        assert saved[0].vpc_id == "vpc-1" and saved[0].internet_gateway_id is None
        assert saved[1].internet_gateway_id == "igw-1" and saved[1].security_group_id is None
        assert saved[-1].route_table_association_id == "rtbassoc-1"

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, ec2_client, context, inputs):
        """Test that a fully recorded stack is not touched again."""
        provisioner = NetworkProvisioner(ec2_client, context)
        _refs, state = await provisioner.ensure_network(inputs, ProvisioningState())
        ec2_client.reset_mock()

        refs, again = await provisioner.ensure_network(inputs, state)

        assert called(ec2_client) == []
        assert again == state
        assert refs.subnets == ["subnet-1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failed_step", range(len(NETWORK_CREATE_CALLS)))
    async def test_retry_resumes_after_failed_step(
        self, ec2_client, context, store, inputs, failed_step
    ):
        """Test that after a failure at step k, a retry only creates steps k..n."""
        failing = getattr(ec2_client, NETWORK_CREATE_CALLS[failed_step])
        ok_response = failing.return_value
        failing.side_effect = ClientError(
            {"Error": {"Code": "RequestLimitExceeded", "Message": "slow down"}},
            NETWORK_CREATE_CALLS[failed_step],
        )

        with pytest.raises(ProviderCallError):
            await NetworkProvisioner(ec2_client, context).ensure_network(
                inputs, ProvisioningState()
            )

        failing.side_effect = None
        failing.return_value = ok_response
        ec2_client.reset_mock()

        await NetworkProvisioner(ec2_client, context).ensure_network(
            inputs, store.load(context.key)
        )

        assert create_calls(ec2_client) == NETWORK_CREATE_CALLS[failed_step:]

    @pytest.mark.asyncio
    async def test_explicit_configuration_bypasses_provisioning(self, ec2_client, context):
        """Test caller-supplied security groups and subnets are used verbatim."""
        inputs = FargateServiceInputs(
            service_name="web",
            awsvpc_configuration=AwsVpcConfiguration(
                security_groups=["sg-existing"], subnets=["subnet-a", "subnet-b"]
            ),
        )

        refs, state = await NetworkProvisioner(ec2_client, context).ensure_network(
            inputs, ProvisioningState()
        )

        assert called(ec2_client) == []
        assert refs.security_groups == ["sg-existing"]
        assert refs.subnets == ["subnet-a", "subnet-b"]
        assert state == ProvisioningState()

    @pytest.mark.asyncio
    async def test_create_without_id_is_provider_failure(self, ec2_client, context, store, inputs):
        """Test that a create response without an id aborts the deploy."""
        ec2_client.create_vpc.return_value = {"Vpc": {}}

        with pytest.raises(ProviderCallError, match="create_vpc"):
            await NetworkProvisioner(ec2_client, context).ensure_network(
                inputs, ProvisioningState()
            )

        assert store.saves == []

    @pytest.mark.asyncio
    async def test_route_table_requires_gateway(self, ec2_client, context, inputs):
        """Test that a route table cannot be created without a recorded gateway."""
        state = ProvisioningState(vpc_id="vpc-1", security_group_id="sg-1", network_acl_id="acl-1")
        provisioner = NetworkProvisioner(ec2_client, context)

        with pytest.raises(MissingResourcePrecondition, match="internet_gateway_id"):
            await provisioner._ensure_route_table(state)

        ec2_client.create_route_table.assert_not_called()
