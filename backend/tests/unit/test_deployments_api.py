"""Unit tests for the deployments and subscriptions routers."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.services.deployment_service import DeploymentService, get_deployment_service
from provisioner.errors import MissingResourcePrecondition, ProviderCallError
from provisioner.models import FargateServiceInputs, FargateServiceOutputs
from provisioner.state import ProvisioningState


@pytest.fixture
def mock_service():
    """Deployment service stand-in injected into the routers."""
    service = MagicMock(spec=DeploymentService)
    service.deploy_service = AsyncMock(
        return_value=FargateServiceOutputs(
            service_arn="arn:aws:ecs:us-east-1:123:service/web",
            service_name="web",
            containers=[{"name": "web"}],
            attachments=[],
            network_interfaces=[{"NetworkInterfaceId": "eni-1"}],
        )
    )
    service.refresh_service = AsyncMock(
        return_value=FargateServiceOutputs(service_name="web", containers=[])
    )
    service.remove_service = AsyncMock(return_value=FargateServiceOutputs())
    service.deploy_subscription = AsyncMock(
        return_value={
            "subscription_arn": "arn:sub",
            "topic": "arn:topic",
            "protocol": "sqs",
            "endpoint": "arn:queue",
            "subscription_attributes": {},
        }
    )
    service.remove_subscription = AsyncMock(return_value=None)
    service.get_state = AsyncMock(return_value=ProvisioningState(service={"service_name": "web"}))
    return service


@pytest.fixture
def client(mock_service):
    """Test client with the deployment service overridden."""
    app.dependency_overrides[get_deployment_service] = lambda: mock_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestDeployService:
    """Tests for PUT /deployments/{service_name}."""

    def test_deploy_returns_outputs(self, client, mock_service):
        response = client.put(
            "/deployments/web",
            json={"container_definitions": [{"name": "web", "image": "nginx"}], "expose_publicly": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["service_arn"] == "arn:aws:ecs:us-east-1:123:service/web"
        assert data["network_interfaces"] == [{"NetworkInterfaceId": "eni-1"}]

        inputs = mock_service.deploy_service.call_args.args[0]
        assert isinstance(inputs, FargateServiceInputs)
        assert inputs.service_name == "web"
        assert inputs.expose_publicly is True

    def test_provider_failure_is_bad_gateway(self, client, mock_service):
        mock_service.deploy_service.side_effect = ProviderCallError(
            "create_vpc", "VpcLimitExceeded", "VpcLimitExceeded"
        )

        response = client.put("/deployments/web", json={})

        assert response.status_code == 502
        assert "create_vpc failed" in response.json()["detail"]

    def test_missing_precondition_is_server_error(self, client, mock_service):
        mock_service.deploy_service.side_effect = MissingResourcePrecondition(
            "route_table_id", "internet_gateway_id"
        )

        response = client.put("/deployments/web", json={})

        assert response.status_code == 500

    def test_invalid_request(self, client):
        response = client.put("/deployments/web", json={"desired_count": -1})

        assert response.status_code == 422


class TestRefreshService:
    """Tests for GET /deployments/{service_name}."""

    def test_refresh(self, client, mock_service):
        response = client.get("/deployments/web", params={"cluster": "prod"})

        assert response.status_code == 200
        inputs = mock_service.refresh_service.call_args.args[0]
        assert inputs.cluster == "prod"

    def test_not_deployed(self, client, mock_service):
        mock_service.get_state.return_value = ProvisioningState()

        response = client.get("/deployments/web")

        assert response.status_code == 404
        mock_service.refresh_service.assert_not_called()


class TestRemoveService:
    """Tests for DELETE /deployments/{service_name}."""

    def test_remove(self, client, mock_service):
        response = client.delete("/deployments/web")

        assert response.status_code == 204
        assert mock_service.remove_service.call_args.args[0].service_name == "web"

    def test_remove_failure(self, client, mock_service):
        mock_service.remove_service.side_effect = ProviderCallError("delete_vpc", "DependencyViolation")

        response = client.delete("/deployments/web")

        assert response.status_code == 502


class TestSubscriptions:
    """Tests for the subscriptions router."""

    def test_deploy_subscription(self, client, mock_service):
        response = client.put(
            "/subscriptions/orders",
            json={"topic": "arn:topic", "protocol": "sqs", "endpoint": "arn:queue"},
        )

        assert response.status_code == 200
        assert response.json()["subscription_arn"] == "arn:sub"
        name, inputs = mock_service.deploy_subscription.call_args.args
        assert name == "orders"
        assert inputs.protocol == "sqs"

    def test_remove_subscription(self, client, mock_service):
        response = client.delete("/subscriptions/orders")

        assert response.status_code == 204
        mock_service.remove_subscription.assert_awaited_once_with("orders")
