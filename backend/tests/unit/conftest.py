"""Fixtures wiring stand-in AWS clients into a deployment context."""

from unittest.mock import MagicMock

import pytest
from fakes import make_ec2_client, make_ecs_client

from provisioner.aws import ProviderClients
from provisioner.components import build_registry
from provisioner.context import DeploymentContext
from provisioner.state import MemoryStateStore


@pytest.fixture
def ec2_client() -> MagicMock:
    return make_ec2_client()


@pytest.fixture
def ecs_client() -> MagicMock:
    return make_ecs_client()


@pytest.fixture
def sns_client() -> MagicMock:
    sns = MagicMock()
    sns.subscribe.return_value = {"SubscriptionArn": "arn:aws:sns:us-east-1:123:topic:sub-1"}
    return sns


@pytest.fixture
def clients(ec2_client, ecs_client, sns_client) -> ProviderClients:
    return ProviderClients(ec2=ec2_client, ecs=ecs_client, sns=sns_client)


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def context(store, clients, fast_settings) -> DeploymentContext:
    """Deployment context for a service named ``web``."""
    return DeploymentContext(
        key="fargate:web",
        store=store,
        registry=build_registry(clients),
        clients=clients,
        settings=fast_settings,
    )
