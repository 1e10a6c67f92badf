"""Deployable components and the registry that builds them."""

from provisioner.aws import ProviderClients
from provisioner.components.base import Component
from provisioner.components.ecs import EcsService, EcsTaskDefinition
from provisioner.components.fargate import FargateService
from provisioner.components.registry import ComponentRegistry
from provisioner.components.sns_subscription import SnsSubscription
from provisioner.context import ComponentType, DeploymentContext


def build_registry(clients: ProviderClients) -> ComponentRegistry:
    """Registry with every built-in component registered."""
    registry = ComponentRegistry(clients)
    registry.register(ComponentType.ECS_TASK_DEFINITION, EcsTaskDefinition)
    registry.register(ComponentType.ECS_SERVICE, EcsService)
    registry.register(ComponentType.FARGATE_SERVICE, FargateService.from_params)
    registry.register(ComponentType.SNS_SUBSCRIPTION, SnsSubscription.from_params)
    return registry


__all__ = [
    "Component",
    "ComponentRegistry",
    "ComponentType",
    "DeploymentContext",
    "EcsService",
    "EcsTaskDefinition",
    "FargateService",
    "SnsSubscription",
    "build_registry",
]
