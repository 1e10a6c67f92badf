"""Component interface.

A component is anything with the deploy / remove / get lifecycle. The
Fargate service is a component built out of smaller components (the ECS
task definition and ECS service), so the interface composes recursively.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from provisioner.context import ComponentType, DeploymentContext


class Component(ABC):
    """Lifecycle handle returned by the component registry."""

    component_type: ClassVar[ComponentType]

    # Set by the registry; scopes this handle's state under the parent's key.
    alias: str | None = None

    def scoped(self, context: DeploymentContext) -> DeploymentContext:
        """Context this component should read and checkpoint through."""
        return context.child(self.alias) if self.alias else context

    @abstractmethod
    async def deploy(self, prev: dict[str, Any] | None, context: DeploymentContext) -> Any:
        """Create or update the resource and return its outputs."""
        ...

    @abstractmethod
    async def remove(self, prev: dict[str, Any] | None, context: DeploymentContext) -> Any:
        """Delete the resource. Must be a no-op when nothing exists."""
        ...

    @abstractmethod
    async def get(self, prev: dict[str, Any] | None, context: DeploymentContext) -> Any:
        """Refresh and return current outputs."""
        ...
