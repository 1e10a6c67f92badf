"""Typed registry mapping component types to factories."""

import logging
from collections.abc import Callable
from typing import Any

from provisioner.aws import ProviderClients
from provisioner.components.base import Component
from provisioner.context import ComponentType
from provisioner.errors import UnknownComponentError

logger = logging.getLogger(__name__)

ComponentFactory = Callable[[dict[str, Any], ProviderClients], Component]


class ComponentRegistry:
    """Resolves a :class:`ComponentType` plus parameters into a component handle."""

    def __init__(self, clients: ProviderClients):
        self.clients = clients
        self._factories: dict[ComponentType, ComponentFactory] = {}

    def register(self, component_type: ComponentType, factory: ComponentFactory) -> None:
        if component_type in self._factories:
            logger.debug("Replacing factory for %s", component_type.value)
        self._factories[component_type] = factory

    def is_registered(self, component_type: ComponentType) -> bool:
        return component_type in self._factories

    def load(
        self,
        component_type: ComponentType,
        alias: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Component:
        """Build a component handle.

        Args:
            component_type: Which component to build.
            alias: Key under which the handle keeps its own state, relative
                to the calling component's state key.
            params: Inputs for the component.

        Raises:
            UnknownComponentError: If nothing is registered for the type.
        """
        factory = self._factories.get(component_type)
        if factory is None:
            raise UnknownComponentError(f"No component registered for '{component_type.value}'")

        component = factory(params or {}, self.clients)
        component.alias = alias
        return component
