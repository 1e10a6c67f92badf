"""The context every component lifecycle call receives."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from common.config import Settings, settings
from provisioner.state import ProvisioningState, StateStore

if TYPE_CHECKING:
    from provisioner.aws import ProviderClients
    from provisioner.components.registry import ComponentRegistry

progress_logger = logging.getLogger("provisioner.progress")


class ComponentType(str, Enum):
    """Tags the registry resolves to component factories."""

    ECS_TASK_DEFINITION = "aws-ecs-task-definition"
    ECS_SERVICE = "aws-ecs-service"
    FARGATE_SERVICE = "aws-fargate"
    SNS_SUBSCRIPTION = "aws-sns-subscription"


@dataclass(frozen=True)
class DeploymentContext:
    """Where a component reads and checkpoints its state, and reports progress.

    ``key`` identifies the instance in the state store. Sub-components get a
    child context whose key is suffixed with their alias, so each owns its own
    state document.
    """

    key: str
    store: StateStore
    registry: "ComponentRegistry"
    clients: "ProviderClients"
    settings: Settings = field(default_factory=lambda: settings)

    async def get_state(self) -> ProvisioningState:
        return await asyncio.to_thread(self.store.load, self.key)

    async def save_state(self, state: ProvisioningState) -> None:
        await asyncio.to_thread(self.store.save, self.key, state)

    def log(self, message: str) -> None:
        progress_logger.info(message, extra={"instance": self.key})

    def child(self, alias: str) -> "DeploymentContext":
        return replace(self, key=f"{self.key}:{alias}")
