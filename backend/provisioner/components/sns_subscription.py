"""SNS topic subscription component."""

import logging
from enum import Enum
from typing import Any

from provisioner.attributes import AttributeReconciler
from provisioner.aws import ProviderClients, call_provider
from provisioner.components.base import Component
from provisioner.context import ComponentType, DeploymentContext
from provisioner.errors import ProviderCallError
from provisioner.models import SnsSubscriptionInputs

logger = logging.getLogger(__name__)


class DeployAction(str, Enum):
    DEPLOY = "deploy"
    REPLACE = "replace"
    UPDATE = "update"


class SnsSubscription(Component):
    """Subscribes an endpoint to a topic and keeps its attributes in sync."""

    component_type = ComponentType.SNS_SUBSCRIPTION

    def __init__(self, inputs: SnsSubscriptionInputs, clients: ProviderClients):
        self.inputs = inputs
        self.sns = clients.sns

    @classmethod
    def from_params(cls, params: dict[str, Any], clients: ProviderClients) -> "SnsSubscription":
        return cls(SnsSubscriptionInputs.model_validate(params), clients)

    def plan(self, recorded: dict[str, Any] | None) -> DeployAction:
        """Decide how to get from the recorded subscription to the requested one."""
        if not recorded or not recorded.get("subscription_arn"):
            return DeployAction.DEPLOY
        if recorded.get("protocol") != self.inputs.protocol or recorded.get("topic") != self.inputs.topic:
            return DeployAction.REPLACE
        if recorded.get("endpoint") != self.inputs.endpoint:
            return DeployAction.REPLACE
        return DeployAction.UPDATE

    async def _subscribe(self) -> str:
        response = await call_provider(
            self.sns,
            "subscribe",
            TopicArn=self.inputs.topic,
            Protocol=self.inputs.protocol,
            Endpoint=self.inputs.endpoint,
            ReturnSubscriptionArn=True,
        )
        subscription_arn = response.get("SubscriptionArn")
        if not subscription_arn:
            raise ProviderCallError("subscribe", "no subscription ARN returned")
        return subscription_arn

    async def deploy(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any]:
        context = self.scoped(context)
        state = await context.get_state()
        recorded = state.extra or None

        action = self.plan(recorded)
        previous_attributes = (recorded or {}).get("subscription_attributes") or {}

        if action is DeployAction.REPLACE:
            await self._unsubscribe(state, context)
            state = await context.get_state()
            previous_attributes = {}

        if action is DeployAction.UPDATE:
            subscription_arn = recorded["subscription_arn"]
        else:
            subscription_arn = await self._subscribe()
            state = state.evolve(
                extra={
                    "subscription_arn": subscription_arn,
                    "topic": self.inputs.topic,
                    "protocol": self.inputs.protocol,
                    "endpoint": self.inputs.endpoint,
                    "subscription_attributes": {},
                }
            )
            await context.save_state(state)
            context.log("Subscription: created")

        await AttributeReconciler(self.sns).apply(
            subscription_arn, self.inputs.subscription_attributes, previous_attributes
        )
        state = state.evolve(
            extra={**state.extra, "subscription_attributes": dict(self.inputs.subscription_attributes)}
        )
        await context.save_state(state)
        return dict(state.extra)

    async def _unsubscribe(self, state, context: DeploymentContext) -> None:
        subscription_arn = state.extra.get("subscription_arn")
        if not subscription_arn:
            return
        await call_provider(self.sns, "unsubscribe", SubscriptionArn=subscription_arn)
        await context.save_state(state.evolve(extra={}))
        context.log("Subscription: removed")

    async def remove(self, prev: dict[str, Any] | None, context: DeploymentContext) -> None:
        context = self.scoped(context)
        await self._unsubscribe(await context.get_state(), context)
        return None

    async def get(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any] | None:
        context = self.scoped(context)
        recorded = (await context.get_state()).extra
        if not recorded.get("subscription_arn"):
            return None
        response = await call_provider(
            self.sns, "get_subscription_attributes", SubscriptionArn=recorded["subscription_arn"]
        )
        return {**recorded, "attributes": response.get("Attributes") or {}}
