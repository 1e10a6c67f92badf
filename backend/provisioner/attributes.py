"""Reconciles requested subscription attributes against the persisted ones."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from provisioner.aws import call_provider

logger = logging.getLogger(__name__)

# Value sent to the provider to clear an attribute
UNSET = ""


@dataclass(frozen=True)
class AttributeChange:
    """One attribute to write. ``value == UNSET`` clears the attribute."""

    key: str
    value: Any

    @property
    def is_unset(self) -> bool:
        return self.value == UNSET


def diff_attributes(
    requested: dict[str, Any] | None, previous: dict[str, Any] | None
) -> list[AttributeChange]:
    """Ordered changes that turn ``previous`` into ``requested``.

    Requested keys come first in request order, then keys that were only in
    ``previous`` as unset entries. Changes whose value already matches the
    persisted one are dropped.
    """
    requested = requested or {}
    previous = previous or {}

    candidates = [AttributeChange(key, value) for key, value in requested.items()]
    candidates.extend(AttributeChange(key, UNSET) for key in previous if key not in requested)

    return [c for c in candidates if not (c.key in previous and previous[c.key] == c.value)]


def _attribute_name(key: str) -> str:
    return key[:1].upper() + key[1:]


def _attribute_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Policies (FilterPolicy, RedrivePolicy, ...) are sent as JSON documents
    return json.dumps(value)


class AttributeReconciler:
    """Applies attribute changes to an SNS subscription."""

    def __init__(self, sns: Any):
        self.sns = sns

    async def apply(
        self,
        subscription_arn: str,
        requested: dict[str, Any] | None,
        previous: dict[str, Any] | None,
    ) -> list[AttributeChange]:
        """Send every non-redundant change concurrently.

        Returns:
            The changes that were applied.
        """
        changes = diff_attributes(requested, previous)
        if not changes:
            return []

        await asyncio.gather(
            *(
                call_provider(
                    self.sns,
                    "set_subscription_attributes",
                    SubscriptionArn=subscription_arn,
                    AttributeName=_attribute_name(change.key),
                    AttributeValue=_attribute_value(change.value),
                )
                for change in changes
            )
        )
        logger.info(
            "Subscription attributes updated",
            extra={
                "subscription_arn": subscription_arn,
                "set": [c.key for c in changes if not c.is_unset],
                "unset": [c.key for c in changes if c.is_unset],
            },
        )
        return changes
