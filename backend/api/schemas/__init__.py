"""API schemas package."""

from api.schemas.deployment import (
    ServiceDeployRequest,
    ServiceResponse,
    SubscriptionRequest,
    SubscriptionResponse,
)

__all__ = [
    "ServiceDeployRequest",
    "ServiceResponse",
    "SubscriptionRequest",
    "SubscriptionResponse",
]
