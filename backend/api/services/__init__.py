"""API services package."""

from api.services.deployment_service import DeploymentService, get_deployment_service

__all__ = [
    "DeploymentService",
    "get_deployment_service",
]
