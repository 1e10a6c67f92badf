"""Pydantic schemas for deployments and subscriptions."""

from typing import Any

from pydantic import BaseModel, Field

from provisioner.models import AwsVpcConfiguration


class ServiceDeployRequest(BaseModel):
    """Request to deploy or converge a Fargate service."""

    cluster: str | None = Field(default=None, description="Cluster name or ARN")
    cpu: str = Field(default="256", description="Task CPU units")
    memory: str = Field(default="512", description="Task memory (MiB)")
    container_definitions: list[dict[str, Any]] = Field(
        default_factory=list,
        description="ECS container definitions, passed through unchanged",
    )
    desired_count: int = Field(default=1, ge=0, description="Number of tasks to run")
    expose_publicly: bool = Field(default=False, description="Assign public IPs to tasks")
    awsvpc_configuration: AwsVpcConfiguration | None = Field(
        default=None,
        description="Existing security groups and subnets; skips VPC provisioning",
    )


class ServiceResponse(BaseModel):
    """Service identity and task metadata."""

    service_arn: str | None = None
    service_name: str | None = None
    containers: list[dict[str, Any]] | None = None
    attachments: list[dict[str, Any]] | None = None
    network_interfaces: list[dict[str, Any]] | None = None


class SubscriptionRequest(BaseModel):
    """Request to create or update an SNS subscription."""

    topic: str = Field(..., description="Topic ARN")
    protocol: str = Field(..., description="Subscription protocol")
    endpoint: str = Field(..., description="Subscription endpoint")
    subscription_attributes: dict[str, Any] = Field(default_factory=dict)


class SubscriptionResponse(BaseModel):
    """Recorded subscription."""

    subscription_arn: str | None = None
    topic: str | None = None
    protocol: str | None = None
    endpoint: str | None = None
    subscription_attributes: dict[str, Any] = Field(default_factory=dict)
