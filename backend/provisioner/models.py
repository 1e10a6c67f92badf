"""Pydantic models for component inputs and outputs."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AwsVpcConfiguration(BaseModel):
    """Caller-supplied network placement. Skips VPC provisioning entirely."""

    model_config = ConfigDict(frozen=True)

    security_groups: list[str] = Field(default_factory=list)
    subnets: list[str] = Field(default_factory=list)


class NetworkRefs(BaseModel):
    """Security groups and subnets the service is placed into."""

    model_config = ConfigDict(frozen=True)

    security_groups: list[str]
    subnets: list[str]


class FargateServiceInputs(BaseModel):
    """Requested composite Fargate service."""

    model_config = ConfigDict(frozen=True)

    service_name: str = Field(..., min_length=1, max_length=255)
    cluster: str | None = Field(default=None, description="Cluster name or ARN")
    cpu: str = Field(default="256", description="Task CPU units")
    memory: str = Field(default="512", description="Task memory (MiB)")
    container_definitions: list[dict[str, Any]] = Field(default_factory=list)
    desired_count: int = Field(default=1, ge=0)
    expose_publicly: bool = False
    awsvpc_configuration: AwsVpcConfiguration | None = None

    @property
    def family(self) -> str:
        return f"{self.service_name}-family"


class FargateServiceOutputs(BaseModel):
    """What a deploy, refresh or remove reports back."""

    service_arn: str | None = None
    service_name: str | None = None
    containers: list[dict[str, Any]] | None = None
    attachments: list[dict[str, Any]] | None = None
    network_interfaces: list[dict[str, Any]] | None = None


class SnsSubscriptionInputs(BaseModel):
    """Requested SNS topic subscription and its tunable attributes."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Topic ARN")
    protocol: str = Field(..., description="e.g. sqs, lambda, https, email")
    endpoint: str
    subscription_attributes: dict[str, Any] = Field(default_factory=dict)
