"""boto3 client factories and the single seam every provider call goes through."""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import ClientError

from common.config import settings
from common.tracing import add_provider_error, provider_span
from provisioner.errors import ProviderCallError

if TYPE_CHECKING:
    from mypy_boto3_ec2 import EC2Client
    from mypy_boto3_ecs import ECSClient
    from mypy_boto3_sns import SNSClient

logger = logging.getLogger(__name__)


@lru_cache
def get_ec2_client() -> "EC2Client":
    """Get cached EC2 client."""
    return boto3.client("ec2", region_name=settings.aws_region)


@lru_cache
def get_ecs_client() -> "ECSClient":
    """Get cached ECS client."""
    return boto3.client("ecs", region_name=settings.aws_region)


@lru_cache
def get_sns_client() -> "SNSClient":
    """Get cached SNS client."""
    return boto3.client("sns", region_name=settings.aws_region)


@dataclass(frozen=True)
class ProviderClients:
    """The boto3 clients a deployment talks to."""

    ec2: Any
    ecs: Any
    sns: Any

    @classmethod
    def default(cls) -> "ProviderClients":
        return cls(ec2=get_ec2_client(), ecs=get_ecs_client(), sns=get_sns_client())


async def call_provider(client: Any, operation: str, **params: Any) -> dict[str, Any]:
    """Invoke a boto3 client operation off the event loop.

    Args:
        client: A boto3 client (or a stand-in exposing the same methods).
        operation: Snake-case operation name, e.g. ``"create_vpc"``.
        **params: Keyword parameters passed straight to the operation.

    Returns:
        The response dict (empty dict when the call returns nothing).

    Raises:
        ProviderCallError: If the provider rejects the call.
    """
    service = getattr(getattr(client, "meta", None), "service_model", None)
    service_name = getattr(service, "service_name", "aws")
    method = getattr(client, operation)

    with provider_span(service_name, operation) as subsegment:
        try:
            response = await asyncio.to_thread(method, **params)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "Unknown")
            add_provider_error(subsegment, code)
            logger.error(
                "Provider call failed",
                extra={"operation": operation, "error_code": code},
            )
            raise ProviderCallError(operation, error.get("Message", str(e)), code) from e

    return response or {}
