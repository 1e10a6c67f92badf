"""
AWS X-Ray tracing for provider calls.

Simple subsegment wrapper for EC2/ECS/SNS API observability.
No-op when running outside Lambda (no active X-Ray segment).
"""

import os
from contextlib import contextmanager
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

# Auto-patch supported libraries (boto3, httpx, etc.)
if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
    patch_all()


@contextmanager
def provider_span(service: str, operation: str, **attributes: Any):
    """Create an X-Ray subsegment for a provider API call.

    Gracefully no-ops when no active segment exists (e.g., in tests or local dev).
    """
    with xray_recorder.in_subsegment(f"provider.{service}.{operation}") as subsegment:
        if subsegment is None:
            yield None
        else:
            subsegment.put_annotation("provider_service", service)
            subsegment.put_annotation("provider_operation", operation)
            for key, value in attributes.items():
                if isinstance(value, str) and len(value) > 500:
                    value = value[:500] + "..."
                subsegment.put_metadata(key, value)
            yield subsegment


def add_provider_error(subsegment, error_code: str) -> None:
    """Annotate a subsegment with a provider error code. No-op if subsegment is None."""
    if subsegment is None:
        return
    subsegment.put_annotation("provider_error_code", error_code)
