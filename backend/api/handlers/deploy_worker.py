"""Worker Lambda handler for queued deployments.

Deploys can outlast an API Gateway request, so they may also be queued on
SQS. Each message names an action and the service inputs. A message that
fails with a provider error is reported back for retry; the retry resumes
from the last checkpointed step.
"""

import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError

from api.services.deployment_service import DeploymentService, get_deployment_service
from provisioner.errors import ProviderCallError
from provisioner.models import FargateServiceInputs

# Configure logging
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ACTIONS = ("deploy", "remove", "refresh")


async def process_deployment_job(job: dict[str, Any], service: DeploymentService) -> dict[str, Any]:
    """Run one queued deployment action.

    Args:
        job: ``{"action": "deploy" | "remove" | "refresh", "service": {...}}``
        service: Deployment service to run it with.

    Returns:
        The service outputs as a dict.

    Raises:
        ValueError: If the action is unknown.
        ValidationError: If the service inputs are invalid.
        ProviderCallError: If a provider call fails.
    """
    action = job.get("action")
    if action not in ACTIONS:
        raise ValueError(f"Unknown deployment action: {action!r}")

    inputs = FargateServiceInputs.model_validate(job.get("service") or {})
    if action == "deploy":
        outputs = await service.deploy_service(inputs)
    elif action == "remove":
        outputs = await service.remove_service(inputs)
    else:
        outputs = await service.refresh_service(inputs)
    return outputs.model_dump()


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler for SQS-triggered deployments.

    Args:
        event: SQS event with Records array.
        context: Lambda context (unused).

    Returns:
        Response with batch item failures (for partial batch retry).
    """
    logger.info(f"Received event with {len(event.get('Records', []))} records")

    service = get_deployment_service()
    batch_failures = []

    for record in event.get("Records", []):
        message_id = record["messageId"]

        try:
            job = json.loads(record["body"])
            outputs = asyncio.run(process_deployment_job(job, service))
            logger.info(
                "Completed deployment job",
                extra={"action": job.get("action"), "service_name": outputs.get("service_name")},
            )

        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.error(f"Invalid deployment message {message_id}: {e}")
            # Don't retry - message is malformed
            continue
        except ProviderCallError:
            logger.exception(f"Provider call failed for message {message_id}")
            # Retry resumes from the last checkpoint
            batch_failures.append({"itemIdentifier": message_id})
        except Exception:
            logger.exception(f"Failed to process message {message_id}")
            batch_failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": batch_failures}
