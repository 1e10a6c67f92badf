"""Waits for ECS tasks to reach their desired status.

Polling uses a fixed interval and a fixed number of rounds. Running out of
rounds is not an error: the caller gets the best-known task list back with
``converged=False`` and decides what to do with it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from provisioner.aws import call_provider

logger = logging.getLogger(__name__)

NETWORK_INTERFACE_DETAIL = "networkInterfaceId"


@dataclass
class ConvergenceResult:
    """Outcome of a convergence poll."""

    tasks: list[dict[str, Any]] = field(default_factory=list)
    converged: bool = True
    attempts: int = 0


@dataclass
class TaskMetadata:
    """Container, attachment and network interface data gathered from tasks."""

    containers: list[dict[str, Any]] = field(default_factory=list)
    attachments: list[dict[str, Any]] = field(default_factory=list)
    network_interfaces: list[dict[str, Any]] = field(default_factory=list)


def is_converged(task: dict[str, Any]) -> bool:
    return task.get("desiredStatus") == task.get("lastStatus")


class ConvergencePoller:
    """Polls ``describe_tasks`` until every task's desired and last status match."""

    def __init__(
        self,
        ecs: Any,
        *,
        cluster: str | None = None,
        interval_seconds: float = 10.0,
    ):
        self.ecs = ecs
        self.cluster = cluster
        self.interval_seconds = interval_seconds

    async def _describe(self, task_arns: list[str]) -> Any:
        params: dict[str, Any] = {"tasks": task_arns}
        if self.cluster:
            params["cluster"] = self.cluster
        response = await call_provider(self.ecs, "describe_tasks", **params)
        return response.get("tasks")

    async def await_convergence(self, task_arns: list[str], max_attempts: int) -> ConvergenceResult:
        """Poll until all tasks converge or ``max_attempts`` rounds have run.

        Each round describes only the tasks that had not converged in the
        previous round. Tasks that converged earlier are kept in the result.

        Args:
            task_arns: Tasks to watch.
            max_attempts: Maximum number of describe rounds.

        Returns:
            ConvergenceResult with the best-known task list. ``converged`` is
            False when rounds ran out or the provider returned no task list.
        """
        if not task_arns:
            return ConvergenceResult(tasks=[], converged=True, attempts=0)

        done: list[dict[str, Any]] = []
        pending_arns = list(task_arns)
        pending: list[dict[str, Any]] = []
        attempts = 0

        while attempts < max_attempts:
            tasks = await self._describe(pending_arns)
            attempts += 1

            if not isinstance(tasks, list):
                logger.warning(
                    "describe_tasks returned no task list",
                    extra={"attempt": attempts, "task_count": len(pending_arns)},
                )
                return ConvergenceResult(tasks=done + pending, converged=False, attempts=attempts)

            pending = [t for t in tasks if not is_converged(t)]
            done.extend(t for t in tasks if is_converged(t))

            if not pending:
                return ConvergenceResult(tasks=done, converged=True, attempts=attempts)

            if attempts >= max_attempts:
                break

            logger.debug(
                "Tasks still changing",
                extra={"attempt": attempts, "pending": len(pending)},
            )
            await asyncio.sleep(self.interval_seconds)
            pending_arns = [t["taskArn"] for t in pending]

        logger.warning(
            "Tasks did not converge",
            extra={"attempts": attempts, "pending": len(pending)},
        )
        return ConvergenceResult(tasks=done + pending, converged=False, attempts=attempts)


async def collect_task_metadata(ec2: Any, tasks: list[dict[str, Any]]) -> TaskMetadata:
    """Flatten containers and attachments and resolve their network interfaces.

    Network interface ids come from attachment details named
    ``networkInterfaceId`` and are resolved in a single batched call.
    """
    metadata = TaskMetadata()
    if not tasks:
        return metadata

    for task in tasks:
        metadata.containers.extend(task.get("containers") or [])
        metadata.attachments.extend(task.get("attachments") or [])

    interface_ids = [
        detail["value"]
        for attachment in metadata.attachments
        for detail in (attachment.get("details") or [])
        if detail.get("name") == NETWORK_INTERFACE_DETAIL and detail.get("value")
    ]

    if interface_ids:
        response = await call_provider(
            ec2, "describe_network_interfaces", NetworkInterfaceIds=interface_ids
        )
        metadata.network_interfaces = response.get("NetworkInterfaces") or []

    return metadata
