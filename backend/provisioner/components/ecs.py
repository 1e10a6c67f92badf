"""ECS task definition and ECS service components."""

import logging
from typing import Any

from provisioner.aws import ProviderClients, call_provider
from provisioner.components.base import Component
from provisioner.context import ComponentType, DeploymentContext
from provisioner.errors import ProviderCallError

logger = logging.getLogger(__name__)


def _cluster_kwargs(cluster: str | None) -> dict[str, str]:
    return {"cluster": cluster} if isinstance(cluster, str) and cluster else {}


class EcsTaskDefinition(Component):
    """Registers one task definition revision per distinct parameter set."""

    component_type = ComponentType.ECS_TASK_DEFINITION

    def __init__(self, params: dict[str, Any], clients: ProviderClients):
        self.params = params
        self.ecs = clients.ecs

    def _register_params(self) -> dict[str, Any]:
        return {
            "family": self.params["family"],
            "containerDefinitions": self.params.get("container_definitions", []),
            "networkMode": self.params.get("network_mode", "awsvpc"),
            "requiresCompatibilities": self.params.get("requires_compatibilities", ["FARGATE"]),
            "cpu": str(self.params.get("cpu", "256")),
            "memory": str(self.params.get("memory", "512")),
            "volumes": self.params.get("volumes", []),
        }

    async def deploy(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any]:
        scoped = self.scoped(context)
        state = await scoped.get_state()
        request = self._register_params()

        recorded = state.extra.get("outputs")
        if recorded is not None and state.extra.get("request") == request:
            logger.debug("Task definition unchanged", extra={"family": request["family"]})
            return recorded

        response = await call_provider(self.ecs, "register_task_definition", **request)
        task_definition = response.get("taskDefinition") or {}
        if "taskDefinitionArn" not in task_definition:
            raise ProviderCallError("register_task_definition", "no task definition returned")

        outputs = {
            "family": task_definition.get("family", request["family"]),
            "revision": task_definition.get("revision"),
            "task_definition_arn": task_definition["taskDefinitionArn"],
        }
        await scoped.save_state(state.evolve(extra={"request": request, "outputs": outputs}))
        scoped.log(f"TaskDefinition: registered {outputs['family']}:{outputs['revision']}")
        return outputs

    async def remove(self, prev: dict[str, Any] | None, context: DeploymentContext) -> None:
        scoped = self.scoped(context)
        state = await scoped.get_state()
        outputs = state.extra.get("outputs") or prev
        if not outputs or not outputs.get("task_definition_arn"):
            return None

        await call_provider(
            self.ecs,
            "deregister_task_definition",
            taskDefinition=outputs["task_definition_arn"],
        )
        await scoped.save_state(state.evolve(extra={}))
        scoped.log("TaskDefinition: deregistered")
        return None

    async def get(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any] | None:
        outputs = (await self.scoped(context).get_state()).extra.get("outputs") or prev
        if not outputs:
            return None
        response = await call_provider(
            self.ecs,
            "describe_task_definition",
            taskDefinition=outputs["task_definition_arn"],
        )
        task_definition = response.get("taskDefinition") or {}
        return {**outputs, "status": task_definition.get("status")}


class EcsService(Component):
    """Creates the ECS service, or updates it when its parameters change."""

    component_type = ComponentType.ECS_SERVICE

    def __init__(self, params: dict[str, Any], clients: ProviderClients):
        self.params = params
        self.ecs = clients.ecs

    @property
    def cluster(self) -> str | None:
        return self.params.get("cluster")

    def _request(self) -> dict[str, Any]:
        return {
            "serviceName": self.params["service_name"],
            "taskDefinition": self.params.get("task_definition", ""),
            "desiredCount": self.params.get("desired_count", 1),
            "launchType": self.params.get("launch_type", "FARGATE"),
            "networkConfiguration": self.params.get("network_configuration", {}),
            **_cluster_kwargs(self.cluster),
        }

    async def deploy(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any]:
        scoped = self.scoped(context)
        state = await scoped.get_state()
        request = self._request()

        recorded = state.extra.get("outputs")
        if recorded is not None and state.extra.get("request") == request:
            logger.debug("Service unchanged", extra={"service_name": request["serviceName"]})
            return recorded

        if recorded is None:
            response = await call_provider(self.ecs, "create_service", **request)
            scoped.log("Service: created")
        else:
            response = await call_provider(
                self.ecs,
                "update_service",
                service=request["serviceName"],
                taskDefinition=request["taskDefinition"],
                desiredCount=request["desiredCount"],
                networkConfiguration=request["networkConfiguration"],
                **_cluster_kwargs(self.cluster),
            )
            scoped.log("Service: updated")

        service = response.get("service") or {}
        if "serviceArn" not in service:
            raise ProviderCallError("create_service", "no service returned")

        outputs = {
            "service_arn": service["serviceArn"],
            "service_name": service.get("serviceName", request["serviceName"]),
            "cluster": self.cluster,
        }
        await scoped.save_state(state.evolve(extra={"request": request, "outputs": outputs}))
        return outputs

    async def remove(self, prev: dict[str, Any] | None, context: DeploymentContext) -> None:
        scoped = self.scoped(context)
        state = await scoped.get_state()
        outputs = state.extra.get("outputs") or prev
        if not outputs:
            return None

        service_name = outputs.get("service_name") or self.params["service_name"]
        cluster = _cluster_kwargs(outputs.get("cluster") or self.cluster)

        # ECS refuses to delete a service that still has running tasks
        await call_provider(self.ecs, "update_service", service=service_name, desiredCount=0, **cluster)
        await call_provider(self.ecs, "delete_service", service=service_name, **cluster)

        await scoped.save_state(state.evolve(extra={}))
        scoped.log("Service: deleted")
        return None

    async def get(self, prev: dict[str, Any] | None, context: DeploymentContext) -> dict[str, Any] | None:
        outputs = (await self.scoped(context).get_state()).extra.get("outputs") or prev
        if not outputs:
            return None
        response = await call_provider(
            self.ecs,
            "describe_services",
            services=[outputs["service_name"]],
            **_cluster_kwargs(outputs.get("cluster")),
        )
        services = response.get("services") or []
        if not services:
            return None
        service = services[0]
        return {
            **outputs,
            "status": service.get("status"),
            "running_count": service.get("runningCount"),
            "desired_count": service.get("desiredCount"),
        }
