"""Provisioning state and the stores that persist it.

The concrete store is selected at runtime via the ``STATE_STORE`` setting,
which must be the fully-qualified Python class name of a :class:`StateStore`
subclass (e.g. ``provisioner.state.DynamoDBStateStore``).

Every orchestrator step saves the full state right after it succeeds, so the
stores only ever need whole-document ``load`` / ``save``.
"""

import importlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ConfigDict, Field

from common.config import settings
from provisioner.errors import ProviderCallError

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import Table

logger = logging.getLogger(__name__)


class ProvisioningState(BaseModel):
    """Durable record of what exists on the provider side for one instance.

    A role field is set if and only if the resource it names exists.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    vpc_id: str | None = None
    internet_gateway_id: str | None = None
    security_group_id: str | None = None
    network_acl_id: str | None = None
    route_table_id: str | None = None
    subnet_id: str | None = None
    route_table_association_id: str | None = None

    # Outputs of sub-components (referenced, not duplicated)
    task_definition: dict[str, Any] | None = None
    service: dict[str, Any] | None = None

    # Task metadata from the last convergence poll
    containers: list[dict[str, Any]] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    network_interfaces: list[dict[str, Any]] = Field(default_factory=list)

    # Free-form outputs for components that are not the Fargate service
    extra: dict[str, Any] = Field(default_factory=dict)

    def evolve(self, **changes: Any) -> "ProvisioningState":
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)

    def is_empty(self) -> bool:
        return self == ProvisioningState()


class StateStore(ABC):
    """Persists :class:`ProvisioningState` per instance key."""

    @abstractmethod
    def load(self, key: str) -> ProvisioningState:
        """Return the stored state, or an empty state if nothing is stored."""
        ...

    @abstractmethod
    def save(self, key: str, state: ProvisioningState) -> None:
        """Replace the stored state for ``key``."""
        ...


class MemoryStateStore(StateStore):
    """Process-local store, used for tests and dry runs."""

    def __init__(self):
        self._states: dict[str, dict[str, Any]] = {}
        self.saves: list[tuple[str, ProvisioningState]] = []

    def load(self, key: str) -> ProvisioningState:
        data = self._states.get(key)
        return ProvisioningState.model_validate(data) if data else ProvisioningState()

    def save(self, key: str, state: ProvisioningState) -> None:
        self._states[key] = state.model_dump()
        self.saves.append((key, state))


class FileStateStore(StateStore):
    """One JSON document per instance key under ``state_dir``."""

    def __init__(self, state_dir: str | Path | None = None):
        self._dir = Path(state_dir or settings.state_dir)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        safe = key.replace("/", "_").replace(":", "_")
        return self._dir / f"{safe}.json"

    def load(self, key: str) -> ProvisioningState:
        path = self._path(key)
        if not path.exists():
            return ProvisioningState()
        try:
            return ProvisioningState.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except json.JSONDecodeError:
            logger.warning("Corrupt state file, starting from empty state", extra={"path": str(path)})
            return ProvisioningState()

    def save(self, key: str, state: ProvisioningState) -> None:
        path = self._path(key)
        with self._lock:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(state.model_dump(), indent=2, default=str), encoding="utf-8")
            tmp.replace(path)


class DynamoDBStateStore(StateStore):
    """Single-table key/value store: one item per instance key.

    Items are ``{"id": <key>, "state": <json string>}``; the state is kept
    as a JSON string so floats and nested lists round-trip without
    DynamoDB ``Decimal`` conversion.
    """

    def __init__(self, *, table_name: str | None = None, table: "Table | None" = None):
        if table is None:
            name = table_name or settings.resolved_state_table_name
            table = boto3.resource("dynamodb", region_name=settings.aws_region).Table(name)
        self._table = table

    def load(self, key: str) -> ProvisioningState:
        try:
            response = self._table.get_item(Key={"id": key})
        except ClientError as e:
            raise ProviderCallError("get_item", str(e), e.response.get("Error", {}).get("Code")) from e
        item = response.get("Item")
        if not item:
            return ProvisioningState()
        return ProvisioningState.model_validate(json.loads(item["state"]))

    def save(self, key: str, state: ProvisioningState) -> None:
        try:
            self._table.put_item(
                Item={"id": key, "state": json.dumps(state.model_dump(), default=str)}
            )
        except ClientError as e:
            raise ProviderCallError("put_item", str(e), e.response.get("Error", {}).get("Code")) from e


def _load_store_class(class_path: str) -> type[StateStore]:
    """Dynamically import a StateStore subclass by its fully-qualified name.

    Raises:
        ValueError: If the path is malformed, the module cannot be imported,
            the attribute doesn't exist, or it isn't a StateStore subclass.
    """
    if "." not in class_path:
        raise ValueError(
            f"STATE_STORE must be a fully-qualified class name "
            f"(e.g. 'provisioner.state.FileStateStore'), got: '{class_path}'"
        )

    module_path, class_name = class_path.rsplit(".", 1)

    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ValueError(
            f"Cannot import module '{module_path}' from STATE_STORE='{class_path}': {exc}"
        ) from exc

    cls = getattr(module, class_name, None)
    if cls is None:
        raise ValueError(
            f"Module '{module_path}' has no attribute '{class_name}' (STATE_STORE='{class_path}')"
        )

    if not (isinstance(cls, type) and issubclass(cls, StateStore)):
        raise ValueError(f"'{class_path}' is not a StateStore subclass (got {type(cls).__name__})")

    return cls


@lru_cache
def get_state_store() -> StateStore:
    """Get the configured state store instance.

    The class is instantiated with no arguments; each store reads what it
    needs (directory, table name) from ``settings``.
    """
    cls = _load_store_class(settings.state_store)
    logger.info("Loading state store: %s", settings.state_store)
    return cls()
