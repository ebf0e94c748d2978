"""Persisted provisioning state.

The state file records, for every resource the planner has touched, the last
known status, provider-assigned id, last applied (declared) configuration,
provider outputs and recorded dependencies. It is read at the start of every
planning pass and rewritten after every apply/destroy.

File format (JSON)::

    {
      "version": 1,
      "serial": 3,
      "resources": {
        "azurerm_resource_group.main": {
          "type": "azurerm_resource_group",
          "name": "main",
          "resource_id": "/subscriptions/.../resourceGroups/rg-logicapp-tf",
          "status": "ready",
          "config": {...},
          "outputs": {...},
          "dependencies": [],
          "error": null,
          "updated_at": "2026-01-01T00:00:00+00:00"
        }
      },
      "outputs": {"logic_app_name": "la-demo"}
    }

Security:
- State file permissions: 0600 (owner read/write only)
- Atomic writes (temp file + rename)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from azprov.planner.errors import StateError

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class ProvisioningStatus(Enum):
    """Lifecycle status of a resource within a plan/apply cycle."""

    UNPLANNED = "unplanned"
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    FAILED = "failed"
    SKIPPED = "skipped"  # Blocked by a failed dependency or never dispatched

    @property
    def is_terminal(self) -> bool:
        return self in (ProvisioningStatus.READY, ProvisioningStatus.FAILED)


@dataclass
class ResourceState:
    """Last known state of a single resource."""

    type: str
    name: str
    status: ProvisioningStatus = ProvisioningStatus.UNPLANNED
    resource_id: str | None = None
    config: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, Any] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    error: str | None = None
    updated_at: str | None = None

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "resource_id": self.resource_id,
            "status": self.status.value,
            "config": self.config,
            "outputs": self.outputs,
            "dependencies": self.dependencies,
            "error": self.error,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceState":
        return cls(
            type=data["type"],
            name=data["name"],
            status=ProvisioningStatus(data.get("status", ProvisioningStatus.UNPLANNED.value)),
            resource_id=data.get("resource_id"),
            config=data.get("config") or {},
            outputs=data.get("outputs") or {},
            dependencies=list(data.get("dependencies") or []),
            error=data.get("error"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class StackState:
    """All recorded resources plus resolved stack outputs."""

    resources: dict[str, ResourceState] = field(default_factory=dict)
    outputs: dict[str, Any] = field(default_factory=dict)
    serial: int = 0

    def get(self, address: str) -> ResourceState | None:
        return self.resources.get(address)

    def put(self, resource: ResourceState) -> None:
        resource.touch()
        self.resources[resource.address] = resource

    def remove(self, address: str) -> ResourceState | None:
        return self.resources.pop(address, None)

    def dependents_of(self, address: str) -> list[str]:
        """Addresses of recorded resources that depend directly on ``address``."""
        return sorted(
            addr for addr, res in self.resources.items() if address in res.dependencies
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "serial": self.serial,
            "resources": {addr: res.to_dict() for addr, res in self.resources.items()},
            "outputs": self.outputs,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StackState":
        version = data.get("version", STATE_VERSION)
        if version != STATE_VERSION:
            raise StateError(f"Unsupported state file version: {version}")
        return cls(
            resources={
                addr: ResourceState.from_dict(res)
                for addr, res in (data.get("resources") or {}).items()
            },
            outputs=data.get("outputs") or {},
            serial=int(data.get("serial", 0)),
        )


class StateStore:
    """Reads and writes the JSON state file."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> StackState:
        """Load state, returning an empty state if the file does not exist.

        Raises:
            StateError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting empty")
            return StackState()

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"Failed to read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateError(f"State file {self.path} is not a JSON object")

        try:
            state = StackState.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise StateError(f"Corrupt state file {self.path}: {e}") from e
        logger.debug(f"Loaded state serial {state.serial} with {len(state.resources)} resources")
        return state

    def save(self, state: StackState) -> None:
        """Write state atomically and bump its serial.

        Raises:
            StateError: If the file cannot be written
        """
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            state.serial += 1
            with open(temp_path, "w") as f:
                json.dump(state.to_dict(), f, indent=2, sort_keys=True)
            os.chmod(temp_path, 0o600)
            temp_path.replace(self.path)
            logger.debug(f"Saved state serial {state.serial} to {self.path}")
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StateError(f"Failed to write state file {self.path}: {e}") from e
