"""In-memory provider used for dry runs and tests.

Behaves like an asynchronous cloud API: creates may report IN_PROGRESS for a
configurable number of polls before settling. Failures, API errors and
resources that never settle can be scripted per address.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.errors import ExternalApiError
from azprov.planner.providers.base import (
    OperationResult,
    OperationStatus,
    ProvisioningProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class _SimulatedResource:
    address: str
    config: dict[str, Any]
    status: OperationStatus
    polls_left: int
    error: str | None = None
    outputs: dict[str, Any] = field(default_factory=dict)


class SimulatedProvider(ProvisioningProvider):
    """Provider that keeps resources in memory.

    Args:
        failures: address -> error message; the resource settles as FAILED
        api_errors: address -> ExternalApiError raised by create/update
        delete_failures: address -> error message returned by delete
        hang: addresses that stay IN_PROGRESS forever
        pending_polls: polls a create/update reports IN_PROGRESS before settling
        supported_types: resource types to accept (None accepts all)
    """

    name = "simulated"

    def __init__(
        self,
        failures: dict[str, str] | None = None,
        api_errors: dict[str, ExternalApiError] | None = None,
        delete_failures: dict[str, str] | None = None,
        hang: set[str] | None = None,
        pending_polls: int = 0,
        supported_types: set[str] | None = None,
    ):
        self.failures = failures or {}
        self.api_errors = api_errors or {}
        self.delete_failures = delete_failures or {}
        self.hang = hang or set()
        self.pending_polls = pending_polls
        self.supported_types = supported_types
        self.resources: dict[str, _SimulatedResource] = {}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    @staticmethod
    def resource_id_for(address: str) -> str:
        resource_type, name = address.split(".", 1)
        return f"/simulated/{resource_type}/{name}"

    def supports(self, resource_type: str) -> bool:
        return self.supported_types is None or resource_type in self.supported_types

    def create(self, descriptor: ResourceDescriptor) -> OperationResult:
        return self._put("create", self.resource_id_for(descriptor.address), descriptor)

    def update(self, resource_id: str, descriptor: ResourceDescriptor) -> OperationResult:
        return self._put("update", resource_id, descriptor)

    def _put(self, operation: str, resource_id: str, descriptor: ResourceDescriptor) -> OperationResult:
        address = descriptor.address
        with self._lock:
            self.calls.append((operation, address))
            if address in self.api_errors:
                raise self.api_errors[address]

            resource = _SimulatedResource(
                address=address,
                config=dict(descriptor.config),
                status=OperationStatus.IN_PROGRESS,
                polls_left=self.pending_polls,
                error=self.failures.get(address),
                outputs={
                    **descriptor.config,
                    "id": resource_id,
                    "name": descriptor.config.get("name", descriptor.name),
                },
            )
            self.resources[resource_id] = resource
            self._settle(resource)
            logger.debug(f"[simulated] {operation} {address} -> {resource.status.value}")
            return self._result(resource_id, resource)

    def delete(self, resource_id: str) -> OperationResult:
        with self._lock:
            resource = self.resources.get(resource_id)
            address = resource.address if resource else resource_id
            self.calls.append(("delete", address))
            if address in self.delete_failures:
                return OperationResult(
                    status=OperationStatus.FAILED,
                    resource_id=resource_id,
                    error=self.delete_failures[address],
                )
            self.resources.pop(resource_id, None)
            return OperationResult(status=OperationStatus.NOT_FOUND, resource_id=resource_id)

    def get_status(self, resource_id: str) -> OperationResult:
        with self._lock:
            resource = self.resources.get(resource_id)
            if resource is None:
                return OperationResult(status=OperationStatus.NOT_FOUND, resource_id=resource_id)
            self.calls.append(("get_status", resource.address))
            if resource.status == OperationStatus.IN_PROGRESS:
                resource.polls_left -= 1
                self._settle(resource)
            return self._result(resource_id, resource)

    def _settle(self, resource: _SimulatedResource) -> None:
        if resource.address in self.hang or resource.polls_left > 0:
            return
        resource.status = OperationStatus.FAILED if resource.error else OperationStatus.SUCCEEDED

    @staticmethod
    def _result(resource_id: str, resource: _SimulatedResource) -> OperationResult:
        return OperationResult(
            status=resource.status,
            resource_id=resource_id,
            outputs=dict(resource.outputs) if resource.status == OperationStatus.SUCCEEDED else {},
            error=resource.error if resource.status == OperationStatus.FAILED else None,
        )

    def mutating_calls(self) -> list[tuple[str, str]]:
        """Recorded create/update/delete calls (polls excluded)."""
        return [call for call in self.calls if call[0] in ("create", "update", "delete")]

    def created_addresses(self) -> list[str]:
        return [address for operation, address in self.calls if operation == "create"]
