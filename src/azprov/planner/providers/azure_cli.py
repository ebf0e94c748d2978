"""Provider binding that drives the Azure CLI.

Each resource type is handled by a Strategy that builds the az commands;
this provider runs them, maps ARM provisioning states onto
OperationStatus, and turns "not found" answers into NOT_FOUND.
"""

import logging
from collections.abc import Callable
from typing import Any

from azprov.azure_cli_executor import run_az_json
from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.errors import ExternalApiError
from azprov.planner.providers.base import (
    OperationResult,
    OperationStatus,
    ProvisioningProvider,
)
from azprov.planner.strategies import (
    Strategy,
    get_strategy,
    get_strategy_for_id,
    has_strategy,
)

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset(
    {"ResourceNotFound", "ResourceGroupNotFound", "NotFound", "ParentResourceNotFound"}
)


def is_not_found(error: ExternalApiError) -> bool:
    if error.code in NOT_FOUND_CODES:
        return True
    lowered = str(error).lower()
    return "could not be found" in lowered or "was not found" in lowered


class AzureCliProvider(ProvisioningProvider):
    """Provisioning provider backed by ``az`` subprocess calls.

    az commands block until the ARM operation completes, so create and
    update usually return a terminal status straight away; the command
    timeout is the per-resource timeout.
    """

    name = "azure_cli"

    def __init__(
        self,
        command_timeout: float = 1800.0,
        resource_timeouts: dict[str, float] | None = None,
        runner: Callable[..., Any] = run_az_json,
    ):
        self.command_timeout = command_timeout
        self.resource_timeouts = resource_timeouts or {}
        self._run = runner

    def supports(self, resource_type: str) -> bool:
        return has_strategy(resource_type)

    def _timeout(self, resource_type: str) -> float:
        return float(self.resource_timeouts.get(resource_type, self.command_timeout))

    def create(self, descriptor: ResourceDescriptor) -> OperationResult:
        strategy = get_strategy(descriptor.type)
        cmd = strategy.build_create_command(descriptor)
        logger.info(f"Creating {descriptor.address}")
        payload = self._run(cmd, timeout=self._timeout(descriptor.type))
        return self._to_result(strategy, descriptor, payload)

    def update(self, resource_id: str, descriptor: ResourceDescriptor) -> OperationResult:
        strategy = get_strategy(descriptor.type)
        cmd = strategy.build_update_command(resource_id, descriptor)
        logger.info(f"Updating {descriptor.address}")
        payload = self._run(cmd, timeout=self._timeout(descriptor.type))
        result = self._to_result(strategy, descriptor, payload)
        result.resource_id = result.resource_id or resource_id
        return result

    def delete(self, resource_id: str) -> OperationResult:
        strategy = get_strategy_for_id(resource_id)
        try:
            self._run(strategy.build_delete_command(resource_id), timeout=self.command_timeout)
        except ExternalApiError as e:
            if is_not_found(e):
                return OperationResult(OperationStatus.NOT_FOUND, resource_id=resource_id)
            raise
        return OperationResult(OperationStatus.SUCCEEDED, resource_id=resource_id)

    def get_status(self, resource_id: str) -> OperationResult:
        strategy = get_strategy_for_id(resource_id)
        try:
            payload = self._run(strategy.build_show_command(resource_id), timeout=120)
        except ExternalApiError as e:
            if is_not_found(e):
                return OperationResult(OperationStatus.NOT_FOUND, resource_id=resource_id)
            raise
        payload = payload if isinstance(payload, dict) else {}
        state = strategy.provisioning_state(payload)
        status = OperationStatus.from_provisioning_state(state)
        error = f"provisioningState is {state}" if status == OperationStatus.FAILED else None
        return OperationResult(status, resource_id=payload.get("id", resource_id), error=error)

    @staticmethod
    def _to_result(
        strategy: Strategy, descriptor: ResourceDescriptor, payload: Any
    ) -> OperationResult:
        if not isinstance(payload, dict):
            raise ExternalApiError(f"{descriptor.address}: az returned no resource description")
        payload = strategy.unwrap(payload)

        resource_id = payload.get("id")
        state = strategy.provisioning_state(payload)
        status = OperationStatus.from_provisioning_state(state)
        if status == OperationStatus.FAILED:
            return OperationResult(
                status, resource_id=resource_id, error=f"provisioningState is {state}"
            )
        return OperationResult(
            status,
            resource_id=resource_id,
            outputs=strategy.extract_outputs(descriptor, payload),
        )
