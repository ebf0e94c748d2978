"""Single-resource operations with polling and per-resource timeouts."""

import logging
import time
from collections.abc import Callable

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.errors import ResourceTimeoutError
from azprov.planner.providers.base import OperationResult, OperationStatus, ProvisioningProvider
from azprov.planner.reconciler import ChangeAction

logger = logging.getLogger(__name__)


class ResourceOperator:
    """Runs one provider operation and blocks until it reaches a terminal status.

    Waiting on the provider is the only blocking point of an apply. A
    resource that is still IN_PROGRESS when its timeout expires raises
    ResourceTimeoutError, which callers treat exactly like a failure.
    """

    def __init__(
        self,
        provider: ProvisioningProvider,
        default_timeout: float = 1800.0,
        resource_timeouts: dict[str, float] | None = None,
        poll_interval: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.default_timeout = default_timeout
        self.resource_timeouts = resource_timeouts or {}
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def timeout_for(self, resource_type: str) -> float:
        return float(self.resource_timeouts.get(resource_type, self.default_timeout))

    def provision(
        self,
        descriptor: ResourceDescriptor,
        action: ChangeAction,
        resource_id: str | None = None,
    ) -> OperationResult:
        """Create or update a resource and wait for it to settle.

        Raises:
            ExternalApiError: If the provider rejects the request
            ResourceTimeoutError: If the resource does not settle in time
        """
        deadline = self._clock() + self.timeout_for(descriptor.type)

        if action == ChangeAction.UPDATE and resource_id:
            result = self.provider.update(resource_id, descriptor)
            result.resource_id = result.resource_id or resource_id
        else:
            result = self.provider.create(descriptor)

        return self._wait(descriptor.address, result, deadline, self.timeout_for(descriptor.type))

    def destroy(self, address: str, resource_type: str, resource_id: str) -> OperationResult:
        """Delete a resource and wait until the provider reports it gone.

        Raises:
            ExternalApiError: If the provider rejects the request
            ResourceTimeoutError: If the resource is not gone in time
        """
        timeout = self.timeout_for(resource_type)
        deadline = self._clock() + timeout
        result = self.provider.delete(resource_id)
        result.resource_id = result.resource_id or resource_id
        if result.status == OperationStatus.SUCCEEDED:
            # Delete accepted and completed synchronously
            return OperationResult(status=OperationStatus.NOT_FOUND, resource_id=resource_id)
        return self._wait(address, result, deadline, timeout)

    def _wait(
        self, address: str, result: OperationResult, deadline: float, timeout: float
    ) -> OperationResult:
        while not result.status.is_terminal:
            if self._clock() >= deadline:
                raise ResourceTimeoutError(address, timeout)
            self._sleep(self.poll_interval)
            if not result.resource_id:
                break
            polled = self.provider.get_status(result.resource_id)
            polled.resource_id = polled.resource_id or result.resource_id
            polled.outputs = polled.outputs or result.outputs
            result = polled
            logger.debug(f"{address}: {result.status.value}")
        return result
