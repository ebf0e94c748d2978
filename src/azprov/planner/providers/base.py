"""Provisioning API boundary.

The executor and destroy runner only talk to providers through this
contract. A provider binds it to a real API (Azure CLI) or simulates it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from azprov.planner.descriptors import ResourceDescriptor


class OperationStatus(Enum):
    """Status reported by the provisioning API for a resource operation."""

    SUCCEEDED = "succeeded"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    NOT_FOUND = "not_found"

    @property
    def is_terminal(self) -> bool:
        return self != OperationStatus.IN_PROGRESS

    @classmethod
    def from_provisioning_state(cls, value: str | None) -> "OperationStatus":
        """Map an ARM ``provisioningState`` string onto an OperationStatus."""
        if not value:
            return cls.SUCCEEDED
        lowered = value.lower()
        if lowered == "succeeded":
            return cls.SUCCEEDED
        if lowered in ("failed", "canceled", "cancelled"):
            return cls.FAILED
        return cls.IN_PROGRESS


@dataclass
class OperationResult:
    """Outcome of a provider call."""

    status: OperationStatus
    resource_id: str | None = None
    outputs: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class ProvisioningProvider(ABC):
    """Base class for provisioning API bindings.

    Descriptors handed to ``create``/``update`` already have their
    references interpolated with dependency outputs.
    """

    name = "base"

    @abstractmethod
    def supports(self, resource_type: str) -> bool:
        """Check whether this provider can manage a resource type."""
        pass

    @abstractmethod
    def create(self, descriptor: ResourceDescriptor) -> OperationResult:
        """Create a resource.

        Returns:
            OperationResult carrying the provider-assigned id. The status may
            be IN_PROGRESS, in which case the caller polls get_status().

        Raises:
            ExternalApiError: If the API rejects the request
        """
        pass

    @abstractmethod
    def update(self, resource_id: str, descriptor: ResourceDescriptor) -> OperationResult:
        """Update a resource in place."""
        pass

    @abstractmethod
    def delete(self, resource_id: str) -> OperationResult:
        """Delete a resource."""
        pass

    @abstractmethod
    def get_status(self, resource_id: str) -> OperationResult:
        """Poll the current status of a resource."""
        pass
