"""Provisioning API bindings."""

from azprov.planner.providers.base import (
    OperationResult,
    OperationStatus,
    ProvisioningProvider,
)
from azprov.planner.providers.simulated import SimulatedProvider

PROVIDER_NAMES = ("azure_cli", "simulated")


def get_provider(name: str, **kwargs) -> ProvisioningProvider:
    """Get provider instance by name.

    Raises:
        ValueError: If the name is not a known provider
    """
    if name == "simulated":
        return SimulatedProvider(**kwargs)
    if name == "azure_cli":
        from azprov.planner.providers.azure_cli import AzureCliProvider

        return AzureCliProvider(**kwargs)
    raise ValueError(f"Unknown provider: {name} (expected one of {', '.join(PROVIDER_NAMES)})")


__all__ = [
    "OperationResult",
    "OperationStatus",
    "PROVIDER_NAMES",
    "ProvisioningProvider",
    "SimulatedProvider",
    "get_provider",
]
