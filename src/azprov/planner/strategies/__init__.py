"""Azure CLI deployment strategies, one per resource type."""

from azprov.planner.errors import UnsupportedResourceTypeError
from azprov.planner.resource_types import ResourceType
from azprov.planner.strategies.app_service import (
    AppServiceEnvironmentStrategy,
    AppServicePlanStrategy,
    LogicAppStandardStrategy,
)
from azprov.planner.strategies.base import Strategy
from azprov.planner.strategies.identity import ManagedIdentityStrategy, RoleAssignmentStrategy
from azprov.planner.strategies.keyvault import KeyVaultStrategy
from azprov.planner.strategies.network import SubnetStrategy, VirtualNetworkStrategy
from azprov.planner.strategies.resource_group import ResourceGroupStrategy
from azprov.planner.strategies.storage import StorageStrategy

# Strategy registry
_STRATEGIES: dict[ResourceType, type[Strategy]] = {
    ResourceType.RESOURCE_GROUP: ResourceGroupStrategy,
    ResourceType.VNET: VirtualNetworkStrategy,
    ResourceType.SUBNET: SubnetStrategy,
    ResourceType.APP_SERVICE_ENVIRONMENT: AppServiceEnvironmentStrategy,
    ResourceType.SERVICE_PLAN: AppServicePlanStrategy,
    ResourceType.STORAGE_ACCOUNT: StorageStrategy,
    ResourceType.MANAGED_IDENTITY: ManagedIdentityStrategy,
    ResourceType.KEY_VAULT: KeyVaultStrategy,
    ResourceType.ROLE_ASSIGNMENT: RoleAssignmentStrategy,
    ResourceType.LOGIC_APP_STANDARD: LogicAppStandardStrategy,
}


class _GenericStrategy(Strategy):
    """Fallback for ids of unknown ARM types: generic show and delete only."""

    def build_create_command(self, descriptor):
        raise UnsupportedResourceTypeError(descriptor.address, descriptor.type)


def has_strategy(resource_type: str) -> bool:
    return any(rt.value == resource_type for rt in _STRATEGIES)


def get_strategy(resource_type: str) -> Strategy:
    """Get strategy instance for resource type."""
    try:
        strategy_class = _STRATEGIES[ResourceType(resource_type)]
    except (ValueError, KeyError):
        raise ValueError(f"No strategy for resource type: {resource_type}") from None
    return strategy_class()


def arm_type_of(resource_id: str) -> str:
    """ARM type of a resource id, e.g. ``Microsoft.Network/virtualNetworks/subnets``.

    The last ``providers`` segment wins, so extension resources such as role
    assignments resolve to their own type rather than their scope's.
    """
    parts = resource_id.strip("/").split("/")
    lowered = [p.lower() for p in parts]
    if "providers" not in lowered:
        return ResourceGroupStrategy.arm_type if "resourcegroups" in lowered else ""
    index = len(lowered) - 1 - lowered[::-1].index("providers")
    namespace = parts[index + 1] if index + 1 < len(parts) else ""
    types = parts[index + 2 :: 2]
    return "/".join([namespace, *types])


def get_strategy_for_id(resource_id: str) -> Strategy:
    """Get the strategy that owns a resource id (generic when unknown)."""
    arm_type = arm_type_of(resource_id).lower()
    for strategy_class in _STRATEGIES.values():
        if strategy_class.arm_type.lower() == arm_type:
            return strategy_class()
    return _GenericStrategy()


__all__ = [
    "Strategy",
    "ResourceGroupStrategy",
    "VirtualNetworkStrategy",
    "SubnetStrategy",
    "AppServiceEnvironmentStrategy",
    "AppServicePlanStrategy",
    "StorageStrategy",
    "ManagedIdentityStrategy",
    "KeyVaultStrategy",
    "RoleAssignmentStrategy",
    "LogicAppStandardStrategy",
    "arm_type_of",
    "get_strategy",
    "get_strategy_for_id",
    "has_strategy",
]
