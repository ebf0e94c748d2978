"""Azure resource types the planner knows about, and their replacement rules."""

from enum import Enum


class ResourceType(Enum):
    """Azure resource types with built-in support."""

    RESOURCE_GROUP = "azurerm_resource_group"
    VNET = "azurerm_virtual_network"
    SUBNET = "azurerm_subnet"
    APP_SERVICE_ENVIRONMENT = "azurerm_app_service_environment_v3"
    SERVICE_PLAN = "azurerm_service_plan"
    STORAGE_ACCOUNT = "azurerm_storage_account"
    MANAGED_IDENTITY = "azurerm_user_assigned_identity"
    KEY_VAULT = "azurerm_key_vault"
    ROLE_ASSIGNMENT = "azurerm_role_assignment"
    LOGIC_APP_STANDARD = "azurerm_logic_app_standard"


# Properties that cannot be changed in place on any resource
COMMON_REPLACEMENT_PROPERTIES = frozenset({"name", "location", "resource_group_name"})

# Type-specific properties whose change forces delete-then-create
REPLACEMENT_PROPERTIES: dict[str, frozenset[str]] = {
    ResourceType.VNET.value: frozenset({"address_space"}),
    ResourceType.SUBNET.value: frozenset(
        {"virtual_network_name", "address_prefixes", "delegation"}
    ),
    ResourceType.APP_SERVICE_ENVIRONMENT.value: frozenset(
        {"subnet_id", "internal_load_balancing_mode", "zone_redundant"}
    ),
    ResourceType.SERVICE_PLAN.value: frozenset({"os_type", "app_service_environment_id"}),
    ResourceType.STORAGE_ACCOUNT.value: frozenset({"account_kind", "account_replication_type"}),
    ResourceType.KEY_VAULT.value: frozenset({"tenant_id"}),
    ResourceType.ROLE_ASSIGNMENT.value: frozenset(
        {"scope", "role_definition_name", "principal_id"}
    ),
    ResourceType.LOGIC_APP_STANDARD.value: frozenset({"app_service_plan_id", "storage_account_name"}),
}


def replacement_properties(resource_type: str) -> frozenset[str]:
    """Properties whose change forces replacement for a resource type."""
    return COMMON_REPLACEMENT_PROPERTIES | REPLACEMENT_PROPERTIES.get(resource_type, frozenset())
