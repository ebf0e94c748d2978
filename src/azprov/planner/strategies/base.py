"""Base strategy interface."""

import re
from abc import ABC, abstractmethod
from typing import Any

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.errors import ConfigurationError

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def to_snake_case(name: str) -> str:
    """Convert an ARM property name (``defaultHostName``) to ``default_host_name``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def format_tags(tags: dict[str, Any] | None) -> list[str]:
    """Format a tag mapping as ``--tags key=value ...`` arguments."""
    if not tags:
        return []
    return ["--tags", *(f"{key}={value}" for key, value in sorted(tags.items()))]


class Strategy(ABC):
    """Base strategy for driving one Azure resource type through az.

    Descriptor configs use the Terraform azurerm attribute names
    (``resource_group_name``, ``address_space`` and so on); each strategy
    maps them onto az arguments.
    """

    # ARM type as it appears in resource ids, e.g. Microsoft.Network/virtualNetworks
    arm_type = ""

    @abstractmethod
    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build the az command that creates (or re-applies) the resource.

        Args:
            descriptor: Descriptor with dependency references already resolved

        Returns:
            Azure CLI command as an argument list
        """
        pass

    def build_update_command(self, resource_id: str, descriptor: ResourceDescriptor) -> list[str]:
        """Build the az command for an in-place update.

        ARM create calls are PUTs, so re-running create converges the
        resource onto the new configuration.
        """
        return self.build_create_command(descriptor)

    def build_delete_command(self, resource_id: str) -> list[str]:
        return ["az", "resource", "delete", "--ids", resource_id]

    def build_show_command(self, resource_id: str) -> list[str]:
        return ["az", "resource", "show", "--ids", resource_id, "--output", "json"]

    def unwrap(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Resource description inside the az create output."""
        return payload

    def extract_outputs(self, descriptor: ResourceDescriptor, payload: dict[str, Any]) -> dict[str, Any]:
        """Outputs exposed to dependents: declared config plus scalar ARM properties."""
        outputs: dict[str, Any] = dict(descriptor.config)
        properties = payload.get("properties")
        for source in (properties if isinstance(properties, dict) else {}, payload):
            for key, value in source.items():
                if isinstance(value, (str, int, float, bool)):
                    outputs[to_snake_case(key)] = value
        outputs.setdefault("name", descriptor.config.get("name", descriptor.name))
        return outputs

    @staticmethod
    def provisioning_state(payload: dict[str, Any]) -> str | None:
        if "provisioningState" in payload:
            return payload["provisioningState"]
        properties = payload.get("properties")
        if isinstance(properties, dict):
            return properties.get("provisioningState")
        return None

    @staticmethod
    def require(descriptor: ResourceDescriptor, key: str) -> Any:
        """Fetch a required config value.

        Raises:
            ConfigurationError: If the key is missing or empty
        """
        value = descriptor.config.get(key)
        if value in (None, "", []):
            raise ConfigurationError(f"{descriptor.address}: config.{key} is required")
        return value

    @staticmethod
    def resource_name(descriptor: ResourceDescriptor) -> str:
        return str(descriptor.config.get("name", descriptor.name))

    def scoped(self, descriptor: ResourceDescriptor) -> list[str]:
        """``--name`` and ``--resource-group`` arguments shared by most commands."""
        return [
            "--name",
            self.resource_name(descriptor),
            "--resource-group",
            str(self.require(descriptor, "resource_group_name")),
        ]

    @staticmethod
    def location(descriptor: ResourceDescriptor) -> list[str]:
        location = descriptor.config.get("location")
        return ["--location", str(location)] if location else []
