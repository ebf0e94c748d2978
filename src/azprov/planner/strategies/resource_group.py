"""Resource Group deployment strategy."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


class ResourceGroupStrategy(Strategy):
    """Strategy for deploying Azure Resource Groups."""

    arm_type = "Microsoft.Resources/resourceGroups"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create resource group."""
        return [
            "az",
            "group",
            "create",
            "--name",
            self.resource_name(descriptor),
            "--location",
            str(self.require(descriptor, "location")),
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]

    def build_delete_command(self, resource_id: str) -> list[str]:
        return ["az", "group", "delete", "--name", _group_name(resource_id), "--yes"]

    def build_show_command(self, resource_id: str) -> list[str]:
        return ["az", "group", "show", "--name", _group_name(resource_id), "--output", "json"]


def _group_name(resource_id: str) -> str:
    return resource_id.rstrip("/").split("/")[-1]
