"""Managed identity and role assignment deployment strategies."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


class ManagedIdentityStrategy(Strategy):
    """Strategy for deploying user-assigned managed identities."""

    arm_type = "Microsoft.ManagedIdentity/userAssignedIdentities"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create managed identity."""
        return [
            "az",
            "identity",
            "create",
            *self.scoped(descriptor),
            *self.location(descriptor),
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]


class RoleAssignmentStrategy(Strategy):
    """Strategy for granting a role to a principal on a scope."""

    arm_type = "Microsoft.Authorization/roleAssignments"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create role assignment."""
        return [
            "az",
            "role",
            "assignment",
            "create",
            "--assignee-object-id",
            str(self.require(descriptor, "principal_id")),
            "--assignee-principal-type",
            str(descriptor.config.get("principal_type", "ServicePrincipal")),
            "--role",
            str(self.require(descriptor, "role_definition_name")),
            "--scope",
            str(self.require(descriptor, "scope")),
            "--output",
            "json",
        ]

    def build_delete_command(self, resource_id: str) -> list[str]:
        return ["az", "role", "assignment", "delete", "--ids", resource_id]
