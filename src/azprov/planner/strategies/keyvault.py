"""Key Vault deployment strategy."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


class KeyVaultStrategy(Strategy):
    """Strategy for deploying Azure Key Vaults with RBAC authorization."""

    arm_type = "Microsoft.KeyVault/vaults"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create key vault."""
        rbac = descriptor.config.get("enable_rbac_authorization", True)
        return [
            "az",
            "keyvault",
            "create",
            *self.scoped(descriptor),
            *self.location(descriptor),
            "--sku",
            str(descriptor.config.get("sku_name", "standard")),
            "--enable-rbac-authorization",
            "true" if rbac else "false",
            "--retention-days",
            str(descriptor.config.get("soft_delete_retention_days", 7)),
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]

    def build_delete_command(self, resource_id: str) -> list[str]:
        # Soft-delete keeps the vault name reserved until purged
        return ["az", "keyvault", "delete", "--ids", resource_id]
