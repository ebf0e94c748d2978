"""Storage Account deployment strategy."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


class StorageStrategy(Strategy):
    """Strategy for deploying Azure Storage Accounts."""

    arm_type = "Microsoft.Storage/storageAccounts"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create storage account."""
        tier = descriptor.config.get("account_tier", "Standard")
        replication = descriptor.config.get("account_replication_type", "LRS")
        return [
            "az",
            "storage",
            "account",
            "create",
            *self.scoped(descriptor),
            *self.location(descriptor),
            "--sku",
            f"{tier}_{replication}",
            "--kind",
            str(descriptor.config.get("account_kind", "StorageV2")),
            "--https-only",
            "true",
            "--min-tls-version",
            str(descriptor.config.get("min_tls_version", "TLS1_2")),
            "--allow-blob-public-access",
            "false",
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]
