"""Virtual network and subnet deployment strategies."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


def _as_list(value) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


class VirtualNetworkStrategy(Strategy):
    """Strategy for deploying Azure Virtual Networks."""

    arm_type = "Microsoft.Network/virtualNetworks"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create virtual network."""
        return [
            "az",
            "network",
            "vnet",
            "create",
            *self.scoped(descriptor),
            *self.location(descriptor),
            "--address-prefixes",
            *_as_list(self.require(descriptor, "address_space")),
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]

    def unwrap(self, payload):
        # vnet create wraps the resource in {"newVNet": {...}}
        return payload.get("newVNet", payload)


class SubnetStrategy(Strategy):
    """Strategy for deploying subnets, optionally delegated to a service."""

    arm_type = "Microsoft.Network/virtualNetworks/subnets"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create subnet."""
        cmd = [
            "az",
            "network",
            "vnet",
            "subnet",
            "create",
            *self.scoped(descriptor),
            "--vnet-name",
            str(self.require(descriptor, "virtual_network_name")),
            "--address-prefixes",
            *_as_list(self.require(descriptor, "address_prefixes")),
        ]
        delegation = descriptor.config.get("delegation")
        if delegation:
            cmd += ["--delegations", str(delegation)]
        return cmd + ["--output", "json"]
