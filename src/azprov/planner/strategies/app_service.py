"""App Service Environment, App Service Plan and Logic App deployment strategies."""

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.strategies.base import Strategy, format_tags


class AppServiceEnvironmentStrategy(Strategy):
    """Strategy for deploying an App Service Environment v3.

    ASE creation routinely takes well over an hour; give the type a
    generous entry in ``resource_timeouts``.
    """

    arm_type = "Microsoft.Web/hostingEnvironments"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create App Service Environment."""
        mode = str(descriptor.config.get("internal_load_balancing_mode", "Web, Publishing"))
        cmd = [
            "az",
            "appservice",
            "ase",
            "create",
            *self.scoped(descriptor),
            "--subnet",
            str(self.require(descriptor, "subnet_id")),
            "--kind",
            "asev3",
            "--virtual-ip-type",
            "External" if mode.lower() == "none" else "Internal",
        ]
        if descriptor.config.get("zone_redundant"):
            cmd.append("--zone-redundant")
        return cmd + [*format_tags(descriptor.config.get("tags")), "--output", "json"]


class AppServicePlanStrategy(Strategy):
    """Strategy for deploying App Service Plans, optionally inside an ASE."""

    arm_type = "Microsoft.Web/serverfarms"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create App Service Plan."""
        cmd = [
            "az",
            "appservice",
            "plan",
            "create",
            *self.scoped(descriptor),
            *self.location(descriptor),
            "--sku",
            str(descriptor.config.get("sku_name", "WS1")),
        ]
        if str(descriptor.config.get("os_type", "Windows")).lower() == "linux":
            cmd.append("--is-linux")
        ase_id = descriptor.config.get("app_service_environment_id")
        if ase_id:
            cmd += ["--app-service-environment", str(ase_id)]
        return cmd + [*format_tags(descriptor.config.get("tags")), "--output", "json"]


class LogicAppStandardStrategy(Strategy):
    """Strategy for deploying Logic App (Standard) sites.

    Requires the ``logic`` az extension.
    """

    arm_type = "Microsoft.Web/sites"

    def build_create_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Build az CLI command to create Logic App."""
        return [
            "az",
            "logicapp",
            "create",
            *self.scoped(descriptor),
            "--plan",
            str(self.require(descriptor, "app_service_plan_id")),
            "--storage-account",
            str(self.require(descriptor, "storage_account_name")),
            *format_tags(descriptor.config.get("tags")),
            "--output",
            "json",
        ]

    def build_show_command(self, resource_id: str) -> list[str]:
        return ["az", "logicapp", "show", "--ids", resource_id, "--output", "json"]
