"""Deployment context: every input the workflow pipeline needs, resolved once."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from azprov.config_manager import ProvisionerConfig

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_NAME = "httpbin-workflow"


@dataclass(frozen=True)
class DeploymentContext:
    """Explicit configuration for one workflow deployment.

    Built from config (with environment overrides already applied) and the
    stack outputs recorded in the state file. Steps read from it and never
    write back.
    """

    resource_group: str
    logic_app_name: str | None
    storage_account_name: str | None
    source_dir: Path
    package_path: Path
    workflow_name: str = DEFAULT_WORKFLOW_NAME
    container_name: str = "logic-app-deploy"
    deploy_timeout: int = 120

    @classmethod
    def from_config(
        cls,
        config: ProvisionerConfig,
        outputs: dict[str, Any] | None = None,
        project_dir: Path | None = None,
    ) -> "DeploymentContext":
        """Build the context.

        The Logic App name comes from config/LOGIC_APP_NAME first and falls
        back to the ``logic_app_name`` stack output; the storage account
        only ever comes from the ``storage_account_name`` output.
        """
        outputs = outputs or {}
        base = project_dir or Path.cwd()
        logic_app_name = config.logic_app_name or outputs.get("logic_app_name")
        if logic_app_name and not config.logic_app_name:
            logger.debug(f"Logic App name taken from stack outputs: {logic_app_name}")
        return cls(
            resource_group=config.resource_group,
            logic_app_name=str(logic_app_name) if logic_app_name else None,
            storage_account_name=(
                str(outputs["storage_account_name"]) if outputs.get("storage_account_name") else None
            ),
            source_dir=base / config.workflow_source_dir,
            package_path=base / config.package_file,
        )

    def trigger_url(self, host_name: str) -> str:
        return (
            f"https://{host_name}/api/{self.workflow_name}/triggers/manual/invoke"
            "?api-version=2022-05-01"
        )
