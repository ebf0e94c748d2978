"""Workflow deployment steps.

Each step drives the Azure CLI with list arguments (no shell) and reports
through a StepResult.
"""

import logging
import subprocess
from datetime import datetime, timedelta, timezone

from azprov.azure_cli_executor import run_az_command
from azprov.deployment.context import DeploymentContext
from azprov.deployment.packager import PackagingError, create_package
from azprov.deployment.pipeline import Step, StepResult
from azprov.prerequisites import PrerequisiteChecker, to_native_path

logger = logging.getLogger(__name__)


def _az(cmd: list[str], timeout: float = 60) -> subprocess.CompletedProcess[str]:
    """Run az without raising on non-zero exit; a timeout is reported as exit code 124."""
    try:
        return run_az_command(cmd, timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(cmd, 124, "", f"timed out after {timeout:.0f}s")
    except FileNotFoundError:
        return subprocess.CompletedProcess(cmd, 127, "", "az not found on PATH")


def _error_text(result: subprocess.CompletedProcess[str]) -> str:
    return (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"


class CheckPrerequisites(Step):
    name = "check-prerequisites"

    def run(self, ctx: DeploymentContext) -> StepResult:
        result = PrerequisiteChecker.check_all()
        if not result.all_available:
            return self.fail(
                PrerequisiteChecker.format_missing_message(result.missing, result.platform_name)
            )
        return self.ok(f"Tools available: {', '.join(result.available)}", platform=result.platform_name)


class EnsureAzureLogin(Step):
    """Reuse the current az session; fall back to an interactive login."""

    name = "ensure-azure-login"

    def run(self, ctx: DeploymentContext) -> StepResult:
        account = _az(["az", "account", "show", "--query", "name", "-o", "tsv"])
        if account.returncode == 0:
            return self.ok(f"Logged in to subscription {account.stdout.strip()}")

        logger.info("Not logged in to Azure, starting az login")
        login = _az(["az", "login"], timeout=600)
        if login.returncode != 0:
            return self.fail(f"az login failed: {_error_text(login)}")
        return self.ok("Logged in with az login")


class EnsureLogicExtension(Step):
    name = "ensure-logic-extension"

    def run(self, ctx: DeploymentContext) -> StepResult:
        result = _az(["az", "extension", "add", "--name", "logic", "--yes"], timeout=300)
        if result.returncode != 0:
            logger.warning(f"Could not install the logic extension: {_error_text(result)}")
            return self.ok("logic extension not installed, continuing", warning=_error_text(result))
        return self.ok("logic extension available")


class ResolveDeploymentTarget(Step):
    name = "resolve-deployment-target"

    def run(self, ctx: DeploymentContext) -> StepResult:
        if not ctx.logic_app_name:
            return self.fail(
                "Logic App name unknown: set LOGIC_APP_NAME, logic_app_name in azprov.toml, "
                "or apply a stack with a 'logic_app_name' output"
            )
        return self.ok(
            f"Deploying to {ctx.logic_app_name} in {ctx.resource_group}",
            logic_app_name=ctx.logic_app_name,
            resource_group=ctx.resource_group,
        )


class CreatePackage(Step):
    name = "create-package"

    def run(self, ctx: DeploymentContext) -> StepResult:
        try:
            files = create_package(ctx.source_dir, ctx.package_path)
        except PackagingError as e:
            return self.fail(str(e))
        return self.ok(
            f"Packaged {len(files)} files into {ctx.package_path.name}",
            package_path=str(ctx.package_path),
            files=[f.as_posix() for f in files],
        )


class DeployPackage(Step):
    """Zip deploy, with a storage-upload fallback.

    The direct deploy pushes the zip through the SCM endpoint. When that is
    unreachable (for example an internal ASE) the package is uploaded to the
    stack's storage account and deployed from a short-lived read SAS URL.
    """

    name = "deploy-package"

    def __init__(self, clock=None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self, ctx: DeploymentContext) -> StepResult:
        direct = _az(
            [
                "az", "webapp", "deploy",
                "--resource-group", ctx.resource_group,
                "--name", str(ctx.logic_app_name),
                "--src-path", to_native_path(ctx.package_path),
                "--type", "zip",
                "--timeout", str(ctx.deploy_timeout),
            ],
            timeout=900,
        )
        if direct.returncode == 0:
            return self.ok("Deployed with zip deploy", method="direct")

        logger.warning(f"Direct zip deploy failed, trying storage upload: {_error_text(direct)}")
        if not ctx.storage_account_name:
            return self.fail(
                f"Direct deploy failed and no storage account is known for fallback: "
                f"{_error_text(direct)}"
            )
        return self._deploy_via_storage(ctx)

    def _deploy_via_storage(self, ctx: DeploymentContext) -> StepResult:
        now = self._clock()
        blob_name = f"logic-app-package-{int(now.timestamp())}.zip"
        storage = ["--account-name", str(ctx.storage_account_name)]

        container = _az(
            ["az", "storage", "container", "create", "--name", ctx.container_name,
             *storage, "--auth-mode", "login"]
        )
        if container.returncode != 0:
            return self.fail(f"Could not create container: {_error_text(container)}")

        upload = _az(
            ["az", "storage", "blob", "upload", "--container-name", ctx.container_name,
             "--name", blob_name, "--file", to_native_path(ctx.package_path), *storage,
             "--auth-mode", "login", "--overwrite"],
            timeout=600,
        )
        if upload.returncode != 0:
            return self.fail(f"Could not upload package: {_error_text(upload)}")

        expiry = (now + timedelta(hours=1)).strftime("%Y-%m-%dT%H:%MZ")
        sas = _az(
            ["az", "storage", "blob", "generate-sas", "--container-name", ctx.container_name,
             "--name", blob_name, *storage, "--permissions", "r", "--expiry", expiry,
             "--auth-mode", "login", "--as-user", "--full-uri", "-o", "tsv"]
        )
        sas_url = sas.stdout.strip()
        if sas.returncode != 0 or not sas_url:
            return self.fail(f"Could not generate SAS URL: {_error_text(sas)}")

        deploy = _az(
            ["az", "webapp", "deploy", "--resource-group", ctx.resource_group,
             "--name", str(ctx.logic_app_name), "--src-url", sas_url, "--type", "zip"],
            timeout=900,
        )
        if deploy.returncode != 0:
            return self.fail(f"Deploy from storage failed: {_error_text(deploy)}")
        return self.ok("Deployed from storage upload", method="storage", blob_name=blob_name)


class VerifyDeployment(Step):
    name = "verify-deployment"

    def run(self, ctx: DeploymentContext) -> StepResult:
        result = _az(
            ["az", "logicapp", "show", "--resource-group", ctx.resource_group,
             "--name", str(ctx.logic_app_name), "--query", "defaultHostName", "-o", "tsv"]
        )
        host_name = result.stdout.strip()
        if result.returncode != 0 or not host_name:
            return self.fail(f"Could not read Logic App host name: {_error_text(result)}")
        return self.ok(
            f"Logic App is serving at {host_name}",
            host_name=host_name,
            trigger_url=ctx.trigger_url(host_name),
        )


def default_steps() -> list[Step]:
    """The full workflow deployment, in order."""
    return [
        CheckPrerequisites(),
        EnsureAzureLogin(),
        EnsureLogicExtension(),
        ResolveDeploymentTarget(),
        CreatePackage(),
        DeployPackage(),
        VerifyDeployment(),
    ]
