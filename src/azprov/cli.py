"""Command-line interface for azprov.

Exit codes: 0 on success, 1 on any resource failure, validation error or
declined confirmation.
"""

import json
import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from azprov import __version__
from azprov.click_group import AzprovGroup
from azprov.config_manager import ConfigError, ConfigManager, ProvisionerConfig
from azprov.deployment import DeploymentContext, DeploymentPipeline, StepResult, default_steps
from azprov.planner.engine import CancellationToken, DestroyPlanner
from azprov.planner.errors import PlanError
from azprov.planner.orchestrator import StackOrchestrator
from azprov.planner.providers import get_provider
from azprov.planner.scheduler import ready_sets
from azprov.prerequisites import PrerequisiteChecker
from azprov.reporter import ProvisioningReporter

logger = logging.getLogger(__name__)


def _load_config(ctx: click.Context) -> ProvisionerConfig:
    try:
        return ConfigManager.load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _orchestrator(config: ProvisionerConfig, reporter: ProvisioningReporter) -> StackOrchestrator:
    provider_kwargs = {}
    if config.provider == "azure_cli":
        provider_kwargs = {
            "command_timeout": config.default_timeout,
            "resource_timeouts": config.resource_timeouts,
        }
    return StackOrchestrator(
        stack_file=Path(config.stack_file),
        state_file=Path(config.state_file),
        provider=get_provider(config.provider, **provider_kwargs),
        max_workers=config.max_workers,
        default_timeout=config.default_timeout,
        resource_timeouts=config.resource_timeouts,
        poll_interval=config.poll_interval,
        progress_callback=reporter.report_progress,
    )


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """First Ctrl-C cancels dispatch of new work; in-flight operations finish."""

    def handler(signum, frame):
        click.echo("\nCancelling: waiting for in-flight operations to finish...", err=True)
        token.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@click.group(
    cls=AzprovGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--config", "config_path", type=click.Path(), help="Path to azprov.toml")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.pass_context
@click.version_option(version=__version__)
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """azprov - declarative provisioning for Azure Logic App stacks.

    \b
    COMMANDS:
        init             Write azprov.toml and check prerequisites
        validate         Check the stack file and its dependency graph
        plan             Show what apply would change
        apply            Create, update and replace resources
        destroy          Delete resources in reverse dependency order
        output           Show stack outputs
        deploy-workflow  Package and deploy the Logic App workflow

    \b
    CONFIGURATION:
        Config file: ./azprov.toml
        Environment overrides: RESOURCE_GROUP, LOGIC_APP_NAME
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


@main.command()
@click.option(
    "--provider",
    type=click.Choice(["azure_cli", "simulated"]),
    default="azure_cli",
    show_default=True,
)
@click.option("--resource-group", help="Resource group for workflow deployment")
@click.option("--stack-file", default="stack.yaml", show_default=True)
@click.pass_context
def init(ctx: click.Context, provider: str, resource_group: str | None, stack_file: str) -> None:
    """Write azprov.toml and check prerequisites."""
    config = ProvisionerConfig(provider=provider, stack_file=stack_file)
    if resource_group:
        config.resource_group = resource_group
    try:
        config.validate()
        path = ConfigManager.save_config(config, ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Wrote {path}")

    if provider == "azure_cli":
        result = PrerequisiteChecker.check_all()
        if not result.all_available:
            click.echo(
                PrerequisiteChecker.format_missing_message(result.missing, result.platform_name),
                err=True,
            )
            sys.exit(1)
        click.echo(f"Prerequisites OK ({result.platform_name})")


@main.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check the stack file and its dependency graph without side effects."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    try:
        stack, graph = _orchestrator(config, reporter).validate()
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    click.echo(
        f"Stack is valid: {len(graph)} resources, {len(graph.edges)} dependencies, "
        f"{len(stack.outputs)} outputs"
    )
    for index, batch in enumerate(ready_sets(graph), start=1):
        click.echo(f"  {index}. {', '.join(batch)}")


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """Show what apply would change."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    try:
        stack_plan, _, _ = _orchestrator(config, reporter).plan()
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)
    reporter.report_plan(stack_plan)


@main.command()
@click.option("--auto-approve", is_flag=True, help="Skip the confirmation prompt")
@click.option("--dry-run", is_flag=True, help="Simulate the apply without calling Azure")
@click.pass_context
def apply(ctx: click.Context, auto_approve: bool, dry_run: bool) -> None:
    """Create, update and replace resources to match the stack."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    orchestrator = _orchestrator(config, reporter)

    try:
        stack_plan, stack, state = orchestrator.plan()
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    reporter.report_plan(stack_plan)
    if stack_plan.has_changes and not (auto_approve or dry_run):
        if not click.confirm("Apply these changes?", default=False):
            click.echo("Apply cancelled.")
            sys.exit(1)

    token = CancellationToken()
    try:
        with _cancel_on_interrupt(token):
            report = orchestrator.apply(stack_plan, stack, state, dry_run=dry_run, cancel_token=token)
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    reporter.report_apply(report)
    sys.exit(0 if report.success else 1)


@main.command()
@click.option("--auto-approve", is_flag=True, help="Skip the confirmation prompt")
@click.option(
    "--target",
    "targets",
    multiple=True,
    help="Destroy only this address and its dependents (repeatable)",
)
@click.pass_context
def destroy(ctx: click.Context, auto_approve: bool, targets: tuple[str, ...]) -> None:
    """Delete recorded resources in reverse dependency order."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    orchestrator = _orchestrator(config, reporter)
    selected = list(targets) or None

    try:
        order = DestroyPlanner(orchestrator.state_store.load()).order(selected)
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    reporter.report_destroy_plan(order)
    if not order:
        return
    if not auto_approve and not click.confirm(
        f"Destroy {len(order)} resource(s)?", default=False
    ):
        click.echo("Destroy cancelled.")
        sys.exit(1)

    token = CancellationToken()
    try:
        with _cancel_on_interrupt(token):
            report = orchestrator.destroy(selected, cancel_token=token)
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    reporter.report_destroy(report)
    sys.exit(0 if report.success else 1)


@main.command()
@click.argument("name", required=False)
@click.option("--raw", is_flag=True, help="Print the bare value (requires NAME)")
@click.option("--json", "as_json", is_flag=True, help="Print outputs as JSON")
@click.pass_context
def output(ctx: click.Context, name: str | None, raw: bool, as_json: bool) -> None:
    """Show stack outputs recorded by the last apply."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    try:
        outputs = _orchestrator(config, reporter).outputs()
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    if name is not None:
        if name not in outputs:
            click.echo(f"Error: output '{name}' not found", err=True)
            sys.exit(1)
        value = outputs[name]
        if raw:
            click.echo(value if isinstance(value, str) else json.dumps(value))
        else:
            click.echo(json.dumps(value) if as_json else f"{name} = {value!r}")
        return

    if raw:
        click.echo("Error: --raw requires an output NAME", err=True)
        sys.exit(1)
    if as_json:
        click.echo(json.dumps(outputs, indent=2, sort_keys=True))
        return
    if not outputs:
        click.echo("No outputs recorded. Run 'azprov apply' first.")
        return
    for key in sorted(outputs):
        click.echo(f"{key} = {outputs[key]!r}")


@main.command(name="deploy-workflow")
@click.pass_context
def deploy_workflow(ctx: click.Context) -> None:
    """Package the workflow source and deploy it to the Logic App."""
    config = _load_config(ctx)
    reporter = ProvisioningReporter(verbose=ctx.obj["verbose"])
    try:
        outputs = _orchestrator(config, reporter).outputs()
    except PlanError as e:
        reporter.report_error(str(e))
        sys.exit(1)

    deploy_ctx = DeploymentContext.from_config(config, outputs)

    def show(step: StepResult) -> None:
        mark = "[green]✓[/green]" if step.success else "[red]✗[/red]"
        reporter.console.print(f"{mark} {step.name}: {step.message}", highlight=False)
        if step.details.get("warning"):
            reporter.report_warning(step.details["warning"])

    result = DeploymentPipeline(default_steps(), progress_callback=show).run(deploy_ctx)

    if not result.success:
        reporter.report_error(result.format_summary())
        sys.exit(1)

    click.echo(result.format_summary())
    trigger_url = result.detail("trigger_url")
    if trigger_url:
        click.echo(f"Trigger URL: {trigger_url}")


if __name__ == "__main__":
    main()
