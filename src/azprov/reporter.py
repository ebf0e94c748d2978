"""Console reporter - renders plans, progress and summaries with rich."""

from rich.console import Console
from rich.table import Table

from azprov.planner.engine import ApplyReport, DestroyReport
from azprov.planner.reconciler import ChangeAction, Plan
from azprov.planner.state import ProvisioningStatus

_ACTION_STYLES = {
    ChangeAction.NOOP: ("·", "dim"),
    ChangeAction.CREATE: ("+", "green"),
    ChangeAction.UPDATE: ("~", "yellow"),
    ChangeAction.REPLACE: ("-/+", "magenta"),
    ChangeAction.DELETE: ("-", "red"),
}

_STATUS_STYLES = {
    ProvisioningStatus.READY: ("✓", "green"),
    ProvisioningStatus.FAILED: ("✗", "red"),
    ProvisioningStatus.SKIPPED: ("⊗", "yellow"),
    ProvisioningStatus.IN_PROGRESS: ("⟳", "cyan"),
    ProvisioningStatus.PLANNED: ("□", "dim"),
    ProvisioningStatus.UNPLANNED: ("□", "dim"),
}


class ProvisioningReporter:
    """Reports plans and apply/destroy results."""

    def __init__(self, console: Console | None = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def report_plan(self, plan: Plan) -> None:
        """Print the plan as a table, one row per resource."""
        table = Table(title="Execution Plan")
        table.add_column("Action", style="bold")
        table.add_column("Resource", style="cyan")
        table.add_column("Details", style="dim")

        for address, change in plan.changes.items():
            if change.action == ChangeAction.NOOP and not self.verbose:
                continue
            symbol, color = _ACTION_STYLES[change.action]
            details = list(change.reasons)
            if change.action == ChangeAction.UPDATE:
                details.append(f"changed: {', '.join(change.changed_properties())}")
            table.add_row(
                f"[{color}]{symbol} {change.action.value}[/{color}]",
                address,
                "; ".join(details),
            )

        if table.row_count:
            self.console.print(table)
        else:
            self.console.print("[green]No changes.[/green] Infrastructure matches the stack.")
        self.console.print(f"[bold]Plan:[/bold] {plan.summary()}")

    def report_progress(self, message: str) -> None:
        """Progress callback for the executor and destroy runner."""
        self.console.print(message, highlight=False)

    def report_apply(self, report: ApplyReport) -> None:
        """Print the final apply summary."""
        self.console.print()
        table = Table(title="Apply Summary")
        table.add_column("Status", style="bold")
        table.add_column("Resource", style="cyan")
        table.add_column("Action")
        table.add_column("Details", style="dim")

        for address, outcome in report.outcomes.items():
            symbol, color = _STATUS_STYLES.get(outcome.status, ("?", "white"))
            if outcome.action == ChangeAction.NOOP and not self.verbose:
                continue
            details = outcome.error or (outcome.resource_id or "")
            if outcome.transient:
                details += " (transient, re-run apply)"
            table.add_row(
                f"[{color}]{symbol} {outcome.status.value}[/{color}]",
                address,
                outcome.action.value,
                details,
            )
        for address in report.deleted:
            table.add_row("[red]- deleted[/red]", address, "delete", "")
        for address, error in report.delete_failures.items():
            table.add_row("[red]✗ failed[/red]", address, "delete", error)

        if table.row_count:
            self.console.print(table)

        elapsed = report.get_elapsed_time()
        color = "green" if report.success else "red"
        self.console.print(f"[bold {color}]{report.format_summary()}[/bold {color}]")
        if report.cancelled:
            self.console.print(
                f"[yellow]Apply cancelled; {len(report.pending)} resource(s) not dispatched[/yellow]"
            )
        self.console.print(f"[bold]Total Time:[/bold] {elapsed:.1f}s")

    def report_destroy_plan(self, order: list[str]) -> None:
        if not order:
            self.console.print("[green]Nothing to destroy.[/green]")
            return
        self.console.print("[bold]Resources will be destroyed in this order:[/bold]")
        for address in order:
            self.console.print(f"  [red]-[/red] {address}")

    def report_destroy(self, report: DestroyReport) -> None:
        color = "green" if report.success else "red"
        self.console.print(f"[bold {color}]{report.format_summary()}[/bold {color}]")
        for address, error in report.failed.items():
            self.console.print(f"  [red]✗[/red] {address}")
            self.console.print(f"    [dim]{error}[/dim]")
        if report.blocked:
            self.report_error(str(report.blocked))

    def report_error(self, message: str) -> None:
        """Report an error."""
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def report_warning(self, message: str) -> None:
        """Report a warning."""
        self.console.print(f"[yellow]Warning:[/yellow] {message}")
