"""Execution engine models."""

import threading
from dataclasses import dataclass, field
from datetime import datetime

from azprov.planner.errors import DependencyStillPresentError, ProvisioningFailure
from azprov.planner.reconciler import ChangeAction
from azprov.planner.state import ProvisioningStatus

CANCELLED_REASON = "apply cancelled before dispatch"


class CancellationToken:
    """Cooperative cancellation flag shared with the coordinating thread.

    Cancelling stops dispatch of new ready sets; in-flight work finishes.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ResourceOutcome:
    """Final outcome of one resource in an apply."""

    address: str
    action: ChangeAction
    status: ProvisioningStatus
    resource_id: str | None = None
    error: str | None = None
    transient: bool = False
    duration_seconds: float = 0.0


@dataclass
class ApplyReport:
    """Aggregated result of an apply run.

    ``statuses`` holds the current lifecycle status of every declared resource
    and ``transitions`` the order in which those statuses changed.
    """

    outcomes: dict[str, ResourceOutcome] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    delete_failures: dict[str, str] = field(default_factory=dict)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled: bool = False
    statuses: dict[str, ProvisioningStatus] = field(default_factory=dict)
    transitions: list[tuple[str, ProvisioningStatus]] = field(default_factory=list)

    def mark(self, address: str, status: ProvisioningStatus) -> None:
        """Move a resource to a new lifecycle status."""
        self.statuses[address] = status
        self.transitions.append((address, status))

    def record(self, outcome: ResourceOutcome) -> None:
        self.outcomes[outcome.address] = outcome
        self.mark(outcome.address, outcome.status)

    def _with_status(self, status: ProvisioningStatus) -> list[str]:
        return [addr for addr, o in self.outcomes.items() if o.status == status]

    @property
    def ready(self) -> list[str]:
        return self._with_status(ProvisioningStatus.READY)

    @property
    def failed(self) -> list[str]:
        return self._with_status(ProvisioningStatus.FAILED)

    @property
    def skipped(self) -> list[str]:
        return self._with_status(ProvisioningStatus.SKIPPED)

    @property
    def pending(self) -> list[str]:
        """Resources never dispatched because the apply was cancelled."""
        return [
            addr
            for addr, o in self.outcomes.items()
            if o.status == ProvisioningStatus.SKIPPED and o.error == CANCELLED_REASON
        ]

    @property
    def changed(self) -> list[str]:
        """Resources that required an API call and reached READY."""
        return [
            addr
            for addr, o in self.outcomes.items()
            if o.status == ProvisioningStatus.READY and o.action != ChangeAction.NOOP
        ]

    @property
    def success(self) -> bool:
        return not self.failed and not self.delete_failures and not self.cancelled

    def get_elapsed_time(self) -> float:
        if not self.started_at:
            return 0.0
        end = self.completed_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def raise_for_failure(self) -> None:
        """Raise ProvisioningFailure if any resource failed."""
        failures = {addr: self.outcomes[addr].error or "unknown error" for addr in self.failed}
        failures.update(self.delete_failures)
        if failures:
            raise ProvisioningFailure(failures)

    def format_summary(self) -> str:
        return (
            f"Ready: {len(self.ready)}, Failed: {len(self.failed) + len(self.delete_failures)}, "
            f"Skipped: {len(self.skipped)}, Deleted: {len(self.deleted)}"
        )


@dataclass
class DestroyReport:
    """Aggregated result of a destroy run."""

    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    blocked: DependencyStillPresentError | None = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.failed and self.blocked is None and not self.cancelled

    def format_summary(self) -> str:
        summary = f"Deleted: {len(self.deleted)}, Failed: {len(self.failed)}"
        if self.blocked:
            summary += f", Blocked: {self.blocked.address}"
        return summary
