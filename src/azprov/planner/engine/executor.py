"""Provisioning executor - applies a Plan against a provider.

Apply phases:
1. Teardown: resources planned for REPLACE (and removed resources recorded
   as depending on them) are deleted bottom-up.
2. Provision: ready sets from the scheduler are provisioned one set at a
   time; resources inside a set run concurrently on a thread pool.
3. Cleanup: remaining removed resources are deleted bottom-up, after their
   former dependents have been updated.

Semantics are forward-only: nothing that reached READY is rolled back when
a later resource fails.
"""

import dataclasses
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any

from azprov.planner.descriptors import ResourceDescriptor
from azprov.planner.engine.destroy import DestroyRunner
from azprov.planner.engine.models import (
    CANCELLED_REASON,
    ApplyReport,
    CancellationToken,
    ResourceOutcome,
)
from azprov.planner.engine.operations import ResourceOperator
from azprov.planner.errors import ExternalApiError, PlanError
from azprov.planner.graph import PlanGraph
from azprov.planner.providers.base import OperationResult, OperationStatus, ProvisioningProvider
from azprov.planner.reconciler import ChangeAction, Plan
from azprov.planner.references import interpolate, lookup_attribute
from azprov.planner.scheduler import TopologicalScheduler
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState, StateStore

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class _WorkerResult:
    address: str
    result: OperationResult | None = None
    error: str | None = None
    transient: bool = False
    duration: float = 0.0


class ProvisioningExecutor:
    """Executes plans with batch parallelism over independent resources."""

    def __init__(
        self,
        provider: ProvisioningProvider,
        state_store: StateStore | None = None,
        max_workers: int = 10,
        default_timeout: float = 1800.0,
        resource_timeouts: dict[str, float] | None = None,
        poll_interval: float = 10.0,
        progress_callback: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize executor.

        Args:
            provider: Provisioning API binding
            state_store: Where to persist state (None keeps state in memory only)
            max_workers: Maximum parallel workers per ready set
            default_timeout: Per-resource timeout in seconds
            resource_timeouts: Per-resource-type timeout overrides
            poll_interval: Seconds between status polls
            progress_callback: Optional progress callback
        """
        self.provider = provider
        self.state_store = state_store
        self.max_workers = max_workers
        self.progress_callback = progress_callback
        self.operator = ResourceOperator(
            provider,
            default_timeout=default_timeout,
            resource_timeouts=resource_timeouts,
            poll_interval=poll_interval,
            sleep=sleep,
            clock=clock,
        )
        self.destroyer = DestroyRunner(
            self.operator,
            state_store=state_store,
            max_workers=max_workers,
            progress_callback=progress_callback,
        )

    def _progress(self, message: str) -> None:
        logger.debug(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _save(self, state: StackState) -> None:
        if self.state_store:
            self.state_store.save(state)

    def apply(
        self,
        plan: Plan,
        state: StackState,
        outputs: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ApplyReport:
        """Apply a plan.

        Args:
            plan: Plan from the StateReconciler
            state: Last known state (mutated in place and persisted)
            outputs: Stack output expressions to resolve after provisioning
            cancel_token: Optional cancellation token

        Returns:
            ApplyReport distinguishing ready, failed and skipped resources
        """
        report = ApplyReport(started_at=datetime.now())
        teardown_failed: dict[str, str] = {}

        replaced = set(plan.by_action(ChangeAction.REPLACE))
        removed = set(plan.by_action(ChangeAction.DELETE))

        state_graph = PlanGraph.from_state(state)
        early_removals = {
            dependent
            for address in replaced
            if address in state_graph
            for dependent in state_graph.transitive_dependents(address)
            if dependent in removed
        }

        if replaced:
            teardown_failed = self._teardown(
                replaced | early_removals, state, report, cancel_token, replaced
            )

        self._provision(plan, state, report, teardown_failed, cancel_token)

        late_removals = removed - early_removals
        if late_removals and not report.cancelled:
            self._teardown(late_removals, state, report, cancel_token, replaced=set())

        if outputs:
            state.outputs = self.resolve_outputs(outputs, state)
        self._save(state)

        report.completed_at = datetime.now()
        logger.info(f"Apply finished: {report.format_summary()}")
        return report

    def _teardown(
        self,
        addresses: set[str],
        state: StackState,
        report: ApplyReport,
        cancel_token: CancellationToken | None,
        replaced: set[str],
    ) -> dict[str, str]:
        """Delete addresses bottom-up; returns errors for replaced resources."""
        destroy_report = self.destroyer.run(
            state, targets=addresses, include_dependents=False, cancel_token=cancel_token
        )
        failures = dict(destroy_report.failed)
        if destroy_report.blocked:
            failures[destroy_report.blocked.address] = str(destroy_report.blocked)
        if destroy_report.cancelled:
            report.cancelled = True

        for address in addresses:
            if address in destroy_report.deleted or address in failures:
                continue
            if address in state.resources:
                failures[address] = "teardown did not complete"

        replaced_failures = {}
        for address, error in failures.items():
            if address in replaced:
                replaced_failures[address] = error
            else:
                report.delete_failures[address] = error
        report.deleted.extend(a for a in destroy_report.deleted if a not in replaced)
        return replaced_failures

    def _provision(
        self,
        plan: Plan,
        state: StackState,
        report: ApplyReport,
        teardown_failed: dict[str, str],
        cancel_token: CancellationToken | None,
    ) -> None:
        scheduler = TopologicalScheduler(plan.graph)
        for address in plan.graph.nodes:
            report.mark(address, ProvisioningStatus.PLANNED)

        while True:
            if (cancel_token and cancel_token.cancelled) or report.cancelled:
                report.cancelled = True
                for address in scheduler.withdraw():
                    report.record(
                        ResourceOutcome(
                            address,
                            plan.changes[address].action,
                            ProvisioningStatus.SKIPPED,
                            error=CANCELLED_REASON,
                        )
                    )
                break

            batch = scheduler.next_batch()
            if not batch:
                break

            to_dispatch: dict[str, ResourceDescriptor] = {}
            for address in batch:
                change = plan.changes[address]
                if address in teardown_failed:
                    self._fail(address, plan, teardown_failed[address], scheduler, report)
                elif change.action == ChangeAction.NOOP:
                    self._record_noop(address, plan, state)
                    scheduler.mark_ready(address)
                    report.record(
                        ResourceOutcome(
                            address,
                            ChangeAction.NOOP,
                            ProvisioningStatus.READY,
                            resource_id=state.resources[address].resource_id,
                        )
                    )
                else:
                    try:
                        to_dispatch[address] = self._resolve(plan.descriptors[address], state)
                    except KeyError as e:
                        self._fail(
                            address,
                            plan,
                            f"unknown attribute {e.args[0]} in reference",
                            scheduler,
                            report,
                        )

            if not to_dispatch:
                continue

            for address in to_dispatch:
                report.mark(address, ProvisioningStatus.IN_PROGRESS)
                verb = "Updating" if plan.changes[address].action == ChangeAction.UPDATE else "Creating"
                self._progress(f"→ {verb} {address}")

            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(
                        self._provision_one,
                        descriptor,
                        plan.changes[address].action,
                        self._prior_id(address, state),
                    ): address
                    for address, descriptor in to_dispatch.items()
                }
                results = [future.result() for future in as_completed(futures)]

            for worker in sorted(results, key=lambda w: w.address):
                self._complete(worker, plan, state, scheduler, report)
            self._save(state)

    def _provision_one(
        self, descriptor: ResourceDescriptor, action: ChangeAction, resource_id: str | None
    ) -> _WorkerResult:
        """Worker body; must not touch shared state."""
        start_time = time.time()
        address = descriptor.address
        try:
            result = self.operator.provision(descriptor, action, resource_id)
        except ExternalApiError as e:
            return _WorkerResult(
                address, error=str(e), transient=e.transient, duration=time.time() - start_time
            )
        except PlanError as e:
            return _WorkerResult(address, error=str(e), duration=time.time() - start_time)
        except Exception as e:
            logger.exception(f"Unexpected error provisioning {address}")
            return _WorkerResult(
                address, error=f"{type(e).__name__}: {e}", duration=time.time() - start_time
            )

        duration = time.time() - start_time
        if result.status == OperationStatus.SUCCEEDED:
            return _WorkerResult(address, result=result, duration=duration)
        return _WorkerResult(
            address,
            result=result,
            error=result.error or f"operation ended with status {result.status.value}",
            duration=duration,
        )

    def _complete(
        self,
        worker: _WorkerResult,
        plan: Plan,
        state: StackState,
        scheduler: TopologicalScheduler,
        report: ApplyReport,
    ) -> None:
        address = worker.address
        action = plan.changes[address].action
        descriptor = plan.descriptors[address]
        resource_id = (worker.result.resource_id if worker.result else None) or self._prior_id(
            address, state
        )

        if worker.error is None and worker.result is not None:
            state.put(
                ResourceState(
                    type=descriptor.type,
                    name=descriptor.name,
                    status=ProvisioningStatus.READY,
                    resource_id=resource_id,
                    config=descriptor.config,
                    outputs=worker.result.outputs,
                    dependencies=list(plan.graph.dependencies(address)),
                )
            )
            scheduler.mark_ready(address)
            report.record(
                ResourceOutcome(
                    address,
                    action,
                    ProvisioningStatus.READY,
                    resource_id=resource_id,
                    duration_seconds=worker.duration,
                )
            )
            self._progress(f"✓ {address} ready ({worker.duration:.1f}s)")
            return

        prior = state.get(address)
        if action == ChangeAction.UPDATE and prior is not None:
            # Prior config stays recorded so the next plan retries the update
            prior.error = worker.error
            prior.touch()
        elif resource_id:
            state.put(
                ResourceState(
                    type=descriptor.type,
                    name=descriptor.name,
                    status=ProvisioningStatus.FAILED,
                    resource_id=resource_id,
                    config=descriptor.config,
                    outputs=prior.outputs if prior else {},
                    dependencies=list(plan.graph.dependencies(address)),
                    error=worker.error,
                )
            )
        self._fail(
            address,
            plan,
            worker.error or "unknown error",
            scheduler,
            report,
            resource_id=resource_id,
            transient=worker.transient,
            duration=worker.duration,
        )

    def _fail(
        self,
        address: str,
        plan: Plan,
        error: str,
        scheduler: TopologicalScheduler,
        report: ApplyReport,
        resource_id: str | None = None,
        transient: bool = False,
        duration: float = 0.0,
    ) -> None:
        report.record(
            ResourceOutcome(
                address,
                plan.changes[address].action,
                ProvisioningStatus.FAILED,
                resource_id=resource_id,
                error=error,
                transient=transient,
                duration_seconds=duration,
            )
        )
        self._progress(f"✗ {address} failed: {error}")
        for skipped in scheduler.mark_failed(address):
            report.record(
                ResourceOutcome(
                    skipped,
                    plan.changes[skipped].action,
                    ProvisioningStatus.SKIPPED,
                    error=f"dependency {address} failed",
                )
            )
            self._progress(f"⊗ {skipped} skipped (depends on {address})")

    def _record_noop(self, address: str, plan: Plan, state: StackState) -> None:
        """Refresh recorded dependencies of an unchanged resource."""
        resource = state.resources[address]
        resource.dependencies = list(plan.graph.dependencies(address))

    @staticmethod
    def _prior_id(address: str, state: StackState) -> str | None:
        prior = state.get(address)
        return prior.resource_id if prior else None

    @staticmethod
    def _resolve(descriptor: ResourceDescriptor, state: StackState) -> ResourceDescriptor:
        """Interpolate references with the outputs of already-ready dependencies.

        Raises:
            KeyError: If a referenced attribute is not among the outputs
        """

        def lookup(address: str, attribute: str) -> Any:
            dependency = state.resources[address]
            if attribute == "id" and dependency.resource_id:
                return dependency.outputs.get("id", dependency.resource_id)
            return lookup_attribute(dependency.outputs, attribute)

        return dataclasses.replace(descriptor, config=interpolate(descriptor.config, lookup))

    @staticmethod
    def resolve_outputs(expressions: dict[str, str], state: StackState) -> dict[str, Any]:
        """Resolve stack output expressions against recorded outputs.

        Outputs whose resources are not ready are left out.
        """
        resolved: dict[str, Any] = {}

        def lookup(address: str, attribute: str) -> Any:
            resource = state.resources[address]
            if resource.status != ProvisioningStatus.READY:
                raise KeyError(address)
            if attribute == "id":
                return resource.outputs.get("id", resource.resource_id)
            return lookup_attribute(resource.outputs, attribute)

        for name, expression in expressions.items():
            try:
                resolved[name] = interpolate(expression, lookup)
            except KeyError:
                logger.debug(f"Output {name} not available yet")
        return resolved
