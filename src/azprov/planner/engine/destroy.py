"""Destroy planning and execution.

Destruction is the mirror image of creation: the reverse topological order
of the recorded state graph, so dependents are removed before the resources
they depend on.
"""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed

from azprov.planner.engine.models import CancellationToken, DestroyReport
from azprov.planner.engine.operations import ResourceOperator
from azprov.planner.errors import DependencyStillPresentError, PlanError
from azprov.planner.graph import PlanGraph
from azprov.planner.providers.base import OperationStatus
from azprov.planner.scheduler import ready_sets
from azprov.planner.state import StackState, StateStore

logger = logging.getLogger(__name__)


class DestroyPlanner:
    """Computes bottom-up deletion order from the last known state."""

    def __init__(self, state: StackState):
        self.state = state
        self.graph = PlanGraph.from_state(state)

    def select(self, targets: Iterable[str] | None = None, include_dependents: bool = True) -> set[str]:
        """Resolve the set of addresses to delete.

        Args:
            targets: Addresses to destroy (None means everything recorded)
            include_dependents: Also destroy every recorded transitive dependent

        Raises:
            PlanError: If a target is not recorded in the state
        """
        if targets is None:
            return set(self.graph.nodes)

        selected: set[str] = set()
        for target in targets:
            if target not in self.graph:
                raise PlanError(f"Resource {target} is not recorded in the state")
            selected.add(target)
            if include_dependents:
                selected |= self.graph.transitive_dependents(target)
        return selected

    def batches(
        self, targets: Iterable[str] | None = None, include_dependents: bool = True
    ) -> list[list[str]]:
        """Deletion batches; resources within a batch are independent."""
        subgraph = self.graph.subgraph(self.select(targets, include_dependents))
        return [sorted(batch, reverse=True) for batch in reversed(ready_sets(subgraph))]

    def order(
        self, targets: Iterable[str] | None = None, include_dependents: bool = True
    ) -> list[str]:
        """Flat deletion order: the exact reverse of a valid creation order."""
        return [addr for batch in self.batches(targets, include_dependents) for addr in batch]


class DestroyRunner:
    """Issues deletes batch by batch and keeps the state file in sync."""

    def __init__(
        self,
        operator: ResourceOperator,
        state_store: StateStore | None = None,
        max_workers: int = 10,
        progress_callback: Callable[[str], None] | None = None,
    ):
        self.operator = operator
        self.state_store = state_store
        self.max_workers = max_workers
        self.progress_callback = progress_callback

    def _progress(self, message: str) -> None:
        logger.debug(message)
        if self.progress_callback:
            self.progress_callback(message)

    def run(
        self,
        state: StackState,
        targets: Iterable[str] | None = None,
        include_dependents: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> DestroyReport:
        """Delete resources bottom-up.

        Stops at the first resource that is still referenced by a recorded
        dependent (for example because that dependent failed to delete) and
        records a DependencyStillPresentError without calling the provider.
        """
        report = DestroyReport()
        batches = DestroyPlanner(state).batches(targets, include_dependents)

        for batch in batches:
            if cancel_token and cancel_token.cancelled:
                report.cancelled = True
                break

            for address in batch:
                present = state.dependents_of(address)
                if present:
                    report.blocked = DependencyStillPresentError(address, present)
                    self._progress(f"✗ {report.blocked}")
                    self._save(state)
                    return report

            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._delete_one, address, state): address
                    for address in batch
                }
                results = {futures[f]: f.result() for f in as_completed(futures)}

            for address in batch:
                error = results[address]
                if error is None:
                    state.remove(address)
                    report.deleted.append(address)
                    self._progress(f"✓ Destroyed {address}")
                else:
                    failed = state.get(address)
                    if failed:
                        failed.error = error
                    report.failed[address] = error
                    self._progress(f"✗ Failed to destroy {address}: {error}")
            self._save(state)

        return report

    def _delete_one(self, address: str, state: StackState) -> str | None:
        """Delete one resource; returns an error message or None on success."""
        resource = state.get(address)
        if resource is None:
            return None
        if not resource.resource_id:
            # Never created on the provider side
            return None

        self._progress(f"→ Destroying {address}")
        try:
            result = self.operator.destroy(address, resource.type, resource.resource_id)
        except PlanError as e:
            return str(e)
        except Exception as e:
            logger.exception(f"Unexpected error destroying {address}")
            return f"{type(e).__name__}: {e}"

        if result.status == OperationStatus.NOT_FOUND:
            return None
        return result.error or f"delete finished with status {result.status.value}"

    def _save(self, state: StackState) -> None:
        if self.state_store:
            self.state_store.save(state)
