"""Topological scheduling of resource operations (Kahn's algorithm).

The scheduler hands out "ready sets": batches of resources whose
dependencies have all reached READY and which can therefore be provisioned
concurrently. It is the sole owner and writer of the in-degree counters and
must only be driven from the coordinating thread.
"""

from azprov.planner.errors import CyclicDependencyError
from azprov.planner.graph import PlanGraph


def ready_sets(graph: PlanGraph) -> list[list[str]]:
    """Compute the static ready-set sequence for a graph.

    Repeatedly peels all zero in-degree nodes. Within a set the order is
    irrelevant; it is sorted for stable output.

    Raises:
        CyclicDependencyError: If some nodes can never become ready
    """
    scheduler = TopologicalScheduler(graph)
    batches: list[list[str]] = []
    while True:
        batch = scheduler.next_batch()
        if not batch:
            break
        batches.append(batch)
        for address in batch:
            scheduler.mark_ready(address)

    if scheduler.has_pending:
        cycle = graph.subgraph(scheduler.pending).find_cycle() or sorted(scheduler.pending)
        raise CyclicDependencyError(cycle)
    return batches


def topological_order(graph: PlanGraph) -> list[str]:
    """Flattened ready sets: a valid creation order."""
    return [address for batch in ready_sets(graph) for address in batch]


class TopologicalScheduler:
    """Incremental Kahn scheduler.

    Usage:
        scheduler = TopologicalScheduler(graph)
        while (batch := scheduler.next_batch()):
            ... provision batch ...
            scheduler.mark_ready(addr) / scheduler.mark_failed(addr)
    """

    def __init__(self, graph: PlanGraph):
        self.graph = graph
        self._in_degree: dict[str, int] = {
            node: len(graph.dependencies(node)) for node in graph.nodes
        }
        self._pending: set[str] = set(graph.nodes)
        self._dispatched: set[str] = set()

    @property
    def pending(self) -> set[str]:
        """Nodes that have not reached a final outcome yet."""
        return set(self._pending)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def next_batch(self) -> list[str]:
        """Return (and mark dispatched) every pending node with no unmet dependency."""
        batch = sorted(
            node
            for node in self._pending
            if self._in_degree[node] == 0 and node not in self._dispatched
        )
        self._dispatched.update(batch)
        return batch

    def mark_ready(self, address: str) -> None:
        """Record that a node reached READY, unblocking its dependents."""
        self._pending.discard(address)
        for dependent in self.graph.dependents(address):
            self._in_degree[dependent] -= 1

    def mark_failed(self, address: str) -> list[str]:
        """Record a failure and withdraw every transitive dependent.

        Returns:
            Sorted addresses of the dependents that must be skipped
        """
        self._pending.discard(address)
        skipped = sorted(self.graph.transitive_dependents(address) & self._pending)
        self._pending.difference_update(skipped)
        return skipped

    def withdraw(self) -> list[str]:
        """Withdraw all undispatched pending nodes (used on cancellation)."""
        withdrawn = sorted(self._pending - self._dispatched)
        self._pending.difference_update(withdrawn)
        return withdrawn
