"""Dependency graph construction and queries.

Edges point from a dependent to its dependency: ``(dependent, dependency)``.
A PlanGraph is built once per planning pass and is never mutated; the
scheduler keeps its own in-degree counters.
"""

import logging
from collections.abc import Iterable
from enum import Enum

from azprov.planner.descriptors import DescriptorStore
from azprov.planner.errors import CyclicDependencyError, UnresolvedReferenceError
from azprov.planner.state import StackState

logger = logging.getLogger(__name__)


class _Mark(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


class PlanGraph:
    """Directed graph over resource addresses.

    Node order is the declaration order, which keeps traversals and
    diagnostics deterministic.
    """

    def __init__(self, dependencies: dict[str, Iterable[str]]):
        self._dependencies: dict[str, tuple[str, ...]] = {
            node: tuple(dict.fromkeys(deps)) for node, deps in dependencies.items()
        }
        self._dependents: dict[str, list[str]] = {node: [] for node in self._dependencies}
        for node, deps in self._dependencies.items():
            for dep in deps:
                if dep not in self._dependents:
                    raise UnresolvedReferenceError(node, dep)
                self._dependents[dep].append(node)

    @property
    def nodes(self) -> list[str]:
        return list(self._dependencies)

    @property
    def edges(self) -> set[tuple[str, str]]:
        """All (dependent, dependency) pairs."""
        return {(node, dep) for node, deps in self._dependencies.items() for dep in deps}

    def __contains__(self, address: object) -> bool:
        return address in self._dependencies

    def __len__(self) -> int:
        return len(self._dependencies)

    def dependencies(self, address: str) -> tuple[str, ...]:
        """Direct dependencies of a node."""
        return self._dependencies[address]

    def dependents(self, address: str) -> list[str]:
        """Direct dependents of a node."""
        return list(self._dependents[address])

    def transitive_dependents(self, address: str) -> set[str]:
        """Every node that depends on ``address``, directly or indirectly."""
        found: set[str] = set()
        frontier = list(self._dependents[address])
        while frontier:
            node = frontier.pop()
            if node in found:
                continue
            found.add(node)
            frontier.extend(self._dependents[node])
        return found

    def subgraph(self, addresses: Iterable[str]) -> "PlanGraph":
        """Graph restricted to ``addresses``; edges leaving the set are dropped."""
        keep = set(addresses)
        return PlanGraph(
            {
                node: [dep for dep in deps if dep in keep]
                for node, deps in self._dependencies.items()
                if node in keep
            }
        )

    def find_cycle(self) -> list[str] | None:
        """Return the first cycle found as a path ``[a, b, ..., a]``, or None.

        Depth-first traversal with three-colour marking; the first back-edge
        (an edge into a node that is still in progress) closes the cycle.
        """
        marks = dict.fromkeys(self._dependencies, _Mark.UNVISITED)
        path: list[str] = []

        def visit(node: str) -> list[str] | None:
            marks[node] = _Mark.IN_PROGRESS
            path.append(node)
            for dep in self._dependencies[node]:
                if marks[dep] is _Mark.IN_PROGRESS:
                    return path[path.index(dep) :] + [dep]
                if marks[dep] is _Mark.UNVISITED:
                    cycle = visit(dep)
                    if cycle:
                        return cycle
            path.pop()
            marks[node] = _Mark.DONE
            return None

        for node in self._dependencies:
            if marks[node] is _Mark.UNVISITED:
                cycle = visit(node)
                if cycle:
                    return cycle
        return None

    @classmethod
    def from_state(cls, state: StackState) -> "PlanGraph":
        """Rebuild the graph of recorded resources from their recorded dependencies.

        Dependencies on resources that are no longer recorded are ignored.
        """
        return cls(
            {
                address: [dep for dep in res.dependencies if dep in state.resources]
                for address, res in state.resources.items()
            }
        )


class DependencyGraphBuilder:
    """Resolves descriptor references into a validated PlanGraph."""

    def build(self, descriptors: DescriptorStore) -> PlanGraph:
        """Build the dependency DAG for a set of descriptors.

        Raises:
            UnresolvedReferenceError: If a reference names an undeclared resource
            CyclicDependencyError: If the references form a cycle
        """
        dependencies: dict[str, tuple[str, ...]] = {}
        for descriptor in descriptors:
            refs = descriptor.references
            for ref in refs:
                if ref not in descriptors:
                    raise UnresolvedReferenceError(descriptor.address, ref)
            dependencies[descriptor.address] = refs

        graph = PlanGraph(dependencies)
        cycle = graph.find_cycle()
        if cycle:
            raise CyclicDependencyError(cycle)

        logger.debug(f"Built dependency graph: {len(graph)} nodes, {len(graph.edges)} edges")
        return graph
