"""State reconciliation: decide what has to happen to each resource.

Compares each descriptor's declared configuration against the configuration
recorded at the last successful apply, and produces a Plan of per-resource
changes. Only declared configuration is compared (references stay in their
``${...}`` form), so values that are only known after provisioning never
cause spurious drift.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from azprov.planner.descriptors import DescriptorStore, ResourceDescriptor
from azprov.planner.graph import PlanGraph
from azprov.planner.resource_types import replacement_properties
from azprov.planner.scheduler import topological_order
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState

logger = logging.getLogger(__name__)


class ChangeAction(Enum):
    """What the executor has to do with a resource."""

    NOOP = "no-op"
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass
class ResourceChange:
    """Planned change for one resource."""

    address: str
    action: ChangeAction
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    reasons: list[str] = field(default_factory=list)

    def changed_properties(self) -> list[str]:
        """Top-level config keys whose values differ between before and after."""
        return _changed_keys(self.before or {}, self.after or {})


@dataclass
class Plan:
    """Result of one planning pass."""

    graph: PlanGraph
    descriptors: DescriptorStore
    changes: dict[str, ResourceChange]

    def by_action(self, action: ChangeAction) -> list[str]:
        return [addr for addr, change in self.changes.items() if change.action == action]

    def counts(self) -> dict[ChangeAction, int]:
        counts = dict.fromkeys(ChangeAction, 0)
        for change in self.changes.values():
            counts[change.action] += 1
        return counts

    @property
    def has_changes(self) -> bool:
        return any(c.action != ChangeAction.NOOP for c in self.changes.values())

    def summary(self) -> str:
        counts = self.counts()
        return (
            f"{counts[ChangeAction.CREATE]} to create, "
            f"{counts[ChangeAction.UPDATE]} to update, "
            f"{counts[ChangeAction.REPLACE]} to replace, "
            f"{counts[ChangeAction.DELETE]} to delete"
        )


def _changed_keys(before: dict[str, Any], after: dict[str, Any]) -> list[str]:
    return sorted(key for key in set(before) | set(after) if before.get(key) != after.get(key))


class StateReconciler:
    """Diffs desired descriptors against recorded state."""

    def __init__(
        self,
        replacement_rules: Callable[[str], frozenset[str]] = replacement_properties,
    ):
        self.replacement_rules = replacement_rules

    def diff(self, descriptor: ResourceDescriptor, prior: ResourceState | None) -> ResourceChange:
        """Classify a single resource as NOOP, CREATE, UPDATE or REPLACE."""
        address = descriptor.address
        after = descriptor.config

        if prior is None or not prior.resource_id:
            return ResourceChange(address, ChangeAction.CREATE, before=None, after=after)

        before = prior.config
        if prior.status != ProvisioningStatus.READY:
            return ResourceChange(
                address,
                ChangeAction.REPLACE,
                before=before,
                after=after,
                reasons=[f"previous apply left resource {prior.status.value}"],
            )

        changed = _changed_keys(before, after)
        if not changed:
            return ResourceChange(address, ChangeAction.NOOP, before=before, after=after)

        immutable = self.replacement_rules(descriptor.type) | set(descriptor.replace_on)
        forcing = [key for key in changed if key in immutable]
        if forcing:
            return ResourceChange(
                address,
                ChangeAction.REPLACE,
                before=before,
                after=after,
                reasons=[f"{key} forces replacement" for key in forcing],
            )
        return ResourceChange(address, ChangeAction.UPDATE, before=before, after=after)

    def reconcile(
        self, descriptors: DescriptorStore, graph: PlanGraph, state: StackState
    ) -> Plan:
        """Plan changes for every declared resource plus removed ones.

        Replacement is dependent-aware: every transitive dependent of a
        replaced resource is replaced as well, since it cannot outlive the
        resource it is attached to.
        """
        changes: dict[str, ResourceChange] = {}
        for address in topological_order(graph):
            changes[address] = self.diff(descriptors[address], state.get(address))

        # Dependents are followed in both the declared and the recorded graph
        state_graph = PlanGraph.from_state(state)
        pending = [a for a in changes if changes[a].action == ChangeAction.REPLACE]
        while pending:
            address = pending.pop()
            dependents = set(graph.dependents(address))
            if address in state_graph:
                dependents.update(state_graph.dependents(address))
            for dependent in sorted(dependents):
                change = changes.get(dependent)
                if change and change.action in (ChangeAction.NOOP, ChangeAction.UPDATE):
                    change.action = ChangeAction.REPLACE
                    change.reasons.append(f"dependency {address} is replaced")
                    pending.append(dependent)

        for address, prior in state.resources.items():
            if address not in descriptors:
                changes[address] = ResourceChange(
                    address,
                    ChangeAction.DELETE,
                    before=prior.config,
                    after=None,
                    reasons=["no longer declared"],
                )

        plan = Plan(graph=graph, descriptors=descriptors, changes=changes)
        logger.debug(f"Plan: {plan.summary()}")
        return plan
