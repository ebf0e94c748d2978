"""Declarative provisioning planner.

Pipeline: descriptors -> dependency graph -> reconciliation plan ->
batched concurrent apply (or bottom-up destroy), with state persisted in
between.
"""

from azprov.planner.descriptors import (
    DescriptorStore,
    ResourceDescriptor,
    StackDefinition,
    load_stack,
    parse_stack,
)
from azprov.planner.errors import (
    ConfigurationError,
    CyclicDependencyError,
    DependencyStillPresentError,
    DuplicateDescriptorError,
    ExternalApiError,
    PlanError,
    ProvisioningFailure,
    ResourceTimeoutError,
    StackFileError,
    StateError,
    UnresolvedReferenceError,
    UnsupportedResourceTypeError,
)
from azprov.planner.graph import DependencyGraphBuilder, PlanGraph
from azprov.planner.reconciler import ChangeAction, Plan, ResourceChange, StateReconciler
from azprov.planner.scheduler import TopologicalScheduler, ready_sets, topological_order
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState, StateStore

__all__ = [
    "ChangeAction",
    "ConfigurationError",
    "CyclicDependencyError",
    "DependencyGraphBuilder",
    "DependencyStillPresentError",
    "DescriptorStore",
    "DuplicateDescriptorError",
    "ExternalApiError",
    "Plan",
    "PlanError",
    "PlanGraph",
    "ProvisioningFailure",
    "ProvisioningStatus",
    "ResourceChange",
    "ResourceDescriptor",
    "ResourceState",
    "ResourceTimeoutError",
    "StackDefinition",
    "StackFileError",
    "StackState",
    "StateError",
    "StateReconciler",
    "StateStore",
    "TopologicalScheduler",
    "UnresolvedReferenceError",
    "UnsupportedResourceTypeError",
    "load_stack",
    "parse_stack",
    "ready_sets",
    "topological_order",
]
