"""Stack orchestrator - coordinates loading, planning, applying and destroying."""

import copy
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from azprov.planner.descriptors import StackDefinition, load_stack
from azprov.planner.engine import (
    ApplyReport,
    CancellationToken,
    DestroyReport,
    DestroyRunner,
    ProvisioningExecutor,
    ResourceOperator,
)
from azprov.planner.errors import ConfigurationError, UnsupportedResourceTypeError
from azprov.planner.graph import DependencyGraphBuilder, PlanGraph
from azprov.planner.providers import ProvisioningProvider, SimulatedProvider
from azprov.planner.reconciler import Plan, StateReconciler
from azprov.planner.state import StackState, StateStore

logger = logging.getLogger(__name__)


class StackOrchestrator:
    """Main orchestrator for one stack file and its state file."""

    def __init__(
        self,
        stack_file: Path,
        state_file: Path,
        provider: ProvisioningProvider,
        max_workers: int = 10,
        default_timeout: float = 1800.0,
        resource_timeouts: dict[str, float] | None = None,
        poll_interval: float = 10.0,
        progress_callback: Callable[[str], None] | None = None,
    ):
        """Initialize orchestrator.

        Args:
            stack_file: YAML stack definition
            state_file: JSON state file
            provider: Provisioning API binding
            max_workers: Maximum parallel operations per ready set
            default_timeout: Per-resource timeout in seconds
            resource_timeouts: Per-resource-type timeout overrides
            poll_interval: Seconds between status polls
            progress_callback: Optional progress callback
        """
        self.stack_file = Path(stack_file)
        self.state_store = StateStore(Path(state_file))
        self.provider = provider
        self.max_workers = max_workers
        self.default_timeout = default_timeout
        self.resource_timeouts = resource_timeouts or {}
        self.poll_interval = poll_interval
        self.progress_callback = progress_callback

    def load(self) -> StackDefinition:
        return load_stack(self.stack_file)

    def validate(self, stack: StackDefinition | None = None) -> tuple[StackDefinition, PlanGraph]:
        """Load the stack and build its dependency graph.

        Raises:
            ConfigurationError: On any invalid declaration (nothing is
                provisioned)
        """
        stack = stack or self.load()
        graph = DependencyGraphBuilder().build(stack.descriptors)
        for descriptor in stack.descriptors:
            if not self.provider.supports(descriptor.type):
                raise UnsupportedResourceTypeError(descriptor.address, descriptor.type)
        logger.debug(f"Validated {len(graph)} resources from {self.stack_file}")
        return stack, graph

    def plan(self) -> tuple[Plan, StackDefinition, StackState]:
        """Compute the plan without side effects."""
        stack, graph = self.validate()
        state = self.state_store.load()
        plan = StateReconciler().reconcile(stack.descriptors, graph, state)
        return plan, stack, state

    def _executor(self, provider: ProvisioningProvider, persist: bool) -> ProvisioningExecutor:
        return ProvisioningExecutor(
            provider,
            state_store=self.state_store if persist else None,
            max_workers=self.max_workers,
            default_timeout=self.default_timeout,
            resource_timeouts=self.resource_timeouts,
            poll_interval=self.poll_interval,
            progress_callback=self.progress_callback,
        )

    def apply(
        self,
        plan: Plan,
        stack: StackDefinition,
        state: StackState,
        dry_run: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> ApplyReport:
        """Apply a plan computed by plan().

        A dry run executes against a SimulatedProvider on a copy of the
        state and never writes the state file.
        """
        if dry_run:
            logger.info("Dry run: simulating apply, state will not be written")
            executor = self._executor(SimulatedProvider(), persist=False)
            return executor.apply(plan, copy.deepcopy(state), stack.outputs, cancel_token)

        executor = self._executor(self.provider, persist=True)
        return executor.apply(plan, state, stack.outputs, cancel_token)

    def destroy(
        self,
        targets: Iterable[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DestroyReport:
        """Destroy recorded resources bottom-up (all of them when targets is None)."""
        state = self.state_store.load()
        operator = ResourceOperator(
            self.provider,
            default_timeout=self.default_timeout,
            resource_timeouts=self.resource_timeouts,
            poll_interval=self.poll_interval,
        )
        runner = DestroyRunner(
            operator,
            state_store=self.state_store,
            max_workers=self.max_workers,
            progress_callback=self.progress_callback,
        )
        report = runner.run(state, targets=targets, cancel_token=cancel_token)
        if state.resources:
            surviving = self._surviving_outputs(state)
            state.outputs = {k: v for k, v in state.outputs.items() if k in surviving}
        else:
            state.outputs = {}
        self.state_store.save(state)
        return report

    def _surviving_outputs(self, state: StackState) -> set[str]:
        """Names of recorded outputs whose source resources still exist."""
        try:
            expressions = self.load().outputs
        except ConfigurationError as e:
            logger.debug(f"Could not re-read stack outputs: {e}")
            return set(state.outputs)
        resolved = ProvisioningExecutor.resolve_outputs(expressions, state)
        return set(resolved)

    def outputs(self) -> dict:
        return self.state_store.load().outputs
