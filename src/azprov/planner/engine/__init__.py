"""Execution engine for applying plans and destroying stacks."""

from azprov.planner.engine.models import (
    CANCELLED_REASON,
    ApplyReport,
    CancellationToken,
    DestroyReport,
    ResourceOutcome,
)
from azprov.planner.engine.operations import ResourceOperator
from azprov.planner.engine.destroy import DestroyPlanner, DestroyRunner
from azprov.planner.engine.executor import ProvisioningExecutor

__all__ = [
    "CANCELLED_REASON",
    "ApplyReport",
    "CancellationToken",
    "DestroyPlanner",
    "DestroyReport",
    "DestroyRunner",
    "ProvisioningExecutor",
    "ResourceOperator",
    "ResourceOutcome",
]
