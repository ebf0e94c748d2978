"""Typed deployment pipeline.

A pipeline is an ordered list of Steps sharing one DeploymentContext.
Execution stops at the first failing step.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from azprov.deployment.context import DeploymentContext

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Result of one pipeline step."""

    name: str
    success: bool
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    duration: float = 0.0


@dataclass
class PipelineResult:
    """Aggregated result of a pipeline run."""

    steps: list[StepResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.steps) and all(step.success for step in self.steps)

    @property
    def failed_step(self) -> StepResult | None:
        return next((step for step in self.steps if not step.success), None)

    def detail(self, key: str) -> Any:
        """Latest value a step reported for ``key`` (None if none did)."""
        for step in reversed(self.steps):
            if key in step.details:
                return step.details[key]
        return None

    def format_summary(self) -> str:
        if self.success:
            return f"Deployment succeeded ({len(self.steps)} steps)"
        failed = self.failed_step
        return f"Deployment failed at {failed.name}: {failed.message}" if failed else "No steps ran"


class Step(ABC):
    """One pipeline step."""

    name = "step"

    @abstractmethod
    def run(self, ctx: DeploymentContext) -> StepResult:
        """Execute the step.

        Steps report failures through StepResult rather than raising.
        """
        pass

    def ok(self, message: str = "", **details: Any) -> StepResult:
        return StepResult(self.name, True, message, details)

    def fail(self, message: str, **details: Any) -> StepResult:
        return StepResult(self.name, False, message, details)


class DeploymentPipeline:
    """Runs steps in order, stopping at the first failure."""

    def __init__(
        self,
        steps: list[Step],
        progress_callback: Callable[[StepResult], None] | None = None,
    ):
        self.steps = steps
        self.progress_callback = progress_callback

    def run(self, ctx: DeploymentContext) -> PipelineResult:
        result = PipelineResult()
        for step in self.steps:
            logger.debug(f"Running step {step.name}")
            start_time = time.time()
            step_result = step.run(ctx)
            step_result.duration = time.time() - start_time
            result.steps.append(step_result)

            if self.progress_callback:
                self.progress_callback(step_result)

            if not step_result.success:
                logger.error(f"{step.name} failed: {step_result.message}")
                break
        return result
