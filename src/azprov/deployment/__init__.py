"""Logic App workflow deployment pipeline."""

from azprov.deployment.context import DeploymentContext
from azprov.deployment.packager import PackagingError, create_package
from azprov.deployment.pipeline import DeploymentPipeline, PipelineResult, Step, StepResult
from azprov.deployment.steps import default_steps

__all__ = [
    "DeploymentContext",
    "DeploymentPipeline",
    "PackagingError",
    "PipelineResult",
    "Step",
    "StepResult",
    "create_package",
    "default_steps",
]
