"""Domain layer definitions."""

from .pipelines import LoadState, MutationResult, Pipeline, PipelineStatus, Stage, Step, StepStatus

__all__ = [
    "LoadState",
    "MutationResult",
    "Pipeline",
    "PipelineStatus",
    "Stage",
    "Step",
    "StepStatus",
]
