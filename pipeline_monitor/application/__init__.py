"""Application services."""

from .pipelines import PipelineService, build_pipeline_service

__all__ = [
    "PipelineService",
    "build_pipeline_service",
]
