"""Infrastructure layer exports."""

from .stages import (
    HttpStageClient,
    JsonFileStageSource,
    PersistReport,
    PipelineSink,
    PipelineSinkError,
    StageSource,
    StageSourceError,
)

__all__ = [
    "HttpStageClient",
    "JsonFileStageSource",
    "PersistReport",
    "PipelineSink",
    "PipelineSinkError",
    "StageSource",
    "StageSourceError",
]
