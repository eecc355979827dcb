"""Status aggregation core."""

from .aggregate import compute_status
from .commands import CommandDispatcher, parse_command
from .merge import MergeStrategy, group_stage_records, merge_pipelines
from .state import PipelineStore

__all__ = [
    "CommandDispatcher",
    "MergeStrategy",
    "PipelineStore",
    "compute_status",
    "group_stage_records",
    "merge_pipelines",
    "parse_command",
]
