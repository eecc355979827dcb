"""Domain entities for pipeline status tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StepStatus(str, Enum):
    """Execution status of a single step."""

    NOT_STARTED = "notstarted"
    RUNNING = "running"
    ERROR = "error"
    DONE = "done"

    @classmethod
    def normalize(cls, value: object) -> "StepStatus":
        """Map a raw status string onto a canonical status.

        Matching ignores case and surrounding whitespace. Anything that is not
        recognised degrades to ``NOT_STARTED`` instead of raising.
        """

        if isinstance(value, StepStatus):
            return value
        if value is None:
            return cls.NOT_STARTED
        key = str(value).strip().lower()
        return _STATUS_ALIASES.get(key, cls.NOT_STARTED)


# Runners report a running step as "start" and a finished one as "success";
# the stage backend stores numeric codes 0-4 (none, success, running, error, killed).
_STATUS_ALIASES: dict[str, StepStatus] = {
    "notstarted": StepStatus.NOT_STARTED,
    "not_started": StepStatus.NOT_STARTED,
    "none": StepStatus.NOT_STARTED,
    "pending": StepStatus.NOT_STARTED,
    "0": StepStatus.NOT_STARTED,
    "1": StepStatus.DONE,
    "2": StepStatus.RUNNING,
    "3": StepStatus.ERROR,
    "4": StepStatus.ERROR,
    "running": StepStatus.RUNNING,
    "start": StepStatus.RUNNING,
    "started": StepStatus.RUNNING,
    "error": StepStatus.ERROR,
    "failure": StepStatus.ERROR,
    "failing": StepStatus.ERROR,
    "failed": StepStatus.ERROR,
    "killed": StepStatus.ERROR,
    "done": StepStatus.DONE,
    "success": StepStatus.DONE,
    "passed": StepStatus.DONE,
}


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class MutationResult(str, Enum):
    """Outcome of a store mutation; lookups misses are reported, never raised."""

    APPLIED = "applied"
    NOT_FOUND = "not_found"


@dataclass(slots=True)
class Step:
    name: str
    status: StepStatus = StepStatus.NOT_STARTED

    def __post_init__(self) -> None:
        self.status = StepStatus.normalize(self.status)


@dataclass(slots=True)
class Stage:
    """A named group of steps belonging to exactly one pipeline."""

    name: str
    pipeline_file: str
    steps: list[Step] = field(default_factory=list)
    status: str | int | None = None


@dataclass(slots=True)
class PipelineStatus:
    """Aggregate step counts for a pipeline."""

    total: int = 0
    running: int = 0
    error: int = 0
    done: int = 0

    @property
    def state(self) -> str:
        if self.running:
            return "running"
        if self.error:
            return "error"
        if self.total and self.done == self.total:
            return "done"
        return "idle"


@dataclass(slots=True)
class Pipeline:
    pipeline_file: str
    stages: list[Stage] = field(default_factory=list)
    status: PipelineStatus = field(default_factory=PipelineStatus)

    def iter_steps(self, stage_name: str | None = None):
        """Yield steps across all stages, optionally restricted to one stage."""

        for stage in self.stages:
            if stage_name is not None and stage.name != stage_name:
                continue
            yield from stage.steps
