from __future__ import annotations

import copy
import logging
from typing import Iterable

from pipeline_monitor.core.aggregate import compute_status
from pipeline_monitor.core.merge import MergeStrategy, merge_pipelines
from pipeline_monitor.domain import LoadState, MutationResult, Pipeline, PipelineStatus, Step, StepStatus

logger = logging.getLogger("pipeline_monitor.core.state")


class PipelineStore:
    """Authoritative in-memory collection of pipelines keyed by pipeline file.

    Every mutation returns a :class:`MutationResult`. Unknown pipelines or
    steps are reported as ``NOT_FOUND`` and leave the store untouched.
    Queries hand out deep copies so callers never observe a later mutation.
    """

    def __init__(self) -> None:
        self._load_state = LoadState.IDLE
        self._pipelines: dict[str, Pipeline] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _replace_all(self, pipelines: Iterable[Pipeline]) -> None:
        self._pipelines = {}
        for pipeline in pipelines:
            pipeline.status = compute_status(pipeline.iter_steps())
            self._pipelines[pipeline.pipeline_file] = pipeline

    def _recompute(self, pipeline: Pipeline) -> PipelineStatus:
        pipeline.status = compute_status(pipeline.iter_steps())
        return pipeline.status

    def _miss(self, operation: str, pipeline_id: str, step_name: str | None = None) -> MutationResult:
        if step_name is None:
            logger.debug("%s: pipeline %s not found", operation, pipeline_id)
        else:
            logger.debug("%s: step %s not found in pipeline %s", operation, step_name, pipeline_id)
        return MutationResult.NOT_FOUND

    # ------------------------------------------------------------------
    # load lifecycle
    # ------------------------------------------------------------------
    def begin_load(self) -> MutationResult:
        self._load_state = LoadState.LOADING
        self._pipelines = {}
        return MutationResult.APPLIED

    def load_succeeded(
        self,
        pipelines: Iterable[Pipeline],
        strategy: MergeStrategy = MergeStrategy.REPLACE,
    ) -> MutationResult:
        self._load_state = LoadState.LOADED
        incoming = copy.deepcopy(list(pipelines))
        self._replace_all(merge_pipelines(self._pipelines.values(), incoming, strategy))
        return MutationResult.APPLIED

    def merge_pipelines(self, pipelines: Iterable[Pipeline]) -> MutationResult:
        """Incremental load: keep held pipelines, append unseen ones."""

        return self.load_succeeded(pipelines, MergeStrategy.UNION)

    def load_failed(self) -> MutationResult:
        self._load_state = LoadState.FAILED
        self._pipelines = {}
        return MutationResult.APPLIED

    # ------------------------------------------------------------------
    # step mutations
    # ------------------------------------------------------------------
    def apply_step_update(self, pipeline_id: str, step: Step, stage_name: str | None = None) -> MutationResult:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return self._miss("apply_step_update", pipeline_id)
        for current in pipeline.iter_steps(stage_name):
            if current.name == step.name:
                current.status = StepStatus.normalize(step.status)
                self._recompute(pipeline)
                return MutationResult.APPLIED
        return self._miss("apply_step_update", pipeline_id, step.name)

    def remove_step(self, pipeline_id: str, step_name: str) -> MutationResult:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return self._miss("remove_step", pipeline_id)
        for stage in pipeline.stages:
            for index, step in enumerate(stage.steps):
                if step.name == step_name:
                    del stage.steps[index]
                    self._recompute(pipeline)
                    return MutationResult.APPLIED
        return self._miss("remove_step", pipeline_id, step_name)

    def remove_pipelines(self, file_names: Iterable[str]) -> MutationResult:
        doomed = set(file_names)
        kept = {key: value for key, value in self._pipelines.items() if key not in doomed}
        if len(kept) == len(self._pipelines):
            return MutationResult.NOT_FOUND
        self._pipelines = kept
        return MutationResult.APPLIED

    def reset_status(self, pipeline_id: str, stage_name: str | None = None) -> MutationResult:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return self._miss("reset_status", pipeline_id)
        for step in pipeline.iter_steps(stage_name):
            step.status = StepStatus.NOT_STARTED
        self._recompute(pipeline)
        return MutationResult.APPLIED

    def set_pipeline_status(self, pipeline_id: str) -> MutationResult:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return self._miss("set_pipeline_status", pipeline_id)
        self._recompute(pipeline)
        return MutationResult.APPLIED

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_all_pipelines(self) -> list[Pipeline]:
        return copy.deepcopy(list(self._pipelines.values()))

    def get_load_state(self) -> LoadState:
        return self._load_state

    def get_pipeline_status(self, pipeline_id: str) -> PipelineStatus | None:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return None
        return copy.deepcopy(pipeline.status)

    def get_pipeline(self, pipeline_id: str) -> Pipeline | None:
        pipeline = self._pipelines.get(pipeline_id)
        return copy.deepcopy(pipeline) if pipeline is not None else None
