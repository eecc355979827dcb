from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from pipeline_monitor.domain import Pipeline, PipelineStatus, Stage, Step, StepStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StepRecord(_CamelModel):
    name: str
    status: str | int | None = None

    def to_domain(self) -> Step:
        return Step(name=self.name, status=StepStatus.normalize(self.status))


class StageRecord(_CamelModel):
    """Flat stage row as served by the stage backend."""

    pipeline_file: str = Field(alias="pipelineFile")
    name: str = "default"
    status: str | int | None = None
    steps: list[StepRecord] = Field(default_factory=list)

    def to_domain(self) -> Stage:
        return Stage(
            name=self.name,
            pipeline_file=self.pipeline_file,
            steps=[step.to_domain() for step in self.steps],
            status=self.status,
        )


class PipelineStatusModel(BaseModel):
    total: int = 0
    running: int = 0
    error: int = 0
    done: int = 0
    state: str = "idle"

    @classmethod
    def from_domain(cls, status: PipelineStatus) -> "PipelineStatusModel":
        return cls(
            total=status.total,
            running=status.running,
            error=status.error,
            done=status.done,
            state=status.state,
        )


class NestedStageRecord(StageRecord):
    """Stage nested under a pipeline; it inherits the pipeline's file."""

    pipeline_file: str = Field(default="", alias="pipelineFile")


class PipelineModel(_CamelModel):
    pipeline_file: str = Field(alias="pipelineFile")
    stages: list[NestedStageRecord] = Field(default_factory=list)
    status: PipelineStatusModel | None = None

    @classmethod
    def from_domain(cls, pipeline: Pipeline) -> "PipelineModel":
        return cls(
            pipeline_file=pipeline.pipeline_file,
            stages=[
                NestedStageRecord(
                    pipeline_file=stage.pipeline_file,
                    name=stage.name,
                    status=stage.status,
                    steps=[StepRecord(name=step.name, status=step.status.value) for step in stage.steps],
                )
                for stage in pipeline.stages
            ],
            status=PipelineStatusModel.from_domain(pipeline.status),
        )

    def to_domain(self) -> Pipeline:
        stages = []
        for record in self.stages:
            stage = record.to_domain()
            # Stages nested under a pipeline always belong to it.
            stage.pipeline_file = self.pipeline_file
            stages.append(stage)
        return Pipeline(pipeline_file=self.pipeline_file, stages=stages)


class StepEvent(_CamelModel):
    """Step status report posted by a pipeline runner."""

    pipeline_file: str = Field(alias="pipelineFile")
    stage_name: str | None = Field(default=None, alias="stageName")
    step_name: str = Field(alias="stepName")
    status: str | int | None = None


# ----------------------------------------------------------------------
# command payloads
# ----------------------------------------------------------------------
class PipelineRef(_CamelModel):
    pipeline_id: str = Field(alias="pipelineId")


class StepUpdatePayload(PipelineRef):
    step: StepRecord
    stage_name: str | None = Field(default=None, alias="stageName")


class RemoveStepPayload(PipelineRef):
    step_name: str = Field(alias="stepName")


class ResetStatusPayload(PipelineRef):
    stage_name: str | None = Field(default=None, alias="stageName")


class BeginLoadCommand(_CamelModel):
    type: Literal["beginLoad"] = "beginLoad"


class LoadSucceededCommand(_CamelModel):
    type: Literal["loadSucceeded"] = "loadSucceeded"
    payload: list[PipelineModel] = Field(default_factory=list)


class LoadFailedCommand(_CamelModel):
    type: Literal["loadFailed"] = "loadFailed"


class MergePipelinesCommand(_CamelModel):
    type: Literal["mergePipelines"] = "mergePipelines"
    payload: list[PipelineModel] = Field(default_factory=list)


class ApplyStepUpdateCommand(_CamelModel):
    type: Literal["applyStepUpdate"] = "applyStepUpdate"
    payload: StepUpdatePayload


class RemoveStepCommand(_CamelModel):
    type: Literal["removeStep"] = "removeStep"
    payload: RemoveStepPayload


class RemovePipelinesCommand(_CamelModel):
    type: Literal["removePipelines"] = "removePipelines"
    payload: list[str] = Field(default_factory=list)


class ResetStatusCommand(_CamelModel):
    type: Literal["resetStatus"] = "resetStatus"
    payload: ResetStatusPayload


class SetPipelineStatusCommand(_CamelModel):
    type: Literal["setPipelineStatus"] = "setPipelineStatus"
    payload: PipelineRef


Command = Annotated[
    Union[
        BeginLoadCommand,
        LoadSucceededCommand,
        LoadFailedCommand,
        MergePipelinesCommand,
        ApplyStepUpdateCommand,
        RemoveStepCommand,
        RemovePipelinesCommand,
        ResetStatusCommand,
        SetPipelineStatusCommand,
    ],
    Field(discriminator="type"),
]