"""Application service layer for pipeline status tracking."""
from __future__ import annotations

import logging
from typing import Any

from pipeline_monitor.core.commands import CommandDispatcher
from pipeline_monitor.core.merge import MergeStrategy
from pipeline_monitor.core.schema import ApplyStepUpdateCommand, Command, StepEvent, StepRecord, StepUpdatePayload
from pipeline_monitor.core.settings import Settings
from pipeline_monitor.core.state import PipelineStore
from pipeline_monitor.domain import LoadState, MutationResult, Pipeline, PipelineStatus
from pipeline_monitor.infrastructure import (
    HttpStageClient,
    JsonFileStageSource,
    PersistReport,
    PipelineSink,
    PipelineSinkError,
    StageSource,
)
from pipeline_monitor.workers.ingest import IngestionReport, IngestionWorker

logger = logging.getLogger("pipeline_monitor.application.pipelines")


class PipelineService:
    """Coordinates pipeline use cases over one explicit store."""

    def __init__(
        self,
        source: StageSource,
        sink: PipelineSink | None = None,
        *,
        store: PipelineStore | None = None,
        ingest_timeout: float = 30.0,
    ) -> None:
        self._store = store or PipelineStore()
        self._dispatcher = CommandDispatcher(self._store)
        self._source = source
        self._sink = sink if sink is not None else source  # type: ignore[assignment]
        self._worker = IngestionWorker(self._dispatcher, source, timeout=ingest_timeout)

    @property
    def store(self) -> PipelineStore:
        return self._store

    @property
    def ingestion(self) -> IngestionWorker:
        return self._worker

    # ------------------------------------------------------------------
    # ingestion
    # ------------------------------------------------------------------
    async def import_pipelines(self) -> IngestionReport:
        """Full resync from the stage source, replacing held pipelines."""

        return await self._worker.ingest(MergeStrategy.REPLACE)

    async def merge_pipelines(self) -> IngestionReport:
        """Incremental load: pipelines already held are kept as they are."""

        return await self._worker.ingest(MergeStrategy.UNION)

    def cancel_ingestion(self) -> bool:
        return self._worker.cancel()

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    async def dispatch(self, command: Command | dict[str, Any]) -> MutationResult:
        return await self._dispatcher.dispatch(command)

    async def apply_event(self, event: StepEvent) -> MutationResult:
        command = ApplyStepUpdateCommand(
            payload=StepUpdatePayload(
                pipeline_id=event.pipeline_file,
                stage_name=event.stage_name,
                step=StepRecord(name=event.step_name, status=event.status),
            )
        )
        return await self._dispatcher.dispatch(command)

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------
    async def persist(self) -> PersistReport:
        pipelines = self._store.get_all_pipelines()
        if not pipelines:
            return PersistReport(ok=True, count=0)
        try:
            count = await self._sink.persist_pipelines(pipelines)
        except PipelineSinkError as exc:
            logger.warning("Error saving pipelines: %s", exc)
            return PersistReport(ok=False, error=str(exc))
        logger.info("Saved %d pipeline(s)", count)
        return PersistReport(ok=True, count=count)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_all_pipelines(self) -> list[Pipeline]:
        return self._store.get_all_pipelines()

    def get_load_state(self) -> LoadState:
        return self._store.get_load_state()

    def get_pipeline_status(self, pipeline_id: str) -> PipelineStatus | None:
        return self._store.get_pipeline_status(pipeline_id)

    async def aclose(self) -> None:
        resources = [self._source] if self._sink is self._source else [self._source, self._sink]
        for resource in resources:
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()


def build_pipeline_service(settings: Settings) -> PipelineService:
    """Wire the service to the HTTP backend when configured, else the stages file."""

    source: StageSource
    if settings.backend_url:
        source = HttpStageClient(settings.backend_url, timeout=settings.http_timeout)
    else:
        source = JsonFileStageSource(settings.stages_file)
    return PipelineService(source, ingest_timeout=settings.ingest_timeout)
