from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pipeline_monitor.core.commands import CommandDispatcher
from pipeline_monitor.core.merge import MergeStrategy, group_stage_records
from pipeline_monitor.core.schema import (
    BeginLoadCommand,
    LoadFailedCommand,
    LoadSucceededCommand,
    MergePipelinesCommand,
    PipelineModel,
)
from pipeline_monitor.domain import Pipeline
from pipeline_monitor.infrastructure import StageSource

logger = logging.getLogger("pipeline_monitor.workers.ingest")


@dataclass(slots=True)
class IngestionReport:
    ok: bool
    strategy: MergeStrategy
    pipelines: int = 0
    error: str | None = None


class IngestionWorker:
    """Fetches stage records, groups them into pipelines and loads the store.

    ``REPLACE`` runs the full resync (``beginLoad`` then ``loadSucceeded``);
    ``UNION`` merges incrementally into what the store already holds. Any fetch
    failure, timeout or cancellation ends in ``loadFailed``. No retries.
    """

    def __init__(self, dispatcher: CommandDispatcher, source: StageSource, *, timeout: float = 30.0) -> None:
        self._dispatcher = dispatcher
        self._source = source
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._fetch: asyncio.Future | None = None
        self._cancel_requested = False

    @property
    def source(self) -> StageSource:
        return self._source

    @property
    def running(self) -> bool:
        return self._fetch is not None and not self._fetch.done()

    def cancel(self) -> bool:
        """Cancel the fetch in flight; the store then transitions to ``Failed``."""

        if not self.running:
            return False
        self._cancel_requested = True
        return self._fetch.cancel()

    async def ingest(self, strategy: MergeStrategy = MergeStrategy.REPLACE) -> IngestionReport:
        async with self._lock:
            if strategy is MergeStrategy.REPLACE:
                await self._dispatcher.dispatch(BeginLoadCommand())
            logger.info("Loading pipelines from stage source (%s)", strategy.value)

            try:
                pipelines = await self._fetch_pipelines()
            except asyncio.CancelledError:
                if not self._cancel_requested:
                    await self._dispatcher.dispatch(LoadFailedCommand())
                    raise
                return await self._fail(strategy, "ingestion cancelled")
            except asyncio.TimeoutError:
                return await self._fail(strategy, f"stage fetch timed out after {self._timeout:g}s")
            except Exception as exc:
                return await self._fail(strategy, str(exc) or exc.__class__.__name__)
            finally:
                self._fetch = None
                self._cancel_requested = False

            payload = [PipelineModel.from_domain(pipeline) for pipeline in pipelines]
            if strategy is MergeStrategy.REPLACE:
                await self._dispatcher.dispatch(LoadSucceededCommand(payload=payload))
            else:
                await self._dispatcher.dispatch(MergePipelinesCommand(payload=payload))
            logger.info("Loaded %d pipeline(s) from stage source", len(pipelines))
            return IngestionReport(ok=True, strategy=strategy, pipelines=len(pipelines))

    async def _fetch_pipelines(self) -> list[Pipeline]:
        self._fetch = asyncio.ensure_future(self._source.fetch_stage_records())
        records = await asyncio.wait_for(self._fetch, timeout=self._timeout)
        return group_stage_records(records)

    async def _fail(self, strategy: MergeStrategy, error: str) -> IngestionReport:
        logger.warning("Loading pipelines failed: %s", error)
        await self._dispatcher.dispatch(LoadFailedCommand())
        return IngestionReport(ok=False, strategy=strategy, error=error)
