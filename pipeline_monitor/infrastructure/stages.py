"""Stage record sources and pipeline sinks."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Sequence
from urllib.parse import urlparse

import httpx
from pydantic import TypeAdapter, ValidationError

from pipeline_monitor.core.schema import PipelineModel, StageRecord
from pipeline_monitor.domain import Pipeline, StepStatus

_stage_list = TypeAdapter(list[StageRecord])

# Numeric step codes stored by the stage backend.
_BACKEND_STATUS_CODES = {
    StepStatus.NOT_STARTED: 0,
    StepStatus.DONE: 1,
    StepStatus.RUNNING: 2,
    StepStatus.ERROR: 3,
}


class StageSourceError(RuntimeError):
    """Raised when stage records cannot be fetched or decoded."""


class PipelineSinkError(RuntimeError):
    """Raised when pipelines cannot be persisted."""


class StageSource(Protocol):
    """Contract for the external stage-record backend."""

    async def fetch_stage_records(self) -> list[StageRecord]:
        """Return every stage record currently known, ungrouped."""


class PipelineSink(Protocol):
    async def persist_pipelines(self, pipelines: Sequence[Pipeline]) -> int:
        """Save pipelines and return how many were written."""


@dataclass(slots=True)
class PersistReport:
    ok: bool
    count: int = 0
    error: str | None = None


def _decode_stage_records(data: Any) -> list[StageRecord]:
    try:
        return _stage_list.validate_python(data)
    except ValidationError as exc:
        raise StageSourceError(f"malformed stage records: {exc.error_count()} error(s)") from exc


def _encode_pipelines(pipelines: Sequence[Pipeline]) -> list[dict[str, Any]]:
    return [PipelineModel.from_domain(pipeline).model_dump(mode="json", by_alias=True) for pipeline in pipelines]


def _encode_stage_rows(pipelines: Sequence[Pipeline]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for pipeline in pipelines:
        for stage in pipeline.stages:
            row: dict[str, Any] = {
                "pipelineFile": pipeline.pipeline_file,
                "name": stage.name,
                "steps": [{"name": step.name, "status": _BACKEND_STATUS_CODES[step.status]} for step in stage.steps],
            }
            if stage.status is not None:
                row["status"] = stage.status
            rows.append(row)
    return rows


class HttpStageClient:
    """Client for the stage backend HTTP API.

    ``GET /stages`` returns the flat stage list. ``POST /stages`` upserts stage rows
    keyed by pipeline file and stage name, with steps carrying numeric status codes.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def fetch_stage_records(self) -> list[StageRecord]:
        try:
            response = await self._client.get(f"{self._base_url}/stages")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise StageSourceError(f"stage backend request failed: {exc}") from exc
        except ValueError as exc:
            raise StageSourceError("stage backend returned invalid JSON") from exc
        return _decode_stage_records(data)

    async def persist_pipelines(self, pipelines: Sequence[Pipeline]) -> int:
        rows = _encode_stage_rows(pipelines)
        try:
            response = await self._client.post(f"{self._base_url}/stages", json=rows)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PipelineSinkError(f"saving pipelines failed: {exc}") from exc
        return len(pipelines)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class JsonFileStageSource:
    """Reads stage records from a local JSON array and writes pipelines beside it."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Any:
        with self._path.open("r", encoding="utf-8") as fp:
            return json.load(fp)

    def _write(self, rows: list[dict[str, Any]]) -> None:
        target = self._path.with_name(f"{self._path.stem}.pipelines.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as fp:
            json.dump(rows, fp, ensure_ascii=False, indent=2)

    async def fetch_stage_records(self) -> list[StageRecord]:
        try:
            data = await asyncio.to_thread(self._read)
        except FileNotFoundError as exc:
            raise StageSourceError(f"stages file not found: {self._path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise StageSourceError(f"cannot read stages file {self._path}: {exc}") from exc
        return _decode_stage_records(data)

    async def persist_pipelines(self, pipelines: Sequence[Pipeline]) -> int:
        rows = _encode_pipelines(pipelines)
        try:
            await asyncio.to_thread(self._write, rows)
        except OSError as exc:
            raise PipelineSinkError(f"cannot write pipelines next to {self._path}: {exc}") from exc
        return len(rows)


__all__ = [
    "HttpStageClient",
    "JsonFileStageSource",
    "PersistReport",
    "PipelineSink",
    "PipelineSinkError",
    "StageSource",
    "StageSourceError",
]
