from __future__ import annotations

import json
from pathlib import Path
import sys

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pipeline_monitor.core.merge import group_stage_records
from pipeline_monitor.core.schema import StageRecord
from pipeline_monitor.infrastructure import HttpStageClient, JsonFileStageSource, PipelineSinkError, StageSourceError


STAGES = [
    {
        "id": 1,
        "pipelineFile": "/work/demo/.drone.yml",
        "name": "default",
        "status": 1,
        "steps": [{"id": 10, "name": "build", "status": "success"}, {"name": "test", "status": "running"}],
    },
]


def _client(handler) -> tuple[HttpStageClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpStageClient("http://backend.local/", http_client=http_client), http_client


@pytest.mark.asyncio
async def test_fetch_stage_records_parses_backend_payload():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        return httpx.Response(200, json=STAGES)

    client, http_client = _client(handler)
    try:
        records = await client.fetch_stage_records()
    finally:
        await http_client.aclose()

    assert captured == {"method": "GET", "url": "http://backend.local/stages"}
    assert records[0].pipeline_file == "/work/demo/.drone.yml"
    pipeline = group_stage_records(records)[0]
    assert (pipeline.status.total, pipeline.status.running, pipeline.status.done) == (2, 1, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=[{"pipelineFile": "a.yml", "name": "default", "steps": "nope"}]),
        httpx.Response(200, json=[{"name": "default", "steps": [{"name": "build", "status": 1}]}]),
    ],
)
async def test_fetch_stage_records_wraps_failures(response):
    client, http_client = _client(lambda _: response)
    try:
        with pytest.raises(StageSourceError):
            await client.fetch_stage_records()
    finally:
        await http_client.aclose()


@pytest.mark.asyncio
async def test_persist_pipelines_posts_stage_rows():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(201, json={"ok": True})

    client, http_client = _client(handler)
    pipelines = group_stage_records([StageRecord.model_validate(row) for row in STAGES])
    try:
        count = await client.persist_pipelines(pipelines)
    finally:
        await http_client.aclose()

    assert count == 1
    assert captured["method"] == "POST"
    assert captured["url"] == "http://backend.local/stages"
    assert captured["body"] == [
        {
            "pipelineFile": "/work/demo/.drone.yml",
            "name": "default",
            "status": 1,
            "steps": [{"name": "build", "status": 1}, {"name": "test", "status": 2}],
        }
    ]


@pytest.mark.asyncio
async def test_persist_pipelines_wraps_failures():
    client, http_client = _client(lambda _: httpx.Response(503))
    try:
        with pytest.raises(PipelineSinkError):
            await client.persist_pipelines([])
    finally:
        await http_client.aclose()


def test_base_url_requires_scheme():
    with pytest.raises(ValueError):
        HttpStageClient("backend.local")


@pytest.mark.asyncio
async def test_json_file_source_round_trip(tmp_path):
    path = tmp_path / "stages.json"
    path.write_text(json.dumps(STAGES), encoding="utf-8")
    source = JsonFileStageSource(path)

    records = await source.fetch_stage_records()
    count = await source.persist_pipelines(group_stage_records(records))

    assert count == 1
    saved = json.loads((tmp_path / "stages.pipelines.json").read_text(encoding="utf-8"))
    assert saved[0]["pipelineFile"] == "/work/demo/.drone.yml"
    assert saved[0]["status"]["state"] == "running"


@pytest.mark.asyncio
async def test_json_file_source_missing_file(tmp_path):
    source = JsonFileStageSource(tmp_path / "absent.json")
    with pytest.raises(StageSourceError):
        await source.fetch_stage_records()


@pytest.mark.asyncio
async def test_json_file_source_rejects_rows_without_pipeline_file(tmp_path):
    path = tmp_path / "stages.json"
    path.write_text(json.dumps([{"name": "default", "steps": []}]), encoding="utf-8")

    with pytest.raises(StageSourceError):
        await JsonFileStageSource(path).fetch_stage_records()
