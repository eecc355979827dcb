import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pipeline_monitor.application import PipelineService
from pipeline_monitor.core.settings import Settings
from pipeline_monitor.infrastructure import JsonFileStageSource, PipelineSinkError


STAGES = [
    {
        "pipelineFile": "a.yml",
        "name": "build",
        "steps": [{"name": "s1", "status": "start"}, {"name": "s2", "status": "done"}],
    },
    {
        "pipelineFile": "b.yml",
        "name": "default",
        "steps": [{"name": "lint", "status": "none"}],
    },
]


class BrokenSink:
    async def persist_pipelines(self, pipelines):
        raise PipelineSinkError("disk full")


@pytest.fixture()
def stages_file(tmp_path) -> Path:
    path = tmp_path / "stages.json"
    path.write_text(json.dumps(STAGES), encoding="utf-8")
    return path


@pytest.fixture()
def client(stages_file, monkeypatch):
    monkeypatch.setenv("PIPELINE_STAGES_FILE", str(stages_file))
    monkeypatch.delenv("PIPELINE_BACKEND_URL", raising=False)
    from pipeline_monitor.app import create_app

    app = create_app(Settings.from_env())
    with TestClient(app) as test_client:
        yield test_client


def test_end_to_end_workflow(client, stages_file):
    # 1. nothing loaded yet
    response = client.get("/api/pipelines/load-state")
    assert response.json() == {"status": "idle"}

    # 2. full import from the stages file
    response = client.post("/api/pipelines/import")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True and body["pipelines"] == 2
    assert body["status"] == "loaded"

    response = client.get("/api/pipelines/a.yml/status")
    assert response.json() == {"total": 2, "running": 1, "error": 0, "done": 1, "state": "running"}

    # 3. runner reports a failing step
    response = client.post(
        "/api/pipelines/events",
        json={"pipelineFile": "a.yml", "stageName": "build", "stepName": "s1", "status": "error"},
    )
    assert response.json() == {"result": "applied", "applied": True}
    response = client.get("/api/pipelines/a.yml/status")
    assert response.json()["error"] == 1 and response.json()["running"] == 0

    # 4. incremental merge keeps the live status
    response = client.post("/api/pipelines/merge")
    assert response.json()["strategy"] == "union"
    assert client.get("/api/pipelines/a.yml/status").json()["error"] == 1

    # 5. reset and remove through the command surface
    response = client.post("/api/pipelines/commands", json={"type": "resetStatus", "payload": {"pipelineId": "a.yml"}})
    assert response.json()["applied"] is True
    assert client.get("/api/pipelines/a.yml/status").json() == {
        "total": 2,
        "running": 0,
        "error": 0,
        "done": 0,
        "state": "idle",
    }

    response = client.post("/api/pipelines/commands", json={"type": "removePipelines", "payload": ["a.yml"]})
    assert response.json()["applied"] is True
    items = client.get("/api/pipelines").json()["items"]
    assert [item["pipelineFile"] for item in items] == ["b.yml"]
    assert client.get("/api/pipelines/a.yml/status").status_code == 404

    # 6. persist what is left next to the stages file
    response = client.post("/api/pipelines/persist")
    assert response.json() == {"ok": True, "count": 1, "error": None}
    saved = json.loads(stages_file.with_name("stages.pipelines.json").read_text(encoding="utf-8"))
    assert saved[0]["pipelineFile"] == "b.yml"


def test_unknown_pipeline_event_is_a_noop(client):
    client.post("/api/pipelines/import")
    response = client.post("/api/pipelines/events", json={"pipelineFile": "ghost.yml", "stepName": "s1", "status": "done"})
    assert response.status_code == 200
    assert response.json() == {"result": "not_found", "applied": False}


def test_malformed_commands_are_rejected(client):
    assert client.post("/api/pipelines/commands", json={}).status_code == 400
    assert client.post("/api/pipelines/commands", json={"type": "explode"}).status_code == 422
    assert client.post("/api/pipelines/events", json={"pipelineFile": "a.yml"}).status_code == 422


def test_import_failure_marks_store_failed(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPELINE_STAGES_FILE", str(tmp_path / "missing.json"))
    monkeypatch.delenv("PIPELINE_BACKEND_URL", raising=False)
    from pipeline_monitor.app import create_app

    with TestClient(create_app(Settings.from_env())) as client:
        response = client.post("/api/pipelines/import")
        body = response.json()
        assert body["ok"] is False
        assert body["status"] == "failed"
        assert client.get("/api/pipelines").json() == {"status": "failed", "items": []}


def test_persist_failure_is_reported(stages_file):
    from pipeline_monitor.app import create_app

    service = PipelineService(JsonFileStageSource(stages_file), BrokenSink())
    with TestClient(create_app(Settings(), service=service)) as client:
        client.post("/api/pipelines/import")
        response = client.post("/api/pipelines/persist")
        assert response.json() == {"ok": False, "count": 0, "error": "disk full"}
        assert client.get("/api/pipelines/load-state").json() == {"status": "loaded"}
