from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from pipeline_monitor.application import PipelineService
from pipeline_monitor.core.schema import PipelineModel, PipelineStatusModel, StepEvent
from pipeline_monitor.domain import MutationResult

router = APIRouter(prefix="/pipelines", tags=["pipelines"])


def get_pipeline_service(request: Request) -> PipelineService:
    return request.app.state.pipeline_service


def _mutation_response(result: MutationResult) -> dict:
    return {"result": result.value, "applied": result is MutationResult.APPLIED}


@router.get("")
async def list_pipelines(service: PipelineService = Depends(get_pipeline_service)) -> dict:
    items = [PipelineModel.from_domain(pipeline).model_dump(by_alias=True) for pipeline in service.get_all_pipelines()]
    return {"status": service.get_load_state().value, "items": items}


@router.get("/load-state")
async def get_load_state(service: PipelineService = Depends(get_pipeline_service)) -> dict:
    return {"status": service.get_load_state().value}


@router.get("/{pipeline_file:path}/status")
async def get_pipeline_status(pipeline_file: str, service: PipelineService = Depends(get_pipeline_service)) -> dict:
    status = service.get_pipeline_status(pipeline_file)
    if status is None:
        raise HTTPException(status_code=404, detail="pipeline not found")
    return PipelineStatusModel.from_domain(status).model_dump()


@router.post("/import")
async def import_pipelines(service: PipelineService = Depends(get_pipeline_service)) -> dict:
    report = await service.import_pipelines()
    return {**asdict(report), "strategy": report.strategy.value, "status": service.get_load_state().value}


@router.post("/merge")
async def merge_pipelines(service: PipelineService = Depends(get_pipeline_service)) -> dict:
    report = await service.merge_pipelines()
    return {**asdict(report), "strategy": report.strategy.value, "status": service.get_load_state().value}


@router.post("/commands")
async def dispatch_command(payload: dict[str, Any], service: PipelineService = Depends(get_pipeline_service)) -> dict:
    if not payload.get("type"):
        raise HTTPException(status_code=400, detail="type is required")
    try:
        result = await service.dispatch(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    return _mutation_response(result)


@router.post("/events")
async def post_step_event(event: StepEvent, service: PipelineService = Depends(get_pipeline_service)) -> dict:
    """Accept a runner step report and apply it as a step update."""
    result = await service.apply_event(event)
    return _mutation_response(result)


@router.post("/persist")
async def persist_pipelines(service: PipelineService = Depends(get_pipeline_service)) -> dict:
    report = await service.persist()
    return asdict(report)
