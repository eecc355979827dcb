"""Serialized command dispatch over the pipeline store."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import TypeAdapter

from pipeline_monitor.core import schema
from pipeline_monitor.core.merge import MergeStrategy
from pipeline_monitor.core.state import PipelineStore
from pipeline_monitor.domain import MutationResult

logger = logging.getLogger("pipeline_monitor.core.commands")

_command_adapter: TypeAdapter[schema.Command] = TypeAdapter(schema.Command)


def parse_command(data: dict[str, Any]) -> schema.Command:
    """Validate a raw ``{"type": ..., "payload": ...}`` mapping.

    Raises :class:`pydantic.ValidationError` for unknown types or malformed payloads.
    """

    return _command_adapter.validate_python(data)


class CommandDispatcher:
    """Single entry point for store mutations.

    Commands are applied one at a time under an ``asyncio.Lock`` so readers
    only ever see the store between two complete mutations.
    """

    def __init__(self, store: PipelineStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    @property
    def store(self) -> PipelineStore:
        return self._store

    async def dispatch(self, command: schema.Command | dict[str, Any]) -> MutationResult:
        if isinstance(command, dict):
            command = parse_command(command)
        async with self._lock:
            result = self.apply(command)
        logger.debug("dispatched %s -> %s", command.type, result.value)
        return result

    def apply(self, command: schema.Command) -> MutationResult:
        """Apply a command without taking the lock; callers must hold it."""

        store = self._store
        if isinstance(command, schema.BeginLoadCommand):
            return store.begin_load()
        if isinstance(command, schema.LoadSucceededCommand):
            return store.load_succeeded([item.to_domain() for item in command.payload], MergeStrategy.REPLACE)
        if isinstance(command, schema.LoadFailedCommand):
            return store.load_failed()
        if isinstance(command, schema.MergePipelinesCommand):
            return store.merge_pipelines([item.to_domain() for item in command.payload])
        if isinstance(command, schema.ApplyStepUpdateCommand):
            payload = command.payload
            return store.apply_step_update(payload.pipeline_id, payload.step.to_domain(), payload.stage_name)
        if isinstance(command, schema.RemoveStepCommand):
            return store.remove_step(command.payload.pipeline_id, command.payload.step_name)
        if isinstance(command, schema.RemovePipelinesCommand):
            return store.remove_pipelines(command.payload)
        if isinstance(command, schema.ResetStatusCommand):
            return store.reset_status(command.payload.pipeline_id, command.payload.stage_name)
        if isinstance(command, schema.SetPipelineStatusCommand):
            return store.set_pipeline_status(command.payload.pipeline_id)
        raise TypeError(f"unsupported command: {command!r}")
