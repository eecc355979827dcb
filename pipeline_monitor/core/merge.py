"""Grouping of stage records into pipelines and keyed merge strategies."""
from __future__ import annotations

from enum import Enum
from typing import Iterable

from pipeline_monitor.core.aggregate import compute_status
from pipeline_monitor.core.schema import StageRecord
from pipeline_monitor.domain import Pipeline, Stage


class MergeStrategy(str, Enum):
    """How an incoming pipeline list combines with the pipelines already held.

    ``REPLACE`` discards what is held. ``UNION`` keeps every held pipeline and
    appends unseen keys; on a duplicate key the first-seen entry wins.
    """

    REPLACE = "replace"
    UNION = "union"


def group_stage_records(records: Iterable[StageRecord | Stage]) -> list[Pipeline]:
    """Build one pipeline per ``pipeline_file`` in first-occurrence order."""

    grouped: dict[str, list[Stage]] = {}
    for record in records:
        stage = record.to_domain() if isinstance(record, StageRecord) else record
        grouped.setdefault(stage.pipeline_file, []).append(stage)

    pipelines: list[Pipeline] = []
    for pipeline_file, stages in grouped.items():
        pipeline = Pipeline(pipeline_file=pipeline_file, stages=stages)
        pipeline.status = compute_status(pipeline.iter_steps())
        pipelines.append(pipeline)
    return pipelines


def union_by_key(*collections: Iterable[Pipeline]) -> list[Pipeline]:
    merged: dict[str, Pipeline] = {}
    for collection in collections:
        for pipeline in collection:
            merged.setdefault(pipeline.pipeline_file, pipeline)
    return list(merged.values())


def merge_pipelines(
    existing: Iterable[Pipeline],
    incoming: Iterable[Pipeline],
    strategy: MergeStrategy = MergeStrategy.REPLACE,
) -> list[Pipeline]:
    if strategy is MergeStrategy.UNION:
        return union_by_key(existing, incoming)
    # A replace still must not carry two entries for one key.
    return union_by_key(incoming)
