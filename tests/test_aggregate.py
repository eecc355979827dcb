from __future__ import annotations

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pipeline_monitor.core.aggregate import compute_status
from pipeline_monitor.domain import PipelineStatus, Step, StepStatus


@pytest.mark.parametrize("raw", ["ERROR", "Error", "error", "  error "])
def test_normalize_is_case_insensitive(raw):
    assert StepStatus.normalize(raw) is StepStatus.ERROR


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("start", StepStatus.RUNNING),
        ("Running", StepStatus.RUNNING),
        ("success", StepStatus.DONE),
        ("DONE", StepStatus.DONE),
        ("killed", StepStatus.ERROR),
        ("failure", StepStatus.ERROR),
        ("none", StepStatus.NOT_STARTED),
    ],
)
def test_normalize_accepts_runner_vocabulary(raw, expected):
    assert StepStatus.normalize(raw) is expected


@pytest.mark.parametrize("raw", [None, "", "bogus", 42])
def test_unknown_status_degrades_to_not_started(raw):
    assert StepStatus.normalize(raw) is StepStatus.NOT_STARTED


def test_step_normalizes_raw_status():
    assert Step(name="s1", status="START").status is StepStatus.RUNNING


def test_compute_status_counts_each_state():
    steps = [
        Step("a", "start"),
        Step("b", "error"),
        Step("c", "done"),
        Step("d", "done"),
        Step("e"),
    ]
    status = compute_status(steps)
    assert status == PipelineStatus(total=5, running=1, error=1, done=2)
    assert status.running + status.error + status.done <= status.total


def test_compute_status_empty():
    assert compute_status([]) == PipelineStatus(total=0, running=0, error=0, done=0)


def test_compute_status_ignores_order():
    steps = [Step("a", "done"), Step("b", "error"), Step("c", "start")]
    assert compute_status(steps) == compute_status(list(reversed(steps)))


@pytest.mark.parametrize(
    ("status", "state"),
    [
        (PipelineStatus(total=3, running=1, error=1, done=1), "running"),
        (PipelineStatus(total=3, running=0, error=1, done=2), "error"),
        (PipelineStatus(total=2, running=0, error=0, done=2), "done"),
        (PipelineStatus(total=2, running=0, error=0, done=1), "idle"),
        (PipelineStatus(), "idle"),
    ],
)
def test_derived_state(status, state):
    assert status.state == state
