from __future__ import annotations

from typing import Iterable

from pipeline_monitor.domain import PipelineStatus, Step, StepStatus


def compute_status(steps: Iterable[Step]) -> PipelineStatus:
    """Count running, errored and finished steps.

    ``total`` covers every step, so ``running + error + done`` never exceeds it.
    """

    status = PipelineStatus()
    for step in steps:
        status.total += 1
        if step.status is StepStatus.RUNNING:
            status.running += 1
        elif step.status is StepStatus.ERROR:
            status.error += 1
        elif step.status is StepStatus.DONE:
            status.done += 1
    return status
