from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import InstallCtx
from .errors import InstallerError

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single step of the install."""

    step_id: str

    def run(self, ctx: InstallCtx) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]


class StepFailed(InstallerError):
    """Wraps the error that aborted the pipeline with the step it happened in."""

    def __init__(self, step_id: str, error: InstallerError):
        self.step_id = step_id
        self.error = error
        super().__init__(f"step {step_id}: {error}")


def run_pipeline(
    *,
    ctx: InstallCtx,
    steps: Sequence[Step],
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; the first error aborts the run.

    There is no rollback. A failed run is recovered by running again in
    clean mode.
    """

    ran: List[str] = []

    for step in steps:
        logger.info("Running step %s", step.step_id)
        try:
            step.run(ctx)
        except InstallerError as e:
            raise StepFailed(step.step_id, e) from e
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    return PipelineResult(ran_steps=ran)
