from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .context import ProvisioningContext
from .step_control import StepController

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single provisioning step.

    Steps may also define ``restore_context(ctx)``: a side-effect-free
    rebuild of the context values the step would normally produce, called
    when the step body is skipped so later steps still see them.
    """

    step_id: str

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ...


@dataclass
class PipelineResult:
    ctx: ProvisioningContext
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    forced_steps: List[str] = field(default_factory=list)


def run_pipeline(
    *,
    ctx: ProvisioningContext,
    steps: Sequence[Step],
    controller: Optional[StepController] = None,
    record: Optional[Dict[str, Any]] = None,
) -> PipelineResult:
    """Run steps strictly in order, each gated by the step controller."""

    controller = controller or StepController()
    result = PipelineResult(ctx=ctx)
    exe = record.setdefault("execution", {}) if record is not None else {}

    for step in steps:
        exe["current_step"] = step.step_id
        was_armed = controller.armed

        if not controller.may_run(step.step_id):
            result.skipped_steps.append(step.step_id)
            restore = getattr(step, "restore_context", None)
            if restore is not None:
                logger.debug("Restoring context for skipped step %s", step.step_id)
                ctx = restore(ctx)
            continue

        # Ran while the jump target was still armed: forced through by no-skip.
        if was_armed and controller.armed:
            result.forced_steps.append(step.step_id)

        logger.info("Running step %s", step.step_id)
        ctx = step.run(ctx)
        result.ran_steps.append(step.step_id)
        exe.setdefault("completed_steps", []).append(step.step_id)

    exe["current_step"] = None
    result.ctx = ctx
    return result
