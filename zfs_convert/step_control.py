"""Debug jump/no-skip filter wrapped around every pipeline step.

A jump target names the step where normal execution should resume. Until
that step is reached every other step body is skipped, except those listed in
the no-skip set. Reaching the target disarms it for the rest of the run.

Targets and no-skip entries are either a step name (``find_suitable_disks``
or the full id ``10_find_suitable_disks``), a step position (``30``) or an
inclusive position range (``30-50``). A step's position is the numeric
prefix of its id.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .errors import ConfigError

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^([0-9]+)(?:-([0-9]+))?$")
_STEP_ID_RE = re.compile(r"^([0-9]+)_(.+)$")


def split_step_id(step_id: str) -> Tuple[Optional[int], str]:
    """'30_partition_disks' -> (30, 'partition_disks'); ids without a prefix have no position."""

    m = _STEP_ID_RE.match(step_id)
    if not m:
        return None, step_id
    return int(m.group(1)), m.group(2)


@dataclass(frozen=True)
class StepTarget:
    name: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> "StepTarget":
        raw = (text or "").strip()
        if not raw:
            raise ConfigError("Empty step target")
        m = _RANGE_RE.match(raw)
        if m:
            start = int(m.group(1))
            end = int(m.group(2)) if m.group(2) is not None else start
            if end < start:
                raise ConfigError(f"Invalid step range {raw!r}: end before start")
            return cls(start=start, end=end)
        return cls(name=raw)

    def matches(self, step_id: str) -> bool:
        position, name = split_step_id(step_id)
        if self.name is not None:
            return self.name in (step_id, name)
        if position is None:
            return False
        return self.start <= position <= self.end  # type: ignore[operator]

    def __str__(self) -> str:
        if self.name is not None:
            return self.name
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"


class StepController:
    """One-shot jump latch plus a no-skip allow list.

    With no jump target every step runs. The latch never re-arms, so a step
    id seen again after the target was reached simply runs.
    """

    def __init__(self, jump_to: Optional[str] = None, no_skips: Iterable[str] = ()) -> None:
        self.target: Optional[StepTarget] = StepTarget.parse(jump_to) if jump_to else None
        self.no_skips: List[StepTarget] = [StepTarget.parse(s) for s in no_skips if s and s.strip()]

    @property
    def armed(self) -> bool:
        return self.target is not None

    def may_run(self, step_id: str) -> bool:
        if self.target is None:
            return True

        if self.target.matches(step_id):
            logger.info("=== DEBUG: *** TARGET REACHED *** step %s (target: %s) ===", step_id, self.target)
            self.target = None
            return True

        for item in self.no_skips:
            if item.matches(step_id):
                logger.info(
                    "=== DEBUG: Executing step %s (target: %s) [NO_SKIPS enabled, matched %s] ===",
                    step_id,
                    self.target,
                    item,
                )
                return True

        logger.info("=== DEBUG: Skipping step %s (target: %s) ===", step_id, self.target)
        return False
