from __future__ import annotations

import logging
from typing import List, Sequence

from ..context import ProvisioningContext
from ..errors import PreconditionError
from ..lib.disks import Disk, canonical

logger = logging.getLogger(__name__)


def select_disks(suitable: Sequence[Disk], requested: Sequence[str]) -> List[Disk]:
    """Match requested disk paths against the suitable set by canonical device path.

    With nothing requested, a single suitable disk is taken as the selection.
    """

    if not requested:
        if len(suitable) == 1:
            return [suitable[0]]
        raise PreconditionError(
            "Several suitable disks found; choose with --disk: "
            + ", ".join(d.path for d in suitable)
        )

    by_real = {d.real_path: d for d in suitable}
    selected: List[Disk] = []
    for path in requested:
        disk = by_real.get(canonical(path))
        if disk is None:
            raise PreconditionError(
                f"{path} is not a suitable disk (mounted, optical or unknown); "
                f"suitable: {', '.join(d.path for d in suitable) or 'none'}"
            )
        if disk not in selected:
            selected.append(disk)
    return selected


class SelectDisksStep:
    step_id = "15_select_disks"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx.selected_disks = select_disks(ctx.suitable_disks, ctx.config.disks)
        logger.info(
            "Selected disks: %s (mirror=%s)",
            ", ".join(d.path for d in ctx.selected_disks),
            ctx.mirror,
        )
        if len(ctx.selected_disks) > 1 and not ctx.config.mirror:
            logger.warning("Multiple disks without --mirror: pools will be striped (no redundancy)")
        return ctx

    restore_context = run
