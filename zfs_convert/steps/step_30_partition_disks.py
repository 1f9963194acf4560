from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.command import run_cmd
from ..lib.layout import apply_partition_plan, plan_partitions

logger = logging.getLogger(__name__)


class PartitionDisksStep:
    step_id = "30_partition_disks"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx = self.restore_context(ctx)
        # Strictly one disk after another; the first failure aborts the run.
        for plan in ctx.plans:
            apply_partition_plan(plan, dry_run=ctx.dry_run)
        run_cmd(["udevadm", "settle"], check=False, dry_run=ctx.dry_run)
        return ctx

    def restore_context(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx.plans = plan_partitions(ctx.selected_disks, ctx.config.tail_reserve_bytes)
        return ctx
