from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.disks import BY_PATH_DIR, find_suitable_disks, known_disks

logger = logging.getLogger(__name__)


class FindSuitableDisksStep:
    step_id = "10_find_suitable_disks"

    def __init__(self, by_path_dir: str = BY_PATH_DIR) -> None:
        self.by_path_dir = by_path_dir

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx.suitable_disks = find_suitable_disks(
            by_path_dir=self.by_path_dir,
            dump_path=ctx.paths.disks_log,
            dry_run=ctx.dry_run,
        )
        logger.info("Suitable disks: %s", ", ".join(d.path for d in ctx.suitable_disks))
        return ctx

    def restore_context(self, ctx: ProvisioningContext) -> ProvisioningContext:
        # A resumed run finds its own pools and ESP mounted, so the mount filter is skipped here.
        ctx.suitable_disks = known_disks(by_path_dir=self.by_path_dir)
        logger.info("Known disks: %s", ", ".join(d.path for d in ctx.suitable_disks))
        return ctx
