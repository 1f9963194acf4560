from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.mounts import unmount_virtual_filesystems
from ..lib.zfs import export_all_pools

logger = logging.getLogger(__name__)


class UnmountExportStep:
    step_id = "80_unmount_export"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        unmount_virtual_filesystems(ctx.target_root, dry_run=ctx.dry_run)
        export_all_pools(dry_run=ctx.dry_run)
        return ctx
