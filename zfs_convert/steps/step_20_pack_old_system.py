from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.payload import pack_old_system

logger = logging.getLogger(__name__)


class PackOldSystemStep:
    step_id = "20_pack_old_system"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        cfg = ctx.config
        pack_old_system(
            source_device=cfg.source_device,
            mount_dir=cfg.mount_dir,
            archive=cfg.payload_path,
            dry_run=ctx.dry_run,
        )
        return ctx
