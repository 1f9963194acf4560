from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.chroot import copy_host_resolv_conf, mount_chroot_binds

logger = logging.getLogger(__name__)


class PrepareChrootStep:
    step_id = "45_prepare_chroot"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        mount_chroot_binds(ctx.target_root, dry_run=ctx.dry_run)
        copy_host_resolv_conf(ctx.target_root, dry_run=ctx.dry_run)
        logger.info("Target environment ready at %s", ctx.target_root)
        return ctx
