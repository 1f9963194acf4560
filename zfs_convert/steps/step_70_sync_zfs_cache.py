from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.zed import populate_zfs_list_cache

logger = logging.getLogger(__name__)


class SyncZfsCacheStep:
    step_id = "70_sync_zfs_cache"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        _, rpool = ctx.require_pools()
        populate_zfs_list_cache(target_root=ctx.target_root, rpool=rpool.name, dry_run=ctx.dry_run)
        return ctx
