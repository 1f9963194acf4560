from __future__ import annotations

import logging
import os

from ..context import ProvisioningContext
from ..errors import InstallerError
from ..lib.command import run_cmd
from ..lib.layout import build_pool_specs, resolve_partitions
from ..lib.mounts import is_mountpoint
from ..lib.zfs import create_datasets, create_pool, create_swap_zvol, export_stale_pools, swap_zvol

logger = logging.getLogger(__name__)


def prepare_mount_dir(mount_dir: str, *, dry_run: bool = False) -> None:
    if not dry_run and is_mountpoint(mount_dir):
        run_cmd(["umount", "-R", mount_dir], check=False)
    run_cmd(["rm", "-rf", mount_dir], dry_run=dry_run)
    if not dry_run and os.path.isdir(mount_dir):
        raise InstallerError(f"rm failed, {mount_dir} is still in use")
    run_cmd(["mkdir", "-p", mount_dir], dry_run=dry_run)


class CreatePoolsStep:
    step_id = "35_create_pools"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        cfg = ctx.config
        dry_run = ctx.dry_run

        export_stale_pools([cfg.bpool_name, cfg.rpool_name], dry_run=dry_run)
        prepare_mount_dir(cfg.mount_dir, dry_run=dry_run)

        ctx = self._plan(ctx)
        bpool, rpool = ctx.require_pools()

        create_pool(bpool, mount_dir=cfg.mount_dir, dry_run=dry_run)
        create_pool(rpool, mount_dir=cfg.mount_dir, dry_run=dry_run)
        create_datasets(bpool.name, rpool.name, dry_run=dry_run)

        if cfg.swap_size_gb > 0:
            ctx.swap_device = create_swap_zvol(rpool.name, cfg.swap_size_gb, dry_run=dry_run)
        return ctx

    def _plan(self, ctx: ProvisioningContext) -> ProvisioningContext:
        cfg = ctx.config
        ctx.partitions = [resolve_partitions(p, dry_run=ctx.dry_run) for p in ctx.plans]
        ctx.bpool, ctx.rpool = build_pool_specs(
            ctx.partitions,
            bpool_name=cfg.bpool_name,
            rpool_name=cfg.rpool_name,
            bpool_tweaks=cfg.bpool_tweaks,
            rpool_tweaks=cfg.rpool_tweaks,
            mirror_confirmed=cfg.mirror,
            passphrase=cfg.passphrase if cfg.encrypt else None,
        )
        return ctx

    def restore_context(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx = self._plan(ctx)
        if ctx.config.swap_size_gb > 0:
            ctx.swap_device = f"/dev/zvol/{swap_zvol(ctx.config.rpool_name)}"
        return ctx
