from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.command import run_cmd
from ..lib.payload import restore_old_system
from ..lib.zfs import zfs_set

logger = logging.getLogger(__name__)


class RestorePayloadStep:
    step_id = "40_restore_payload"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        cfg = ctx.config
        dry_run = ctx.dry_run
        _, rpool = ctx.require_pools()

        restore_old_system(archive=cfg.payload_path, target_root=ctx.target_root, dry_run=dry_run)

        efi_devices = [p.efi_device for p in ctx.partitions]
        for dev in efi_devices:
            run_cmd(["mkfs.fat", "-F32", dev], dry_run=dry_run)

        esp_mount = f"{ctx.target_root}/boot/efi"
        run_cmd(["mkdir", "-p", esp_mount], dry_run=dry_run)
        run_cmd(["mount", efi_devices[0], esp_mount], dry_run=dry_run)

        zfs_set("devices=off", rpool.name, dry_run=dry_run)
        return ctx
