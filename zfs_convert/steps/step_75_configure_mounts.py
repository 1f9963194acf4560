from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.command import run_cmd
from ..lib.fstab import render_fstab, zfs_fstab_entries
from ..lib.target_files import disable_resume, write_target_file
from ..lib.zfs import boot_dataset, zfs_set

logger = logging.getLogger(__name__)


class ConfigureMountsStep:
    step_id = "75_configure_mounts"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        root = ctx.target_root
        dry_run = ctx.dry_run
        bpool, _ = ctx.require_pools()

        # The ESP was mounted for grub-install in both firmware modes.
        run_cmd(["umount", f"{root}/boot/efi"], dry_run=dry_run)

        zfs_set("mountpoint=legacy", boot_dataset(bpool.name), dry_run=dry_run)

        entries = zfs_fstab_entries(
            boot_dataset=boot_dataset(bpool.name),
            swap_device=ctx.swap_device if ctx.config.swap_size_gb > 0 else None,
            efi_device=ctx.partitions[0].efi_device if ctx.efi_mode and ctx.partitions else None,
        )
        write_target_file(root, "/etc/fstab", render_fstab(entries), dry_run=dry_run)
        disable_resume(root, dry_run=dry_run)
        return ctx
