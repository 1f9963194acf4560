from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.bootloader import (
    clone_efi_partitions,
    configure_default_grub,
    install_grub_bios,
    install_grub_efi,
    update_initramfs_and_grub,
)
from ..lib.pkg import apt_install, apt_upgrade, debconf_set

logger = logging.getLogger(__name__)


class InstallBootloaderStep:
    step_id = "60_install_bootloader"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        root = ctx.target_root
        dry_run = ctx.dry_run
        _, rpool = ctx.require_pools()

        if ctx.efi_mode:
            apt_install(root, ["grub-efi-amd64"], dry_run=dry_run)
            install_grub_efi(target_root=root, dry_run=dry_run)
        else:
            debconf_set(root, "grub-pc grub-pc/install_devices_empty boolean true\n", dry_run=dry_run)
            apt_install(root, ["grub-pc"], dry_run=dry_run)
            install_grub_bios(target_root=root, disks=[d.path for d in ctx.selected_disks], dry_run=dry_run)

        configure_default_grub(target_root=root, rpool=rpool.name, dry_run=dry_run)
        clone_efi_partitions([p.efi_device for p in ctx.partitions], dry_run=dry_run)

        apt_upgrade(root, dry_run=dry_run)
        update_initramfs_and_grub(target_root=root, dry_run=dry_run)

        logger.info("Bootloader configured (firmware=%s)", ctx.hardware.get("firmware"))
        return ctx
