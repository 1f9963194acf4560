from __future__ import annotations

import logging

from ..config import KEYBOARD_LAYOUTS
from ..context import ProvisioningContext
from ..lib.pkg import ZFS_DKMS_LICENSE_NOTE, apt_install, apt_purge, apt_update, debconf_set
from ..lib.target_files import (
    copy_pool_cache,
    write_arc_max,
    write_dkms_conf,
    write_hostname,
    write_keyboard_layout,
    write_pool_import_script,
)
from ..lib.zfs import POOL_CACHE_FILE

logger = logging.getLogger(__name__)

TARGET_ZFS_PACKAGES = ["zfs-initramfs", "zfs-dkms", "zfsutils-linux", "zfs-zed"]


class InstallTargetPackagesStep:
    step_id = "50_install_target_packages"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        cfg = ctx.config
        root = ctx.target_root
        dry_run = ctx.dry_run
        bpool, _ = ctx.require_pools()
        variant = ctx.hardware.get("kernel_variant", "")

        apt_update(root, dry_run=dry_run)

        logger.info("Installing latest kernel (variant=%r)", variant)
        apt_install(root, [f"linux-image{variant}-amd64", f"linux-headers{variant}-amd64", "dpkg-dev"], dry_run=dry_run)

        # cryptsetup's initramfs hooks do not get along with a ZFS root
        apt_purge(root, ["cryptsetup*"], dry_run=dry_run)

        debconf_set(root, ZFS_DKMS_LICENSE_NOTE, dry_run=dry_run)
        apt_install(root, TARGET_ZFS_PACKAGES, dry_run=dry_run)
        write_dkms_conf(root, dry_run=dry_run)

        copy_pool_cache(root, POOL_CACHE_FILE, dry_run=dry_run)
        write_arc_max(root, cfg.arc_max_mb, dry_run=dry_run)
        write_pool_import_script(root, bpool.name, dry_run=dry_run)

        if cfg.hostname:
            write_hostname(root, cfg.hostname, dry_run=dry_run)
        write_keyboard_layout(root, KEYBOARD_LAYOUTS[cfg.keyboard_layout], dry_run=dry_run)
        return ctx
