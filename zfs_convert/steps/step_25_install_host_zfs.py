from __future__ import annotations

import logging
import os
import platform

from ..context import ProvisioningContext
from ..errors import PreconditionError
from ..lib.command import run_cmd
from ..lib.hwdetect import host_codename
from ..lib.pkg import ZFS_DKMS_LICENSE_NOTE, host_apt_install, host_debconf_set, write_host_sources_list

logger = logging.getLogger(__name__)

HOST_ZFS_PACKAGES = ["zfs-dkms", "zfsutils-linux", "gdisk", "dosfstools", "zfs-zed"]

# Rescue images sometimes ship their own ZFS build here, shadowing the packaged one.
STALE_LOCAL_BINARIES = [
    "fsck.zfs", "zdb", "zed", "zfs", "zfs_ids_to_path", "zgenhostid", "zhack",
    "zinject", "zpool", "zstream", "zstreamdump", "ztest",
]


class InstallHostZfsStep:
    """Install a ZFS matching the target's on the rescue host."""

    step_id = "25_install_host_zfs"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        dry_run = ctx.dry_run
        cfg = ctx.config

        codename = host_codename()
        if not codename:
            raise PreconditionError("lsb_release failed; cannot determine host codename")

        write_host_sources_list(
            codename,
            packages_repo=cfg.deb_packages_repo,
            security_repo=cfg.deb_security_repo,
            dry_run=dry_run,
        )
        run_cmd(["apt-get", "update"], dry_run=dry_run)

        kernel = platform.release()
        if not host_apt_install([f"linux-headers-{kernel}", f"linux-image-{kernel}"], check=False, dry_run=dry_run):
            logger.warning("Kernel headers for %s unavailable; DKMS build may fail", kernel)

        for name in STALE_LOCAL_BINARIES:
            p = f"/usr/local/sbin/{name}"
            if os.path.lexists(p):
                logger.info("Removing stale %s", p)
                if not dry_run:
                    os.remove(p)

        host_debconf_set(ZFS_DKMS_LICENSE_NOTE, dry_run=dry_run)
        host_apt_install(
            HOST_ZFS_PACKAGES,
            release=f"{codename}-backports",
            extra_args=["--no-install-recommends", "--no-upgrade"],
            dry_run=dry_run,
        )
        run_cmd(["zfs", "--version"], dry_run=dry_run)
        logger.info("ZFS installation completed")
        return ctx
