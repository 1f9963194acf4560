from __future__ import annotations

import logging
import os
from typing import Iterable, List

from ..errors import SettleTimeoutError
from .command import run_cmd
from .layout import PoolSpec, is_block_device
from .poll import wait_until

logger = logging.getLogger(__name__)

POOL_CACHE_FILE = "/etc/zpool.cache"

EXPORT_TIMEOUT_S = 60.0
EXPORT_INTERVAL_S = 1.0

ZVOL_TIMEOUT_S = 10.0
ZVOL_INTERVAL_S = 0.5

ENCRYPTION_OPTIONS = [
    "-O", "encryption=aes-256-gcm",
    "-O", "keylocation=prompt",
    "-O", "keyformat=passphrase",
]

SWAP_PROPERTIES = {
    "compression": "zle",
    "logbias": "throughput",
    "sync": "always",
    "primarycache": "metadata",
    "secondarycache": "none",
    "com.sun:auto-snapshot": "false",
}


def root_dataset(rpool: str) -> str:
    return f"{rpool}/ROOT/debian"


def boot_dataset(bpool: str) -> str:
    return f"{bpool}/BOOT/debian"


def swap_zvol(rpool: str) -> str:
    return f"{rpool}/swap"


def export_stale_pools(names: Iterable[str], *, dry_run: bool = False) -> None:
    """Detach pools left behind by a previous failed run; absent pools are fine."""

    for name in names:
        run_cmd(["zpool", "export", name], check=False, dry_run=dry_run)


def zpool_create_argv(spec: PoolSpec, *, mount_dir: str) -> List[str]:
    argv = ["zpool", "create", *spec.tweaks, "-m", "none", "-o", f"cachefile={POOL_CACHE_FILE}"]
    if spec.role == "boot":
        argv += ["-o", "compatibility=grub2"]
    if spec.encrypted:
        argv += ENCRYPTION_OPTIONS
    argv += ["-O", "mountpoint=none", "-R", mount_dir, "-f", spec.name, *spec.vdev_args]
    return argv


def create_pool(spec: PoolSpec, *, mount_dir: str, dry_run: bool = False) -> None:
    logger.info("Creating %s pool: %s (mirror=%s, members=%d)", spec.role, spec.name, spec.mirror, len(spec.members))
    run_cmd(
        zpool_create_argv(spec, mount_dir=mount_dir),
        input_text=spec.passphrase if spec.encrypted else None,
        dry_run=dry_run,
    )


def create_datasets(bpool: str, rpool: str, *, dry_run: bool = False) -> None:
    run_cmd(["zfs", "create", "-o", "canmount=off", "-o", "mountpoint=none", f"{rpool}/ROOT"], dry_run=dry_run)
    run_cmd(["zfs", "create", "-o", "canmount=off", "-o", "mountpoint=none", f"{bpool}/BOOT"], dry_run=dry_run)

    run_cmd(["zfs", "create", "-o", "canmount=noauto", "-o", "mountpoint=/", root_dataset(rpool)], dry_run=dry_run)
    run_cmd(["zfs", "mount", root_dataset(rpool)], dry_run=dry_run)

    run_cmd(["zfs", "create", "-o", "canmount=noauto", "-o", "mountpoint=/boot", boot_dataset(bpool)], dry_run=dry_run)
    run_cmd(["zfs", "mount", boot_dataset(bpool)], dry_run=dry_run)


def swap_block_size(page_size: int | None = None) -> int:
    # 8K is the smallest volblocksize ZFS does not warn about
    if page_size is None:
        page_size = os.sysconf("SC_PAGE_SIZE")
    return max(8192, page_size)


def create_swap_zvol(rpool: str, size_gb: int, *, dry_run: bool = False) -> str:
    block = swap_block_size()
    logger.info("Creating swap volume with %d-byte blocks", block)

    argv = ["zfs", "create", "-V", f"{size_gb}G", "-b", str(block)]
    for key, value in SWAP_PROPERTIES.items():
        argv += ["-o", f"{key}={value}"]
    argv.append(swap_zvol(rpool))
    run_cmd(argv, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)

    dev = f"/dev/zvol/{swap_zvol(rpool)}"
    if not dry_run and not wait_until(lambda: is_block_device(dev), ZVOL_TIMEOUT_S, ZVOL_INTERVAL_S):
        raise SettleTimeoutError(f"Swap zvol device {dev} did not appear")
    run_cmd(["mkswap", "-f", dev], dry_run=dry_run)
    return dev


def zfs_set(prop: str, dataset: str, *, dry_run: bool = False) -> None:
    run_cmd(["zfs", "set", prop, dataset], dry_run=dry_run)


def export_all_pools(*, dry_run: bool = False) -> None:
    """Export every pool, retrying while datasets are still busy."""

    logger.info("Exporting zfs pools")
    if dry_run:
        run_cmd(["zpool", "export", "-a"], dry_run=True)
        return

    def _exported() -> bool:
        return run_cmd(["zpool", "export", "-a"], check=False).returncode == 0

    if not wait_until(_exported, EXPORT_TIMEOUT_S, EXPORT_INTERVAL_S):
        raise SettleTimeoutError(f"Failed to export zfs pools within {EXPORT_TIMEOUT_S:.0f}s")
    logger.info("All zfs pools were successfully exported")
