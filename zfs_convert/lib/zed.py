"""ZFS event daemon (ZED) bootstrap of the zfs-list cache.

systemd's zfs-mount-generator reads /etc/zfs/zfs-list.cache/<pool> at boot.
The only supported way to populate it is to let ZED's history_event zedlet
write it, so the daemon is started inside the target and the cache file is
polled until ZED has filled it.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from pathlib import Path

from ..errors import SettleTimeoutError
from .chroot import execute_in_target
from .command import start_background
from .poll import wait_until

logger = logging.getLogger(__name__)

CACHE_TIMEOUT_S = 120.0
CACHE_INTERVAL_S = 1.0

ZEDLET = "/usr/lib/zfs-linux/zed.d/history_event-zfs-list-cacher.sh"


def cache_file(target_root: str, rpool: str) -> Path:
    return Path(target_root) / "etc/zfs/zfs-list.cache" / rpool


def cache_populated(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def strip_mount_prefix(path: Path, mount_dir: str) -> None:
    """Rewrite mountpoints recorded under the temporary altroot to their final paths."""

    prefix = re.escape("/" + mount_dir.strip("/"))
    text = path.read_text(encoding="utf-8")
    path.write_text(re.sub(prefix + "/?", "/", text), encoding="utf-8")


def populate_zfs_list_cache(
    *,
    target_root: str,
    rpool: str,
    dry_run: bool = False,
) -> None:
    cache = cache_file(target_root, rpool)

    execute_in_target(target_root, ["mkdir", "-p", "/etc/zfs/zfs-list.cache"], dry_run=dry_run)
    execute_in_target(target_root, ["touch", f"/etc/zfs/zfs-list.cache/{rpool}"], dry_run=dry_run)
    execute_in_target(target_root, ["ln", "-sf", ZEDLET, "/etc/zfs/zed.d/"], dry_run=dry_run)

    zed = start_background(["chroot", target_root, "zed", "-F"], dry_run=dry_run)
    try:
        if dry_run:
            return
        if not cache_populated(cache):
            # Any property change emits a history event, which makes ZED write the cache.
            execute_in_target(target_root, ["zfs", "set", "canmount=noauto", rpool])
            if not wait_until(lambda: cache_populated(cache), CACHE_TIMEOUT_S, CACHE_INTERVAL_S):
                raise SettleTimeoutError(
                    "Fatal zed daemon error: the ZFS cache hasn't been updated by ZED! "
                    f"({cache} still empty after {CACHE_TIMEOUT_S:.0f}s)"
                )
    finally:
        if zed is not None:
            zed.terminate()
            try:
                zed.wait(timeout=10)
            except subprocess.TimeoutExpired:
                zed.kill()

    strip_mount_prefix(cache, target_root)
    logger.info("ZFS list cache populated: %s (%d bytes)", cache, os.path.getsize(cache))
