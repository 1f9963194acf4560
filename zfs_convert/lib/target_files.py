from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

DKMS_ZFS_CONF = """\
# override for /usr/src/zfs-*/dkms.conf:
# always rebuild initrd when zfs module has been changed
# (either by a ZFS update or a new kernel version)
REMAKE_INITRD="yes"
"""

_IMPORT_SCRIPT = """\
#!/bin/sh
PREREQ="zfs"

prereqs() {{
    echo "$PREREQ"
}}

case $1 in
prereqs)
    prereqs
    exit 0
    ;;
esac

if ! zpool list {pool} >/dev/null 2>&1; then
    zpool import -N {pool} 2>/dev/null || \\
    zpool import -d /dev/disk/by-path -N {pool} 2>/dev/null || \\
    zpool import -c /etc/zfs/zpool.cache -N {pool} 2>/dev/null || true
fi
"""


def render_pool_import_script(pool: str) -> str:
    return _IMPORT_SCRIPT.format(pool=pool)


def write_target_file(
    target_root: str,
    rel_path: str,
    contents: str,
    *,
    append: bool = False,
    mode: int | None = None,
    dry_run: bool = False,
) -> Path:
    """Write a file inside the target from the host side."""

    p = Path(target_root) / rel_path.lstrip("/")
    if dry_run:
        logger.info("Would %s %s", "append to" if append else "write", p)
        return p

    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "a" if append else "w", encoding="utf-8") as f:
        f.write(contents)
    if mode is not None:
        os.chmod(p, mode)
    logger.info("Wrote %s", p)
    return p


def write_dkms_conf(target_root: str, *, dry_run: bool = False) -> None:
    write_target_file(target_root, "/etc/dkms/zfs.conf", DKMS_ZFS_CONF, dry_run=dry_run)


def write_arc_max(target_root: str, arc_max_mb: int, *, dry_run: bool = False) -> None:
    if arc_max_mb <= 0:
        logger.info("ZFS ARC max left at the module default")
        return
    arc_bytes = arc_max_mb * 1024 * 1024
    write_target_file(
        target_root,
        "/etc/modprobe.d/zfs.conf",
        f"options zfs zfs_arc_max={arc_bytes}\n",
        append=True,
        dry_run=dry_run,
    )


def write_pool_import_script(target_root: str, pool: str, *, dry_run: bool = False) -> None:
    write_target_file(
        target_root,
        f"/etc/initramfs-tools/scripts/local-top/zfs-import-{pool}",
        render_pool_import_script(pool),
        mode=0o755,
        dry_run=dry_run,
    )


def copy_pool_cache(target_root: str, cache_file: str, *, dry_run: bool = False) -> None:
    dst = Path(target_root) / "etc/zfs/zpool.cache"
    logger.info("Copying %s to %s", cache_file, dst)
    if not dry_run:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(cache_file, dst)


def write_hostname(target_root: str, hostname: str, *, dry_run: bool = False) -> None:
    write_target_file(target_root, "/etc/hostname", hostname + "\n", dry_run=dry_run)


def write_keyboard_layout(target_root: str, layout: str, *, dry_run: bool = False) -> None:
    contents = (
        'XKBMODEL="pc105"\n'
        f'XKBLAYOUT="{layout}"\n'
        'XKBVARIANT=""\n'
        'XKBOPTIONS=""\n'
        'BACKSPACE="guess"\n'
    )
    write_target_file(target_root, "/etc/default/keyboard", contents, dry_run=dry_run)


def disable_resume(target_root: str, *, dry_run: bool = False) -> None:
    write_target_file(target_root, "/etc/initramfs-tools/conf.d/resume", "RESUME=none\n", dry_run=dry_run)
