from __future__ import annotations

import filecmp
import logging
import os
import shutil
from pathlib import Path
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

VIRTUAL_FS_DIRS = ("proc", "sys", "dev")

_TARGET_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def execute_in_target(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
    dry_run: bool = False,
) -> int:
    """Run a command inside target root and return its exit status.

    A non-zero status raises CommandError unless check=False, which callers
    use for commands that may legitimately no-op (package purges, cleanups).
    """

    r = run_cmd(
        ["chroot", target_root, *argv],
        check=check,
        env=_TARGET_ENV,
        input_text=input_text,
        dry_run=dry_run,
    )
    return r.returncode


def mount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    # Recursive binds so grub-install and zed see nested /dev/pts, /sys/firmware/efi/efivars
    for name in VIRTUAL_FS_DIRS:
        dst = f"{target_root}/{name}"
        if not dry_run:
            Path(dst).mkdir(parents=True, exist_ok=True)
        run_cmd(["mount", "--rbind", f"/{name}", dst], dry_run=dry_run)


def copy_host_resolv_conf(target_root: str, *, dry_run: bool = False) -> None:
    """Give the target working DNS when its resolv.conf is a dangling or stale symlink."""

    resolv = Path(target_root) / "etc/resolv.conf"
    if not resolv.is_symlink():
        return

    # Resolve the link as seen from inside the target, not from the host.
    link = os.readlink(resolv)
    if os.path.isabs(link):
        dst = Path(target_root) / link.lstrip("/")
    else:
        dst = resolv.parent / link
    dst = Path(os.path.normpath(dst))

    if dst.exists() and filecmp.cmp("/etc/resolv.conf", dst, shallow=False):
        return

    logger.info("Copying host resolv.conf to %s", dst)
    if not dry_run:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile("/etc/resolv.conf", dst)
