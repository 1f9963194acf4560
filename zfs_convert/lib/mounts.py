from __future__ import annotations

import logging
from typing import Iterable

from .command import run_cmd
from .poll import wait_until

logger = logging.getLogger(__name__)

UNMOUNT_TIMEOUT_S = 5.0
UNMOUNT_INTERVAL_S = 0.5


def is_mountpoint(path: str) -> bool:
    return run_cmd(["mountpoint", "-q", path], check=False).returncode == 0


def force_unmount(path: str, *, dry_run: bool = False) -> None:
    run_cmd(["umount", "--recursive", "--force", "--lazy", path], check=False, dry_run=dry_run)


def unmount_and_settle(paths: Iterable[str], *, dry_run: bool = False) -> list[str]:
    """Lazily unmount paths, wait for them to go away, then escalate once.

    Lazy unmounts detach asynchronously, so each path gets a bounded wait.
    Anything still mounted afterwards gets exactly one more forced unmount and a
    final check. Returns the paths that are still mounted after that; the pool
    export that follows is the fatal gate for a busy target.
    """

    paths = list(paths)
    for p in paths:
        force_unmount(p, dry_run=dry_run)

    if dry_run:
        return []

    def _all_gone() -> bool:
        return not any(is_mountpoint(p) for p in paths)

    if wait_until(_all_gone, UNMOUNT_TIMEOUT_S, UNMOUNT_INTERVAL_S):
        return []

    for p in paths:
        if is_mountpoint(p):
            logger.warning("Re-issuing umount for %s", p)
            force_unmount(p)

    still = [p for p in paths if is_mountpoint(p)]
    if still:
        logger.warning("Still mounted after forced unmount: %s", ", ".join(still))
    return still


def unmount_virtual_filesystems(target_root: str, *, dry_run: bool = False) -> list[str]:
    return unmount_and_settle([f"{target_root}/{d}" for d in ("dev", "sys", "proc")], dry_run=dry_run)
