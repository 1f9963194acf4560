from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def pack_old_system(
    *,
    source_device: str,
    mount_dir: str,
    archive: str,
    dry_run: bool = False,
) -> None:
    """Archive the pre-existing root filesystem before its disk gets wiped."""

    logger.info("Packing old system from %s into %s", source_device, archive)
    run_cmd(["mkdir", "-p", mount_dir], dry_run=dry_run)
    run_cmd(["mount", source_device, mount_dir], dry_run=dry_run)
    try:
        run_cmd(["tar", "-c", "-z", "-f", archive, "-C", mount_dir, "."], dry_run=dry_run)
    finally:
        run_cmd(["umount", mount_dir], dry_run=dry_run)


def restore_old_system(*, archive: str, target_root: str, dry_run: bool = False) -> None:
    logger.info("Extracting old system into %s", target_root)
    run_cmd(["tar", "-x", "-z", "-f", archive, "-C", target_root], dry_run=dry_run)
