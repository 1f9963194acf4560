from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

from .chroot import execute_in_target
from .command import run_cmd

logger = logging.getLogger(__name__)


def install_grub_efi(*, target_root: str, dry_run: bool = False) -> None:
    """Install GRUB for x86_64 EFI targets."""

    # Assumes /boot/efi is mounted in target.
    execute_in_target(
        target_root,
        [
            "grub-install",
            "--target=x86_64-efi",
            "--efi-directory=/boot/efi",
            "--bootloader-id=debian",
            "--recheck",
        ],
        dry_run=dry_run,
    )
    logger.info("GRUB EFI installed")


def install_grub_bios(*, target_root: str, disks: Sequence[str], dry_run: bool = False) -> None:
    """Install GRUB into the BIOS boot partition of every pool member disk."""

    for disk in disks:
        execute_in_target(target_root, ["grub-install", "--recheck", disk], dry_run=dry_run)
    logger.info("GRUB BIOS installed on %d disk(s)", len(disks))


def render_default_grub(text: str, *, rpool: str) -> str:
    """Edit /etc/default/grub for a ZFS root on a headless server."""

    text = text.replace("#GRUB_TERMINAL=console", "GRUB_TERMINAL=console")
    text = re.sub(
        r"^GRUB_CMDLINE_LINUX_DEFAULT=.*$",
        'GRUB_CMDLINE_LINUX_DEFAULT="net.ifnames=0"',
        text,
        flags=re.MULTILINE,
    )
    text = text.replace('GRUB_CMDLINE_LINUX=""', f'GRUB_CMDLINE_LINUX="root=ZFS={rpool}/ROOT/debian"')
    text = text.replace("quiet", "").replace("splash", "")
    if "GRUB_DISABLE_OS_PROBER=true" not in text:
        if text and not text.endswith("\n"):
            text += "\n"
        text += "GRUB_DISABLE_OS_PROBER=true\n"
    return text


def configure_default_grub(*, target_root: str, rpool: str, dry_run: bool = False) -> None:
    cfg = Path(target_root) / "etc/default/grub"
    if dry_run:
        logger.info("Would edit %s", cfg)
        return
    original = cfg.read_text(encoding="utf-8") if cfg.exists() else ""
    cfg.write_text(render_default_grub(original, rpool=rpool), encoding="utf-8")
    logger.info("Wrote GRUB defaults: %s", cfg)


def clone_efi_partitions(efi_devices: Sequence[str], *, dry_run: bool = False) -> None:
    """Copy the first ESP onto every other one so each mirror member can boot."""

    if len(efi_devices) < 2:
        return
    src = efi_devices[0]
    for dst in efi_devices[1:]:
        run_cmd(["dd", f"if={src}", f"of={dst}", "bs=1M", "conv=fsync"], dry_run=dry_run)


def update_initramfs_and_grub(*, target_root: str, dry_run: bool = False) -> None:
    execute_in_target(target_root, ["update-initramfs", "-u", "-k", "all"], dry_run=dry_run)
    execute_in_target(target_root, ["update-grub"], dry_run=dry_run)
