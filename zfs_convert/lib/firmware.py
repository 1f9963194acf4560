from __future__ import annotations

from pathlib import Path


def detect_firmware(efivars: str = "/sys/firmware/efi/efivars") -> str:
    """Detect firmware type for the *currently running* environment.

    Returns: 'efi' or 'bios'. The target boots the same way the rescue system did.
    """

    if Path(efivars).is_dir():
        return "efi"
    return "bios"
