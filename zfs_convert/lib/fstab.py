from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return f"{self.spec} {self.mountpoint} {self.fstype} {self.options} {self.dump} {self.passno}"


def render_fstab(entries: Iterable[FstabEntry]) -> str:
    return "".join(e.render() + "\n" for e in entries)


def zfs_fstab_entries(
    *,
    boot_dataset: str,
    swap_device: str | None,
    efi_device: str | None,
) -> list[FstabEntry]:
    """Entries for a ZFS root: /boot is a legacy-mounted dataset, / is mounted by zfs itself."""

    entries = [
        FstabEntry(
            spec=boot_dataset,
            mountpoint="/boot",
            fstype="zfs",
            options="nodev,relatime,x-systemd.requires=zfs-mount.service,x-systemd.device-timeout=10",
        )
    ]
    if swap_device:
        entries.append(FstabEntry(spec=swap_device, mountpoint="none", fstype="swap", options="discard"))
    if efi_device:
        entries.append(FstabEntry(spec=efi_device, mountpoint="/boot/efi", fstype="vfat", passno=2))
    return entries
