from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path


def _default_log_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "zfs-on-debian")


@dataclass(frozen=True)
class Paths:
    mount_dir: str = "/mnt"
    log_dir: str = field(default_factory=_default_log_dir)
    ssh_authorized_keys: str = "/root/.ssh/authorized_keys"

    @property
    def install_log(self) -> str:
        return str(Path(self.log_dir) / "install.log")

    @property
    def disks_log(self) -> str:
        return str(Path(self.log_dir) / "disks.log")

    @property
    def lsb_release_log(self) -> str:
        return str(Path(self.log_dir) / "lsb_release.log")

    @property
    def state_default(self) -> str:
        return str(Path(self.log_dir) / "state.json")


PATHS = Paths()
