from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import InstallConfig
from .errors import PreconditionError
from .lib.disks import Disk
from .lib.env import PATHS, Paths
from .lib.layout import DiskPartitions, PartitionPlan, PoolSpec


@dataclass
class ProvisioningContext:
    """Everything the steps share, passed explicitly from one step to the next."""

    config: InstallConfig
    paths: Paths = PATHS
    hardware: Dict[str, Any] = field(default_factory=dict)
    suitable_disks: List[Disk] = field(default_factory=list)
    selected_disks: List[Disk] = field(default_factory=list)
    plans: List[PartitionPlan] = field(default_factory=list)
    partitions: List[DiskPartitions] = field(default_factory=list)
    bpool: Optional[PoolSpec] = None
    rpool: Optional[PoolSpec] = None
    swap_device: Optional[str] = None

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    @property
    def target_root(self) -> str:
        return self.config.mount_dir

    @property
    def efi_mode(self) -> bool:
        return self.hardware.get("firmware") == "efi"

    @property
    def mirror(self) -> bool:
        return len(self.selected_disks) >= 2 and self.config.mirror

    def require_pools(self) -> tuple[PoolSpec, PoolSpec]:
        if self.bpool is None or self.rpool is None:
            raise PreconditionError("Pool specs missing; run 35_create_pools first")
        return self.bpool, self.rpool

    def layout_summary(self) -> Dict[str, Any]:
        return {
            "selected_disks": [d.path for d in self.selected_disks],
            "mirror": self.mirror,
            "partitions": [
                {
                    "disk": p.disk.path,
                    "efi_partuuid": p.efi_partuuid,
                    "boot_member": p.boot_member,
                    "root_member": p.root_member,
                }
                for p in self.partitions
            ],
            "bpool": None if self.bpool is None else {"name": self.bpool.name, "members": list(self.bpool.members)},
            "rpool": None
            if self.rpool is None
            else {"name": self.rpool.name, "members": list(self.rpool.members), "encrypted": self.rpool.encrypted},
        }
