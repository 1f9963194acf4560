from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import stat
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..errors import ConfigError, InstallerError, PartitionCountError
from .command import run_cmd
from .disks import Disk
from .poll import wait_until

logger = logging.getLogger(__name__)

BY_PARTUUID_DIR = "/dev/disk/by-partuuid"

POOL_NAME_RE = re.compile(r"^[a-z][a-zA-Z_:.-]+$")

SETTLE_TIMEOUT_S = 10.0
SETTLE_INTERVAL_S = 0.5

ROLE_BIOS_BOOT = "bios-boot"
ROLE_EFI = "efi"
ROLE_BOOT_POOL = "boot-pool-member"
ROLE_ROOT_POOL = "root-pool-member"


@dataclass(frozen=True)
class PartitionSpec:
    number: int
    role: str
    start: str
    end: str
    typecode: str


@dataclass(frozen=True)
class PartitionPlan:
    """Fixed four-partition layout for one disk, created by a single sgdisk call."""

    disk: Disk
    partitions: Tuple[PartitionSpec, ...]

    def device(self, number: int) -> str:
        return f"{self.disk.path}-part{number}"

    def by_role(self, role: str) -> PartitionSpec:
        for p in self.partitions:
            if p.role == role:
                return p
        raise KeyError(role)

    def sgdisk_argv(self) -> List[str]:
        argv = ["sgdisk", "-a16"]
        for p in self.partitions:
            argv += [f"-n{p.number}:{p.start}:{p.end}", f"-t{p.number}:{p.typecode}"]
        argv.append(self.disk.path)
        return argv


@dataclass(frozen=True)
class DiskPartitions:
    """Partitions of one disk referenced by partition UUID, never by ordinal."""

    disk: Disk
    efi_partuuid: str
    boot_member: str
    root_member: str

    @property
    def efi_device(self) -> str:
        return partuuid_path(self.efi_partuuid)


@dataclass(frozen=True)
class PoolSpec:
    role: str  # boot|root
    name: str
    tweaks: Tuple[str, ...]
    mirror: bool
    members: Tuple[str, ...]
    passphrase: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        validate_pool_name(self.name)
        if self.passphrase is not None and self.role != "root":
            raise ConfigError("Only the root pool can be encrypted")

    @property
    def encrypted(self) -> bool:
        return self.passphrase is not None

    @property
    def vdev_args(self) -> List[str]:
        return (["mirror"] if self.mirror else []) + list(self.members)


def validate_pool_name(name: str) -> str:
    if not POOL_NAME_RE.match(name or ""):
        raise ConfigError(f"Invalid pool name: {name!r}")
    return name


def tail_end_spec(tail_reserve_bytes: int) -> str:
    """sgdisk end position for the last partition: 0 means "to the end"."""

    if tail_reserve_bytes < 0:
        raise ConfigError("tail reserve must be >= 0")
    if tail_reserve_bytes == 0:
        return "0"
    kib = -(-tail_reserve_bytes // 1024)
    return f"-{kib}K"


def plan_partitions(disks: Sequence[Disk], tail_reserve_bytes: int = 0) -> List[PartitionPlan]:
    tail = tail_end_spec(tail_reserve_bytes)
    scheme = (
        PartitionSpec(1, ROLE_BIOS_BOOT, "24K", "+1000K", "EF02"),
        PartitionSpec(2, ROLE_EFI, "1M", "+1G", "EF00"),
        PartitionSpec(3, ROLE_BOOT_POOL, "0", "+2G", "BF01"),
        PartitionSpec(4, ROLE_ROOT_POOL, "0", tail, "BF00"),
    )
    return [PartitionPlan(disk=d, partitions=scheme) for d in disks]


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def reread_partition_table(disk: str, *, dry_run: bool = False) -> None:
    if shutil.which("partprobe"):
        run_cmd(["partprobe", disk], check=False, dry_run=dry_run)
    elif shutil.which("blockdev"):
        run_cmd(["blockdev", "--rereadpt", disk], check=False, dry_run=dry_run)
    else:
        logger.warning("No partprobe or blockdev found, skipping partition table re-read")


def apply_partition_plan(plan: PartitionPlan, *, dry_run: bool = False) -> List[str]:
    """Wipe the disk, create all four partitions, and wait for their nodes.

    Raises PartitionCountError when any partition node is still missing once
    the settle timeout has run out. No cleanup of the wiped disk is attempted.
    """

    disk = plan.disk.path
    logger.info("Partitioning disk: %s", disk)

    run_cmd(["wipefs", "--all", "--force", disk], dry_run=dry_run)
    run_cmd(plan.sgdisk_argv(), dry_run=dry_run)

    reread_partition_table(disk, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)

    expected = [plan.device(p.number) for p in plan.partitions]
    if dry_run:
        return expected

    if not wait_until(lambda: all(is_block_device(d) for d in expected), SETTLE_TIMEOUT_S, SETTLE_INTERVAL_S):
        missing = [d for d in expected if not is_block_device(d)]
        present = [d for d in expected if d not in missing]
        raise PartitionCountError(disk, missing, present)

    logger.info("Successfully created partitions on %s", disk)
    return expected


def partuuid_path(partuuid: str) -> str:
    return f"{BY_PARTUUID_DIR}/{partuuid}"


def lookup_partuuid(device: str, *, dry_run: bool = False) -> str:
    if dry_run:
        return f"dryrun-{os.path.basename(device)}"
    r = run_cmd(["lsblk", "-no", "PARTUUID", device])
    partuuid = "".join((r.stdout or "").split())
    if not partuuid:
        raise InstallerError(f"Unable to determine PARTUUID for {device}")
    return partuuid


def resolve_partitions(plan: PartitionPlan, *, dry_run: bool = False) -> DiskPartitions:
    def _uuid(role: str) -> str:
        return lookup_partuuid(plan.device(plan.by_role(role).number), dry_run=dry_run)

    return DiskPartitions(
        disk=plan.disk,
        efi_partuuid=_uuid(ROLE_EFI),
        boot_member=partuuid_path(_uuid(ROLE_BOOT_POOL)),
        root_member=partuuid_path(_uuid(ROLE_ROOT_POOL)),
    )


def build_pool_specs(
    partitions: Sequence[DiskPartitions],
    *,
    bpool_name: str,
    rpool_name: str,
    bpool_tweaks: str,
    rpool_tweaks: str,
    mirror_confirmed: bool,
    passphrase: Optional[str] = None,
) -> Tuple[PoolSpec, PoolSpec]:
    """Boot and root pool specs; mirror only with two or more disks and operator consent."""

    if not partitions:
        raise ConfigError("No partitioned disks to build pools from")
    mirror = len(partitions) >= 2 and mirror_confirmed

    boot = PoolSpec(
        role="boot",
        name=bpool_name,
        tweaks=tuple(shlex.split(bpool_tweaks)),
        mirror=mirror,
        members=tuple(p.boot_member for p in partitions),
    )
    root = PoolSpec(
        role="root",
        name=rpool_name,
        tweaks=tuple(shlex.split(rpool_tweaks)),
        mirror=mirror,
        members=tuple(p.root_member for p in partitions),
        passphrase=passphrase,
    )
    return boot, root
