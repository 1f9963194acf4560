from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Set, Tuple

from ..errors import NoSuitableDisksError, PreconditionError
from .command import run_cmd

logger = logging.getLogger(__name__)

# by-path works the same for virtio, scsi, ata and nvme transports; by-id does not.
BY_PATH_DIR = "/dev/disk/by-path"

_PART_LINK_RE = re.compile(r".+-part[0-9]+$")


@dataclass(frozen=True)
class Disk:
    path: str  # stable by-path link
    real_path: str  # canonical /dev node
    optical: bool = False
    mounted: bool = False

    @property
    def suitable(self) -> bool:
        return not self.optical and not self.mounted

    @property
    def name(self) -> str:
        return os.path.basename(self.real_path)


def canonical(path: str) -> str:
    return os.path.realpath(path)


def list_by_path_links(by_path_dir: str = BY_PATH_DIR) -> List[str]:
    """Whole-disk links under by_path_dir, sorted; partition links are ignored."""

    d = Path(by_path_dir)
    if not d.is_dir():
        return []
    links = [str(p) for p in d.iterdir() if p.is_symlink() and not _PART_LINK_RE.match(p.name)]
    return sorted(links)


def parse_properties(text: str) -> Dict[str, str]:
    props: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            props[key.strip()] = value.strip()
    return props


def device_properties(dev: str) -> Tuple[str, Dict[str, str]]:
    """Return raw `udevadm info` output and its parsed KEY=VALUE mapping."""

    r = run_cmd(["udevadm", "info", "--query=property", dev], check=False)
    raw = r.stdout or ""
    return raw, parse_properties(raw)


def _walk(node: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    yield node
    for child in node.get("children") or []:
        yield from _walk(child)


def _has_mount(node: Dict[str, Any]) -> bool:
    if node.get("mountpoint"):
        return True
    return any(m for m in (node.get("mountpoints") or []) if m)



def mounted_block_devices() -> Set[str]:
    """Canonical paths of block devices backing an active mount or swap.

    A whole disk counts as mounted when any node in its lsblk subtree is
    mounted, which covers partitions and stacked LVM/crypt/md layers. When
    lsblk cannot answer, no disk can be proven idle and discovery stops.
    """

    r = run_cmd(["lsblk", "--json", "--paths", "--output", "NAME,MOUNTPOINT"], check=False)
    if r.returncode != 0 or not r.stdout.strip():
        raise PreconditionError(f"lsblk failed (rc={r.returncode}); cannot tell which disks are in use")

    try:
        tree = json.loads(r.stdout)
    except json.JSONDecodeError as e:
        raise PreconditionError(f"Unparseable lsblk output; cannot tell which disks are in use: {e}") from e

    mounted: Set[str] = set()
    for top in tree.get("blockdevices") or []:
        busy = [n for n in _walk(top) if _has_mount(n)]
        if not busy:
            continue
        mounted.add(canonical(top["name"]))
        for n in busy:
            mounted.add(canonical(n["name"]))
    return mounted


def _dump_header(links: List[str]) -> str:
    lines = [f"{link} -> {os.readlink(link)}" for link in links]
    return "\n".join(lines) + "\n"


def _dump_section(dev: str, raw: str) -> str:
    return f"\n## DEVICE: {dev} ################################\n\n{raw.rstrip()}\n\n"


def _unique_links(links: Iterable[str]) -> Iterator[Tuple[str, str]]:
    seen: Set[str] = set()
    for link in links:
        real = canonical(link)
        if real in seen:
            logger.debug("Skipping %s: alias of %s", link, real)
            continue
        seen.add(real)
        yield link, real


def discover_disks(
    *,
    by_path_dir: str = BY_PATH_DIR,
    dump_path: str,
    dry_run: bool = False,
) -> List[Disk]:
    """Enumerate whole disks once, deduplicated by canonical device path.

    Every examined device's raw udev properties are written to dump_path,
    whether or not it turns out to be suitable.
    """

    run_cmd(["udevadm", "trigger"], check=False, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)

    links = list_by_path_links(by_path_dir)
    mounted = mounted_block_devices()

    Path(dump_path).parent.mkdir(parents=True, exist_ok=True)
    disks: List[Disk] = []

    with open(dump_path, "w", encoding="utf-8") as dump:
        dump.write(_dump_header(links))
        for link, real in _unique_links(links):
            raw, props = device_properties(link)
            dump.write(_dump_section(link, raw))

            disk = Disk(
                path=link,
                real_path=real,
                optical=props.get("ID_TYPE") == "cd",
                mounted=real in mounted,
            )
            logger.info("Disk %s (%s) optical=%s mounted=%s", disk.path, disk.name, disk.optical, disk.mounted)
            disks.append(disk)

    return disks


def find_suitable_disks(
    *,
    by_path_dir: str = BY_PATH_DIR,
    dump_path: str,
    dry_run: bool = False,
) -> List[Disk]:
    suitable = [d for d in discover_disks(by_path_dir=by_path_dir, dump_path=dump_path, dry_run=dry_run) if d.suitable]
    if not suitable:
        raise NoSuitableDisksError(dump_path)
    return suitable


def known_disks(*, by_path_dir: str = BY_PATH_DIR) -> List[Disk]:
    """Whole non-optical disks regardless of mount state.

    Rebuilds the candidate set on a resumed run, when the selected disks
    already carry the new pools and a mounted ESP. Only udev properties are
    read: no trigger, no dump, no mount check.
    """

    disks: List[Disk] = []
    for link, real in _unique_links(list_by_path_links(by_path_dir)):
        _, props = device_properties(link)
        if props.get("ID_TYPE") == "cd":
            continue
        disks.append(Disk(path=link, real_path=real))
    return disks
