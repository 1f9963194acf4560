from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .chroot import execute_in_target
from .command import run_cmd

logger = logging.getLogger(__name__)

APT_COMPONENTS = "main contrib non-free non-free-firmware"

ZFS_DKMS_LICENSE_NOTE = "zfs-dkms zfs-dkms/note-incompatible-licenses note true\n"


def render_sources_list(codename: str, *, packages_repo: str, security_repo: str) -> str:
    return (
        f"deb {packages_repo} {codename} {APT_COMPONENTS}\n"
        f"deb {packages_repo} {codename}-backports {APT_COMPONENTS}\n"
        f"deb {packages_repo} {codename}-updates {APT_COMPONENTS}\n"
        f"deb {security_repo} {codename}-security {APT_COMPONENTS}\n"
    )


def write_host_sources_list(
    codename: str,
    *,
    packages_repo: str,
    security_repo: str,
    path: str = "/etc/apt/sources.list",
    dry_run: bool = False,
) -> None:
    contents = render_sources_list(codename, packages_repo=packages_repo, security_repo=security_repo)
    if dry_run:
        logger.info("Would write %s", path)
        return
    Path(path).write_text(contents, encoding="utf-8")
    logger.info("Configured host apt sources for %s", codename)


def host_apt_install(
    packages: Sequence[str],
    *,
    release: str | None = None,
    extra_args: Sequence[str] = (),
    check: bool = True,
    dry_run: bool = False,
) -> bool:
    argv = ["apt-get", "install", "--yes"]
    if release:
        argv += ["-t", release]
    argv += [*extra_args, *packages]
    r = run_cmd(argv, check=check, env={"DEBIAN_FRONTEND": "noninteractive"}, dry_run=dry_run)
    return r.returncode == 0


def host_debconf_set(selection: str, *, dry_run: bool = False) -> None:
    run_cmd(["debconf-set-selections"], input_text=selection, dry_run=dry_run)


def apt_update(target_root: str, *, dry_run: bool = False) -> None:
    execute_in_target(target_root, ["apt-get", "update"], dry_run=dry_run)


def apt_install(
    target_root: str,
    packages: Sequence[str],
    *,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    execute_in_target(target_root, ["apt-get", "install", "--yes", *packages], dry_run=dry_run)


def apt_purge(target_root: str, patterns: Sequence[str], *, dry_run: bool = False) -> bool:
    """Purge packages that may already be absent; failure is tolerated."""

    rc = execute_in_target(target_root, ["apt-get", "purge", "--yes", *patterns], check=False, dry_run=dry_run)
    if rc != 0:
        logger.info("Purge of %s was a no-op (rc=%s)", " ".join(patterns), rc)
    return rc == 0


def apt_upgrade(target_root: str, *, dry_run: bool = False) -> None:
    execute_in_target(target_root, ["apt-get", "upgrade", "--yes"], dry_run=dry_run)


def debconf_set(target_root: str, selection: str, *, dry_run: bool = False) -> None:
    execute_in_target(target_root, ["debconf-set-selections"], input_text=selection, dry_run=dry_run)
