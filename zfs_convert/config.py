from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError
from .lib.env import PATHS
from .lib.layout import validate_pool_name

DEFAULT_BPOOL_TWEAKS = "-o ashift=13 -O compression=lz4"
DEFAULT_RPOOL_TWEAKS = (
    "-o ashift=13 -O acltype=posixacl -O compression=zstd-9 -O dnodesize=auto "
    "-O relatime=on -O xattr=sa -O normalization=formD"
)

DEFAULT_DEB_PACKAGES_REPO = "https://deb.debian.org/debian"
DEFAULT_DEB_SECURITY_REPO = "https://deb.debian.org/debian-security"

KEYBOARD_LAYOUTS = {"de": "de", "us": "us", "en": "us", "en-us": "us"}

MIN_PASSPHRASE_LEN = 8
MIN_ARC_MAX_MB = 64


def default_arc_max_mb(total_mb: int) -> int:
    if total_mb <= 1024:
        return 256
    if total_mb <= 2048:
        return 512
    return total_mb // 4


def default_swap_size_gb(total_mb: int) -> int:
    # 2x memory, rounded up to whole GiB
    return (total_mb * 2 + 1023) // 1024


@dataclass(frozen=True)
class InstallConfig:
    disks: Tuple[str, ...] = ()
    swap_size_gb: int = 0
    tail_reserve_bytes: int = 0
    bpool_name: str = "bpool"
    rpool_name: str = "rpool"
    bpool_tweaks: str = DEFAULT_BPOOL_TWEAKS
    rpool_tweaks: str = DEFAULT_RPOOL_TWEAKS
    arc_max_mb: int = 0
    encrypt: bool = False
    passphrase: Optional[str] = field(default=None, repr=False)
    mirror: bool = False
    hostname: Optional[str] = None
    keyboard_layout: str = "us"
    reboot: bool = True
    source_device: str = "/dev/sda1"
    payload_path: str = "rootfs.tar.gz"
    mount_dir: str = PATHS.mount_dir
    deb_packages_repo: str = DEFAULT_DEB_PACKAGES_REPO
    deb_security_repo: str = DEFAULT_DEB_SECURITY_REPO
    dry_run: bool = False
    jump_to: Optional[str] = None
    no_skips: Tuple[str, ...] = ()

    def redacted(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["passphrase"] = "***" if self.passphrase else None
        out["disks"] = list(self.disks)
        out["no_skips"] = list(self.no_skips)
        return out


def load_preset(path: str) -> Dict[str, Any]:
    """Load a preset mapping from YAML (.yaml/.yml) or JSON."""

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Preset file not found: {path}")

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ConfigError("PyYAML is required to read YAML presets") from e
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    else:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Preset must contain a mapping/object: {path}")

    known = {f.name for f in fields(InstallConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown preset key(s) in {path}: {', '.join(unknown)}")
    return raw


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a non-negative integer, got {value!r}") from None
    if n < 0:
        raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
    return n


def _as_list(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    return tuple(str(v).strip() for v in value if str(v).strip())


def build_config(
    *,
    preset: Mapping[str, Any] | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    memory_mb: int | None = None,
) -> InstallConfig:
    """Merge defaults < preset < overrides (CLI) < environment, then validate.

    Overrides whose value is None are treated as "not given".
    """

    env = os.environ if environ is None else environ
    merged: Dict[str, Any] = {}
    merged.update(preset or {})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if env.get("DEB_PACKAGES_REPO"):
        merged["deb_packages_repo"] = env["DEB_PACKAGES_REPO"]
    if env.get("DEB_SECURITY_REPO"):
        merged["deb_security_repo"] = env["DEB_SECURITY_REPO"]
    if "jump_to" not in merged and env.get("DEBUG_JUMP_TO"):
        merged["jump_to"] = env["DEBUG_JUMP_TO"]
    if "no_skips" not in merged and env.get("DEBUG_NO_SKIPS"):
        merged["no_skips"] = env["DEBUG_NO_SKIPS"]
    if not merged.get("passphrase") and env.get("ZFS_CONVERT_PASSPHRASE"):
        merged["passphrase"] = env["ZFS_CONVERT_PASSPHRASE"]

    if memory_mb is not None:
        merged.setdefault("arc_max_mb", default_arc_max_mb(memory_mb))
        merged.setdefault("swap_size_gb", default_swap_size_gb(memory_mb))

    for name in ("swap_size_gb", "tail_reserve_bytes", "arc_max_mb"):
        if name in merged:
            merged[name] = _as_int(name, merged[name])
    for name in ("disks", "no_skips"):
        if name in merged:
            merged[name] = _as_list(merged[name])

    cfg = InstallConfig(**merged)
    validate_config(cfg)
    return cfg


def validate_config(cfg: InstallConfig) -> None:
    validate_pool_name(cfg.bpool_name)
    validate_pool_name(cfg.rpool_name)
    if cfg.bpool_name == cfg.rpool_name:
        raise ConfigError("Boot and root pool names must differ")

    if cfg.arc_max_mb and cfg.arc_max_mb < MIN_ARC_MAX_MB:
        raise ConfigError(f"ARC max must be 0 (ZFS default) or at least {MIN_ARC_MAX_MB} MB")

    if cfg.encrypt:
        if not cfg.passphrase:
            raise ConfigError("Encryption requested but no passphrase given")
        if len(cfg.passphrase) < MIN_PASSPHRASE_LEN:
            raise ConfigError(f"Passphrase must be at least {MIN_PASSPHRASE_LEN} characters")

    if cfg.keyboard_layout not in KEYBOARD_LAYOUTS:
        raise ConfigError(
            f"Unsupported keyboard layout {cfg.keyboard_layout!r}; "
            f"supported: {', '.join(sorted(KEYBOARD_LAYOUTS))}"
        )
