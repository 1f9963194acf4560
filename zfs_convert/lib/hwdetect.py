from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .command import run_cmd
from .firmware import detect_firmware

logger = logging.getLogger(__name__)

# Hetzner cloud instances report this DMI product name; they want the -cloud kernel flavour.
_CLOUD_DMI_MARKER = "vServer"


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def total_memory_mb(meminfo: str = "/proc/meminfo") -> int:
    """Total RAM in MiB, or 1024 when it cannot be determined."""

    txt = _read_text(Path(meminfo)) or ""
    for line in txt.splitlines():
        if line.startswith("MemTotal:"):
            parts = line.split()
            try:
                return int(parts[1]) // 1024
            except (IndexError, ValueError):
                break
    logger.warning("Unable to read MemTotal from %s; assuming 1024 MiB", meminfo)
    return 1024


def kernel_variant() -> str:
    r = run_cmd(["dmidecode"], check=False)
    if _CLOUD_DMI_MARKER in (r.stdout or ""):
        return "-cloud"
    return ""


def host_codename() -> Optional[str]:
    r = run_cmd(["lsb_release", "-cs"], check=False)
    codename = (r.stdout or "").strip()
    return codename or None


def detect_host(*, lsb_release_log: Optional[str] = None) -> Dict[str, Any]:
    """Collect the host facts later steps branch on."""

    firmware = detect_firmware()
    variant = kernel_variant()

    if lsb_release_log:
        r = run_cmd(["lsb_release", "--all"], check=False)
        p = Path(lsb_release_log)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text((r.stdout or "") + (r.stderr or ""), encoding="utf-8")

    hw = {
        "firmware": firmware,
        "kernel_variant": variant,
        "memory_mb": total_memory_mb(),
    }
    logger.info("Host: %s", hw)
    return hw
