from __future__ import annotations

import logging
import os
from pathlib import Path

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.install_log

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _open_log(log_path: str) -> tuple[logging.Handler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        # The rescue system's temp dir can be read-only or full.
        fallback = str(Path.cwd() / "zfs-convert.log")
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    The install log always receives DEBUG records, which include the captured
    output of every command, so a failed conversion can be inspected after the
    fact next to the disk discovery dump. ``level`` only applies to the
    console.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    if getattr(root, "_zfs_convert_configured", False):
        for h in root.handlers:
            if getattr(h, "_zfs_convert_console", False):
                h.setLevel(level)
        return getattr(root, "_zfs_convert_log_path", log_path)

    file_handler, chosen_path = _open_log(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(logging.Formatter(fmt=_CONSOLE_FORMAT))
        setattr(console, "_zfs_convert_console", True)
        root.addHandler(console)

    setattr(root, "_zfs_convert_configured", True)
    setattr(root, "_zfs_convert_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
