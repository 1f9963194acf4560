from __future__ import annotations

import shlex
from typing import Optional, Sequence


class InstallerError(RuntimeError):
    """Base class for every fatal condition; the run aborts with exit code 1."""


class ConfigError(InstallerError):
    pass


class PreconditionError(InstallerError):
    pass


class NoSuitableDisksError(PreconditionError):
    def __init__(self, dump_path: str) -> None:
        super().__init__(
            "No suitable disks have been found! "
            f"Device properties were captured in {dump_path} for inspection."
        )
        self.dump_path = dump_path


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        cmdline = " ".join(shlex.quote(a) for a in argv)
        super().__init__(f"Command failed ({returncode}): {cmdline}\n{stderr}".rstrip())
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class SettleTimeoutError(InstallerError):
    """A bounded wait on asynchronous system state ran out of time."""


class PartitionCountError(InstallerError):
    def __init__(self, disk: str, missing: Sequence[str], present: Optional[Sequence[str]] = None) -> None:
        msg = f"Not all partitions were created on {disk}; missing: {', '.join(missing)}"
        if present is not None:
            msg += f"; present: {', '.join(present) or 'none'}"
        super().__init__(msg)
        self.disk = disk
        self.missing = list(missing)
